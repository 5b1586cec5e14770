"""Pydantic models for player state, dialogue graphs and registries."""

from wayfinder.models.dialogue import (
    CHOICELESS_TAGS,
    ConditionalChoice,
    DialogueContent,
    DialogueGraph,
    DialogueNode,
    OrbFillRequirement,
    SimulationDescriptor,
    SimulationDifficulty,
)
from wayfinder.models.registry import (
    AffinityLevel,
    CompletionFlag,
    PatternAffinity,
    PatternUnlock,
    SimulationContentEntry,
    SimulationEngineEntry,
)
from wayfinder.models.state import (
    MAX_TRUST,
    MIN_TRUST,
    PATTERN_ORDER,
    SAVE_VERSION,
    CharacterState,
    GameState,
    Pattern,
    PlayerPatterns,
    RelationshipStatus,
    StateChange,
    StateCondition,
    ValueRange,
    create_new_game_state,
)

__all__ = [
    "CHOICELESS_TAGS",
    "MAX_TRUST",
    "MIN_TRUST",
    "PATTERN_ORDER",
    "SAVE_VERSION",
    "AffinityLevel",
    "CharacterState",
    "CompletionFlag",
    "ConditionalChoice",
    "DialogueContent",
    "DialogueGraph",
    "DialogueNode",
    "GameState",
    "OrbFillRequirement",
    "Pattern",
    "PatternAffinity",
    "PatternUnlock",
    "PlayerPatterns",
    "RelationshipStatus",
    "SimulationContentEntry",
    "SimulationDescriptor",
    "SimulationDifficulty",
    "SimulationEngineEntry",
    "StateChange",
    "StateCondition",
    "ValueRange",
    "create_new_game_state",
]
