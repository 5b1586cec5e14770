"""Offline content validators for dialogue graphs and registries."""

from wayfinder.validation.dialogue import (
    create_minimal_game_state,
    validate_all_dialogue_graphs,
    validate_dialogue_gating,
    validate_dialogue_graph,
    validate_pattern_unlocks,
)
from wayfinder.validation.registry_alignment import validate_simulation_registries
from wayfinder.validation.required_state import build_required_state_guarding_report
from wayfinder.validation.types import (
    ContentReport,
    GatingIssue,
    GatingIssueType,
    PatternUnlockIssue,
    PatternUnlockIssueType,
    RegistryAlignmentResult,
    RegistryIssue,
    RegistryIssueType,
    ValidationResult,
)

__all__ = [
    "ContentReport",
    "GatingIssue",
    "GatingIssueType",
    "PatternUnlockIssue",
    "PatternUnlockIssueType",
    "RegistryAlignmentResult",
    "RegistryIssue",
    "RegistryIssueType",
    "ValidationResult",
    "build_required_state_guarding_report",
    "create_minimal_game_state",
    "validate_all_dialogue_graphs",
    "validate_dialogue_gating",
    "validate_dialogue_graph",
    "validate_pattern_unlocks",
    "validate_simulation_registries",
]
