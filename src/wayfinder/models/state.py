"""Player state models.

GameState is the explicit value threaded through every evaluation and
navigation call. It is never mutated in place: mutation helpers return a
new copy (see wayfinder.engine.mutations).

Pattern dimensions are always iterated in PATTERN_ORDER. The order is part
of the behavior: it breaks ties when choosing a dominant pattern.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

SAVE_VERSION = 2

MIN_TRUST = -10
MAX_TRUST = 10


class Pattern(StrEnum):
    """The five tracked behavioral dimensions."""

    ANALYTICAL = "analytical"
    PATIENCE = "patience"
    EXPLORING = "exploring"
    HELPING = "helping"
    BUILDING = "building"


PATTERN_ORDER: tuple[Pattern, ...] = (
    Pattern.ANALYTICAL,
    Pattern.PATIENCE,
    Pattern.EXPLORING,
    Pattern.HELPING,
    Pattern.BUILDING,
)


class RelationshipStatus(StrEnum):
    STRANGER = "stranger"
    ACQUAINTANCE = "acquaintance"
    CONFIDANT = "confidant"


# ---------------------------------------------------------------------------
# Player state
# ---------------------------------------------------------------------------


class PlayerPatterns(BaseModel):
    """Accumulated pattern points ("orbs") per dimension."""

    analytical: int = Field(default=0, ge=0)
    patience: int = Field(default=0, ge=0)
    exploring: int = Field(default=0, ge=0)
    helping: int = Field(default=0, ge=0)
    building: int = Field(default=0, ge=0)

    def get(self, pattern: Pattern | str) -> int:
        return int(getattr(self, Pattern(pattern).value))

    def as_dict(self) -> dict[Pattern, int]:
        """Return the values keyed by pattern, in canonical order."""
        return {pattern: self.get(pattern) for pattern in PATTERN_ORDER}


class CharacterState(BaseModel):
    """Per-character relationship state, created lazily on first encounter."""

    character_id: str = Field(min_length=1)
    trust: int = 0
    relationship_status: RelationshipStatus = RelationshipStatus.STRANGER
    knowledge_flags: set[str] = Field(default_factory=set)
    encounter_count: int = Field(default=0, ge=0)
    conversation_history: list[str] = Field(
        default_factory=list,
        description="Visited node ids, oldest first",
    )
    last_interaction: int = Field(default=0, description="Epoch milliseconds")


class GameState(BaseModel):
    """Complete state of a single playthrough."""

    save_version: int = SAVE_VERSION
    player_id: str = Field(min_length=1)
    characters: dict[str, CharacterState] = Field(default_factory=dict)
    global_flags: set[str] = Field(default_factory=set)
    patterns: PlayerPatterns = Field(default_factory=PlayerPatterns)
    current_node_id: str = ""
    current_character_id: str = ""
    skill_levels: dict[str, float] = Field(default_factory=dict)
    last_saved: int = Field(default=0, description="Epoch milliseconds")

    def character(self, character_id: str | None) -> CharacterState | None:
        """Look up a character's state; None when unknown or not yet met."""
        if not character_id:
            return None
        return self.characters.get(character_id)


def create_new_game_state(
    player_id: str,
    character_id: str = "",
    start_node_id: str = "",
) -> GameState:
    """Create a fresh playthrough, optionally positioned at a start node.

    When a character is given, its state is created with trust 0 so the
    first conversation can already evaluate trust clauses.
    """
    characters = {}
    if character_id:
        characters[character_id] = CharacterState(character_id=character_id)
    return GameState(
        player_id=player_id,
        characters=characters,
        current_node_id=start_node_id,
        current_character_id=character_id,
    )


# ---------------------------------------------------------------------------
# Conditions and changes
# ---------------------------------------------------------------------------


class ValueRange(BaseModel):
    """Inclusive integer range; either bound may be omitted."""

    min: int | None = None
    max: int | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> ValueRange:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self

    def contains(self, value: int) -> bool:
        if self.min is not None and value < self.min:
            return False
        return not (self.max is not None and value > self.max)


class StateCondition(BaseModel):
    """Composite gate; all present clauses must hold.

    An empty list or mapping imposes no constraint on that axis.
    """

    trust: ValueRange | None = None
    relationship: list[RelationshipStatus] = Field(default_factory=list)
    has_global_flags: list[str] = Field(default_factory=list)
    lacks_global_flags: list[str] = Field(default_factory=list)
    has_knowledge_flags: list[str] = Field(default_factory=list)
    lacks_knowledge_flags: list[str] = Field(default_factory=list)
    patterns: dict[Pattern, ValueRange] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (
            self.trust is not None
            or self.relationship
            or self.has_global_flags
            or self.lacks_global_flags
            or self.has_knowledge_flags
            or self.lacks_knowledge_flags
            or self.patterns
        )

    def is_character_scoped(self) -> bool:
        """True when any clause needs a character's state to evaluate."""
        return bool(
            self.trust is not None
            or self.relationship
            or self.has_knowledge_flags
            or self.lacks_knowledge_flags
        )


class StateChange(BaseModel):
    """Declared deltas applied when a choice is taken or a node is entered."""

    character_id: str | None = None
    trust_change: int = 0
    set_relationship_status: RelationshipStatus | None = None
    add_knowledge_flags: list[str] = Field(default_factory=list)
    remove_knowledge_flags: list[str] = Field(default_factory=list)
    add_global_flags: list[str] = Field(default_factory=list)
    remove_global_flags: list[str] = Field(default_factory=list)
    pattern_changes: dict[Pattern, int] = Field(default_factory=dict)
