"""Dialogue graph models.

A DialogueGraph belongs to one character and maps node ids to nodes. Each
node carries one or more content variations and a list of choices; choices
point at other nodes of the same graph by id.

Graph integrity (start node present, every choice target present) is not
enforced here. Authored content is allowed to load so that the validators
in wayfinder.validation can report every defect at once.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from wayfinder.errors import NodeNotFoundError
from wayfinder.models.state import Pattern, StateChange, StateCondition

# Nodes carrying one of these tags may legitimately end without choices.
CHOICELESS_TAGS = frozenset({"terminal", "simulation", "boundary"})


class SimulationDifficulty(StrEnum):
    INTRODUCTION = "introduction"
    APPLICATION = "application"
    MASTERY = "mastery"


class DialogueContent(BaseModel):
    """One variation of what the speaker says at a node."""

    text: str = Field(min_length=1)
    emotion: str = "neutral"
    variation_id: str | None = None


class SimulationDescriptor(BaseModel):
    """Marks a node as the entry of an interactive simulation."""

    simulation_id: str | None = None
    phase: int = Field(ge=1, le=3)
    difficulty: SimulationDifficulty


class OrbFillRequirement(BaseModel):
    """Enable gate on a pattern's orb fill percentage."""

    pattern: Pattern
    threshold: int = Field(ge=0, le=100)


class ConditionalChoice(BaseModel):
    choice_id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    next_node_id: str = Field(min_length=1)
    visible_condition: StateCondition | None = None
    enabled_condition: StateCondition | None = None
    pattern: Pattern | None = Field(
        default=None,
        description="Pattern this choice expresses; taking it earns one orb",
    )
    voice_variations: dict[Pattern, str] = Field(default_factory=dict)
    consequence: StateChange | None = None
    required_skills: dict[str, float] = Field(default_factory=dict)
    required_orb_fill: OrbFillRequirement | None = None
    preview: str | None = None


class DialogueNode(BaseModel):
    node_id: str = Field(min_length=1)
    speaker: str = Field(min_length=1)
    content: list[DialogueContent] = Field(min_length=1)
    choices: list[ConditionalChoice] = Field(default_factory=list)
    required_state: StateCondition | None = Field(
        default=None,
        description="Entry gate, independent of per-choice gates",
    )
    simulation: SimulationDescriptor | None = None
    tags: list[str] = Field(default_factory=list)
    priority: int = 0
    on_enter: list[StateChange] = Field(default_factory=list)

    @property
    def may_end_without_choices(self) -> bool:
        return self.simulation is not None or any(tag in CHOICELESS_TAGS for tag in self.tags)

    def get_choice(self, choice_id: str) -> ConditionalChoice | None:
        for choice in self.choices:
            if choice.choice_id == choice_id:
                return choice
        return None


class DialogueGraph(BaseModel):
    graph_id: str = Field(min_length=1)
    character_id: str = Field(min_length=1)
    start_node_id: str = Field(min_length=1)
    nodes: dict[str, DialogueNode] = Field(default_factory=dict)
    title: str = ""
    version: str = "1.0"

    @model_validator(mode="after")
    def _check_node_keys(self) -> DialogueGraph:
        for key, node in self.nodes.items():
            if key != node.node_id:
                raise ValueError(f"node stored under '{key}' declares node_id '{node.node_id}'")
        return self

    def get_node(self, node_id: str) -> DialogueNode | None:
        return self.nodes.get(node_id)

    def require_node(self, node_id: str, context: str = "") -> DialogueNode:
        """Like get_node, but raises NodeNotFoundError with close-match suggestions."""
        node = self.nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id, available=self.node_ids(), context=context)
        return node

    def node_ids(self) -> list[str]:
        return list(self.nodes)
