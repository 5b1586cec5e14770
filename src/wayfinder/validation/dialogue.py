"""Dialogue graph validators.

These run offline over static content. They check properties that are
decidable without exploring player state:

- every choice target exists (``unreachable_next_node``),
- nodes without choices are meant to end (``no_choices``),
- no node a fresh player can stand on has every choice hidden
  (``all_choices_gated``),
- pattern unlock declarations point at real nodes.

Reachability from the start node under arbitrary state is not attempted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from wayfinder.engine.affinity import DEFAULT_PATTERN_AFFINITIES
from wayfinder.engine.conditions import evaluate
from wayfinder.engine.navigator import resolve_character_id
from wayfinder.models.state import create_new_game_state
from wayfinder.observability.logging import get_logger
from wayfinder.validation.types import (
    GatingIssue,
    GatingIssueType,
    PatternUnlockIssue,
    PatternUnlockIssueType,
    ValidationResult,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from wayfinder.models.dialogue import DialogueGraph, DialogueNode
    from wayfinder.models.registry import PatternAffinity, PatternUnlock
    from wayfinder.models.state import GameState

log = get_logger(__name__)

VALIDATOR_PLAYER_ID = "validator"


def create_minimal_game_state(character_id: str) -> GameState:
    """Fresh-player state: only ``character_id`` is known, at trust 0."""
    return create_new_game_state(VALIDATOR_PLAYER_ID, character_id)


def _entry_gate_holds(node: DialogueNode, state: GameState, character_id: str) -> bool:
    if node.required_state is None:
        return True
    speaker_id = resolve_character_id(node.speaker, {character_id, *state.characters}) or character_id
    return evaluate(node.required_state, state, speaker_id)


def validate_dialogue_gating(
    graph: DialogueGraph,
    character_id: str,
    default_state: GameState | None = None,
    allow_listed: Collection[str] = (),
) -> list[GatingIssue]:
    """Report structural and gating issues for every node of ``graph``.

    Args:
        graph: Graph to check.
        character_id: Owning character, used for character-scoped clauses.
        default_state: State to evaluate gates under; a minimal fresh state
            by default.
        allow_listed: Node ids intentionally exempt from these checks.
    """
    issues: list[GatingIssue] = []
    state = default_state if default_state is not None else create_minimal_game_state(character_id)

    if graph.get_node(graph.start_node_id) is None:
        issues.append(
            GatingIssue(
                node_id=graph.start_node_id,
                character_id=character_id,
                issue_type=GatingIssueType.MISSING_START_NODE,
                details=f"Start node '{graph.start_node_id}' does not exist in graph '{graph.graph_id}'",
                severity="error",
                target_node_id=graph.start_node_id,
            )
        )

    for node_id, node in graph.nodes.items():
        if node_id in allow_listed:
            continue

        if not node.choices:
            if not node.may_end_without_choices:
                issues.append(
                    GatingIssue(
                        node_id=node_id,
                        character_id=character_id,
                        issue_type=GatingIssueType.NO_CHOICES,
                        details="Node has no choices and is not tagged terminal, simulation or boundary",
                        severity="warning",
                    )
                )
            continue

        for choice in node.choices:
            if graph.get_node(choice.next_node_id) is None:
                issues.append(
                    GatingIssue(
                        node_id=node_id,
                        character_id=character_id,
                        issue_type=GatingIssueType.UNREACHABLE_NEXT_NODE,
                        details=(
                            f"Choice '{choice.choice_id}' points to non-existent node "
                            f"'{choice.next_node_id}'"
                        ),
                        severity="error",
                        target_node_id=choice.next_node_id,
                    )
                )

        # Nodes a fresh player cannot enter are reached only under later state.
        if not _entry_gate_holds(node, state, character_id):
            continue

        visible = [c for c in node.choices if evaluate(c.visible_condition, state, character_id)]
        if not visible:
            issues.append(
                GatingIssue(
                    node_id=node_id,
                    character_id=character_id,
                    issue_type=GatingIssueType.ALL_CHOICES_GATED,
                    details=(
                        f"All {len(node.choices)} choices are hidden under a fresh state; "
                        "a new player would be soft-locked here"
                    ),
                    severity="error",
                )
            )

    return issues


def _unlock_issue(
    character_id: str,
    unlock: PatternUnlock,
    issue_type: PatternUnlockIssueType,
    details: str,
) -> PatternUnlockIssue:
    return PatternUnlockIssue(
        character_id=character_id,
        pattern=unlock.pattern.value,
        threshold=unlock.threshold,
        node_id=unlock.unlocked_node_id,
        issue_type=issue_type,
        details=details,
    )


def validate_pattern_unlocks(
    character_id: str,
    graph: DialogueGraph,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> list[PatternUnlockIssue]:
    """Cross-check the affinity registry's pattern unlocks against ``graph``."""
    registry = DEFAULT_PATTERN_AFFINITIES if affinities is None else affinities
    affinity = registry.get(character_id)
    if affinity is None or not affinity.pattern_unlocks:
        return []

    issues: list[PatternUnlockIssue] = []
    for unlock in affinity.pattern_unlocks:
        if not 0 <= unlock.threshold <= 100:
            issues.append(
                _unlock_issue(
                    character_id,
                    unlock,
                    PatternUnlockIssueType.INVALID_THRESHOLD,
                    f"Threshold {unlock.threshold} is out of valid range (0-100)",
                )
            )
        if not unlock.description.strip():
            issues.append(
                _unlock_issue(
                    character_id,
                    unlock,
                    PatternUnlockIssueType.EMPTY_DESCRIPTION,
                    "Pattern unlock has no description",
                )
            )
        if graph.get_node(unlock.unlocked_node_id) is None:
            issues.append(
                _unlock_issue(
                    character_id,
                    unlock,
                    PatternUnlockIssueType.MISSING_NODE,
                    f"Unlocked node '{unlock.unlocked_node_id}' does not exist in {character_id} graph",
                )
            )
    return issues


def validate_dialogue_graph(
    graph: DialogueGraph,
    character_id: str,
    default_state: GameState | None = None,
    *,
    affinities: Mapping[str, PatternAffinity] | None = None,
    allow_listed: Collection[str] = (),
) -> ValidationResult:
    """Run every graph validator; the result is valid iff no error was found."""
    result = ValidationResult(
        character_id=character_id,
        gating_issues=validate_dialogue_gating(graph, character_id, default_state, allow_listed),
        pattern_unlock_issues=validate_pattern_unlocks(character_id, graph, affinities),
    )
    log.debug(
        "graph_validated",
        graph_id=graph.graph_id,
        errors=result.error_count,
        warnings=result.warning_count,
    )
    return result


def validate_all_dialogue_graphs(
    graphs: Mapping[str, DialogueGraph],
    *,
    affinities: Mapping[str, PatternAffinity] | None = None,
    allow_listed: Collection[str] = (),
) -> dict[str, ValidationResult]:
    """Validate every graph, keyed the same way as ``graphs``."""
    return {
        key: validate_dialogue_graph(
            graph,
            graph.character_id,
            affinities=affinities,
            allow_listed=allow_listed,
        )
        for key, graph in graphs.items()
    }
