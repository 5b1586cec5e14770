"""Resolving a player's choice end to end.

resolve_choice() is the only place where evaluation, mutation, navigation
and persistence meet. The new state is computed without touching the old
one and is committed through the SaveStore before it is returned; if the
commit fails, PersistenceError propagates and the caller keeps the old
state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from wayfinder.engine.conditions import EvaluatedChoice, ReasonCode, evaluate_choices
from wayfinder.engine.mutations import (
    apply_choice,
    apply_orb_resonance,
    apply_state_changes,
    now_ms,
    record_visit,
)
from wayfinder.engine.navigator import advance
from wayfinder.engine.orbs import ORB_DIALOGUE_UNLOCKS, OrbResonance
from wayfinder.observability.logging import bind_engine_context, get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from wayfinder.models.dialogue import DialogueGraph, DialogueNode
    from wayfinder.models.registry import PatternAffinity
    from wayfinder.models.state import GameState
    from wayfinder.persistence.store import SaveStore

log = get_logger(__name__)


@dataclass(frozen=True)
class ChoiceResolution:
    """Result of resolving a choice.

    When ``moved`` is False nothing was applied or committed and ``state``
    is the caller's original state; ``reason_code`` says why when the
    choice itself was locked.
    """

    state: GameState
    node: DialogueNode | None
    moved: bool
    resonance: OrbResonance | None = None
    trust_change: int = 0
    resonance_description: str | None = None
    reason_code: ReasonCode | None = None
    unlocked_dialogue_node: str | None = None


def start_conversation(
    graph: DialogueGraph,
    state: GameState,
    store: SaveStore,
    *,
    timestamp: int | None = None,
) -> GameState:
    """Position the player at the graph's start node and commit.

    Counts a new encounter with the graph's character and applies the start
    node's on-enter changes.
    """
    with bind_engine_context(player_id=state.player_id, graph_id=graph.graph_id):
        start = graph.get_node(graph.start_node_id)
        if start is None:
            log.error("start_node_missing", node_id=graph.start_node_id)
            return state

        stamp = timestamp if timestamp is not None else now_ms()
        new_state = state.model_copy(
            update={"current_node_id": start.node_id, "current_character_id": graph.character_id}
        )
        new_state = record_visit(
            new_state, graph.character_id, start.node_id, new_encounter=True, timestamp=stamp
        )
        new_state = apply_state_changes(new_state, start.on_enter)
        new_state, _ = apply_orb_resonance(new_state)
        new_state = new_state.model_copy(update={"last_saved": stamp})
        store.commit(new_state)
        return new_state


def _find_evaluated(evaluated: list[EvaluatedChoice], choice_id: str) -> EvaluatedChoice | None:
    for item in evaluated:
        if item.choice.choice_id == choice_id:
            return item
    return None


def resolve_choice(
    graph: DialogueGraph,
    state: GameState,
    choice_id: str,
    store: SaveStore,
    *,
    affinities: Mapping[str, PatternAffinity] | None = None,
    timestamp: int | None = None,
) -> ChoiceResolution:
    """Take ``choice_id`` on the current node, commit, and return the new position.

    Locked, unknown or dangling choices leave the player where they are
    without committing anything.

    Raises:
        PersistenceError: If the store cannot commit the new state.
    """
    with bind_engine_context(player_id=state.player_id, graph_id=graph.graph_id):
        current = graph.get_node(state.current_node_id)
        if current is None:
            log.error("current_node_missing", node_id=state.current_node_id)
            return ChoiceResolution(state=state, node=None, moved=False)

        evaluated = _find_evaluated(evaluate_choices(current, state, graph.character_id), choice_id)
        if evaluated is not None and not evaluated.enabled:
            log.warning(
                "choice_locked",
                node_id=current.node_id,
                choice_id=choice_id,
                reason_code=evaluated.reason_code,
            )
            return ChoiceResolution(
                state=state, node=current, moved=False, reason_code=evaluated.reason_code
            )

        navigation = advance(graph, state, choice_id)
        if not navigation.moved or navigation.choice is None or navigation.node is None:
            return ChoiceResolution(state=state, node=navigation.node, moved=False)

        stamp = timestamp if timestamp is not None else now_ms()
        outcome = apply_choice(navigation.state, navigation.choice, graph.character_id, affinities)
        new_state = record_visit(
            outcome.state, graph.character_id, navigation.node.node_id, timestamp=stamp
        )
        new_state = apply_state_changes(new_state, navigation.node.on_enter)
        # on-enter pattern gains can cross a tier the choice itself did not
        new_state, entered = apply_orb_resonance(new_state)
        resonance = replace(
            entered,
            tier_just_unlocked=entered.tier_just_unlocked or outcome.resonance.tier_just_unlocked,
        )
        new_state = new_state.model_copy(update={"last_saved": stamp})

        store.commit(new_state)

        unlocked = None
        if resonance.tier_just_unlocked is not None:
            unlocked = ORB_DIALOGUE_UNLOCKS[resonance.tier_just_unlocked]

        log.info(
            "choice_resolved",
            choice_id=choice_id,
            to_node=navigation.node.node_id,
            trust_change=outcome.trust_change,
        )
        return ChoiceResolution(
            state=new_state,
            node=navigation.node,
            moved=True,
            resonance=resonance,
            trust_change=outcome.trust_change,
            resonance_description=outcome.resonance_description,
            unlocked_dialogue_node=unlocked,
        )
