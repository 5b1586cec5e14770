"""One-hop traversal over a dialogue graph.

Runtime navigation never raises for broken content. A dangling choice
target is a content bug that the validators catch before release; if one
is hit anyway, the navigator logs it and stays on the current node.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wayfinder.engine.conditions import evaluate
from wayfinder.observability.logging import get_logger

if TYPE_CHECKING:
    import random
    from collections.abc import Collection, Mapping, Sequence

    from wayfinder.models.dialogue import ConditionalChoice, DialogueContent, DialogueGraph, DialogueNode
    from wayfinder.models.state import GameState

log = get_logger(__name__)

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class NavigationResult:
    """Outcome of advancing one turn.

    When ``moved`` is False, ``state`` is the input state and ``node`` is the
    node the player remains on (None if even that can't be found).
    """

    state: GameState
    node: DialogueNode | None
    moved: bool
    choice: ConditionalChoice | None = None


def resolve_character_id(speaker: str, known_ids: Collection[str]) -> str | None:
    """Map a display speaker ("Dr. Maya Patel") to a known character id ("maya")."""
    normalized = speaker.strip().lower()
    if normalized in known_ids:
        return normalized
    underscored = _TOKEN_SPLIT.sub("_", normalized).strip("_")
    if underscored in known_ids:
        return underscored
    for token in _TOKEN_SPLIT.split(normalized):
        if token and token in known_ids:
            return token
    return None


def _entry_allowed(node: DialogueNode, graph: DialogueGraph, state: GameState) -> bool:
    if node.required_state is None:
        return True
    known = {graph.character_id, *state.characters}
    character_id = resolve_character_id(node.speaker, known)
    return evaluate(
        node.required_state,
        state,
        character_id,
        skip_character_clauses=character_id is None,
    )


def get_available_nodes(
    graph: DialogueGraph,
    state: GameState,
    from_node_id: str | None = None,
) -> list[DialogueNode]:
    """Nodes one hop from ``from_node_id`` whose entry gate currently holds.

    Without ``from_node_id`` the start node is returned as the entry point,
    ungated. Results are ordered by descending priority, then by choice order.
    """
    if from_node_id is None:
        start = graph.get_node(graph.start_node_id)
        if start is None:
            log.error("start_node_missing", graph_id=graph.graph_id, node_id=graph.start_node_id)
            return []
        return [start]

    source = graph.get_node(from_node_id)
    if source is None:
        log.warning("source_node_missing", graph_id=graph.graph_id, node_id=from_node_id)
        return []

    seen: set[str] = set()
    available: list[DialogueNode] = []
    for choice in source.choices:
        if choice.next_node_id in seen:
            continue
        seen.add(choice.next_node_id)
        target = graph.get_node(choice.next_node_id)
        if target is None:
            log.warning(
                "dangling_choice_target",
                graph_id=graph.graph_id,
                node_id=from_node_id,
                target=choice.next_node_id,
            )
            continue
        if _entry_allowed(target, graph, state):
            available.append(target)

    return sorted(available, key=lambda node: node.priority, reverse=True)


def advance(graph: DialogueGraph, state: GameState, choice_id: str) -> NavigationResult:
    """Move to the target of ``choice_id`` on the current node.

    Only position changes here; the choice's consequences are applied by
    wayfinder.engine.mutations.
    """
    node = graph.get_node(state.current_node_id)
    if node is None:
        log.error("current_node_missing", graph_id=graph.graph_id, node_id=state.current_node_id)
        return NavigationResult(state=state, node=None, moved=False)

    choice = node.get_choice(choice_id)
    if choice is None:
        log.error("choice_missing", graph_id=graph.graph_id, node_id=node.node_id, choice_id=choice_id)
        return NavigationResult(state=state, node=node, moved=False)

    target = graph.get_node(choice.next_node_id)
    if target is None:
        log.error(
            "dangling_choice_target",
            graph_id=graph.graph_id,
            node_id=node.node_id,
            choice_id=choice_id,
            target=choice.next_node_id,
        )
        return NavigationResult(state=state, node=node, moved=False, choice=choice)

    new_state = state.model_copy(
        update={"current_node_id": target.node_id, "current_character_id": graph.character_id}
    )
    log.debug("advanced", graph_id=graph.graph_id, from_node=node.node_id, to_node=target.node_id)
    return NavigationResult(state=new_state, node=target, moved=True, choice=choice)


def locate_current_node(graphs: Mapping[str, DialogueGraph], state: GameState) -> DialogueNode | None:
    """Resolve the state's position; None if it is not inside the current character's graph."""
    graph = graphs.get(state.current_character_id)
    if graph is None:
        log.warning("current_graph_missing", character_id=state.current_character_id)
        return None
    node = graph.get_node(state.current_node_id)
    if node is None:
        log.warning(
            "current_node_outside_graph",
            character_id=state.current_character_id,
            node_id=state.current_node_id,
        )
    return node


def select_content(
    node: DialogueNode,
    recent_variations: Sequence[str] = (),
    rng: random.Random | None = None,
) -> DialogueContent:
    """Pick a content variation, preferring ones not in ``recent_variations``.

    Without ``rng`` the first eligible variation is returned.
    """
    fresh = [c for c in node.content if c.variation_id is None or c.variation_id not in recent_variations]
    candidates = fresh or node.content
    if rng is None:
        return candidates[0]
    return rng.choice(candidates)
