"""Static check that entry gates are guarded by their incoming edges.

A node with ``required_state`` should only be reachable through choices
that either state the same requirement or make it true on the way (through
the source node's own gate, its on-enter changes, the choice's consequence
or the orb the choice earns). An edge that does neither lets the player
walk into a node whose entry gate is false.

This is a contract check over static content; it does not evaluate any
particular player state. Start nodes are skipped. Graphs keyed
``<base>_revisit`` override nodes of ``<base>``, so edges from the sibling
variant into an overridden node are ignored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from wayfinder.models.dialogue import DialogueGraph
    from wayfinder.models.state import RelationshipStatus, StateChange, StateCondition

REVISIT_SUFFIX = "_revisit"


@dataclass(frozen=True)
class IncomingEdge:
    from_graph: str
    from_node_id: str
    choice_id: str
    visible_condition: StateCondition | None
    enabled_condition: StateCondition | None
    consequence: StateChange | None
    pattern: str | None
    from_node_required_state: StateCondition | None
    from_node_on_enter: tuple[StateChange, ...] = ()


@dataclass(frozen=True)
class UnguardedNode:
    graph_key: str
    node_id: str
    required_state: StateCondition
    unguarded_incoming_count: int
    example_incoming: IncomingEdge | None


@dataclass
class GraphGuardingTotals:
    required_state_nodes: int = 0
    unguarded_nodes: int = 0


@dataclass
class RequiredStateGuardingReport:
    generated_at: str
    graphs: int
    nodes_with_required_state: int
    by_graph: dict[str, GraphGuardingTotals] = field(default_factory=dict)
    unguarded: list[UnguardedNode] = field(default_factory=list)


def _sibling_graph_key(graph_key: str) -> str:
    if graph_key.endswith(REVISIT_SUFFIX):
        return graph_key.removesuffix(REVISIT_SUFFIX)
    return f"{graph_key}{REVISIT_SUFFIX}"


def _collect_incoming_edges(graphs: Mapping[str, DialogueGraph]) -> dict[str, list[IncomingEdge]]:
    incoming: dict[str, list[IncomingEdge]] = {}
    for graph_key, graph in graphs.items():
        for node in graph.nodes.values():
            for choice in node.choices:
                edge = IncomingEdge(
                    from_graph=graph_key,
                    from_node_id=node.node_id,
                    choice_id=choice.choice_id,
                    visible_condition=choice.visible_condition,
                    enabled_condition=choice.enabled_condition,
                    consequence=choice.consequence,
                    pattern=choice.pattern.value if choice.pattern else None,
                    from_node_required_state=node.required_state,
                    from_node_on_enter=tuple(node.on_enter),
                )
                incoming.setdefault(choice.next_node_id, []).append(edge)
    return incoming


def _edges_for_graph_variant(
    graphs: Mapping[str, DialogueGraph],
    graph_key: str,
    node_id: str,
    edges: list[IncomingEdge],
) -> list[IncomingEdge]:
    sibling_key = _sibling_graph_key(graph_key)
    sibling = graphs.get(sibling_key)
    if sibling is None or sibling.get_node(node_id) is None:
        return edges
    return [edge for edge in edges if edge.from_graph != sibling_key]


def condition_guards(required: StateCondition, guard: StateCondition | None) -> bool:
    """True when ``guard`` is at least as strict as ``required`` on every axis ``required`` uses."""
    if guard is None:
        return False

    if required.trust is not None:
        if guard.trust is None:
            return False
        if required.trust.min is not None and (guard.trust.min is None or guard.trust.min < required.trust.min):
            return False
        if required.trust.max is not None and (guard.trust.max is None or guard.trust.max > required.trust.max):
            return False

    if required.relationship and (
        not guard.relationship or not set(guard.relationship) <= set(required.relationship)
    ):
        return False

    flag_axes = (
        (required.has_global_flags, guard.has_global_flags),
        (required.lacks_global_flags, guard.lacks_global_flags),
        (required.has_knowledge_flags, guard.has_knowledge_flags),
        (required.lacks_knowledge_flags, guard.lacks_knowledge_flags),
    )
    for required_flags, guard_flags in flag_axes:
        if required_flags and not set(required_flags) <= set(guard_flags):
            return False

    for pattern, bounds in required.patterns.items():
        guard_bounds = guard.patterns.get(pattern)
        if guard_bounds is None:
            return False
        if bounds.min is not None and (guard_bounds.min is None or guard_bounds.min < bounds.min):
            return False
        if bounds.max is not None and (guard_bounds.max is None or guard_bounds.max > bounds.max):
            return False

    return True


@dataclass
class _ImpliedState:
    """What is known to hold on arrival through one edge."""

    trust_min: int = 0
    trust_max: int | None = None
    relationships: set[RelationshipStatus] | None = None
    has_global_flags: set[str] = field(default_factory=set)
    lacks_global_flags: set[str] = field(default_factory=set)
    has_knowledge_flags: set[str] = field(default_factory=set)
    lacks_knowledge_flags: set[str] = field(default_factory=set)
    patterns_min: dict[str, int] = field(default_factory=dict)
    patterns_max: dict[str, float] = field(default_factory=dict)

    def merge_condition(self, condition: StateCondition | None) -> None:
        if condition is None:
            return
        if condition.trust is not None:
            if condition.trust.min is not None:
                self.trust_min = max(self.trust_min, condition.trust.min)
            if condition.trust.max is not None:
                self.trust_max = (
                    condition.trust.max if self.trust_max is None else min(self.trust_max, condition.trust.max)
                )
        if condition.relationship:
            allowed = set(condition.relationship)
            self.relationships = allowed if self.relationships is None else self.relationships & allowed
        self.has_global_flags.update(condition.has_global_flags)
        self.lacks_global_flags.update(condition.lacks_global_flags)
        self.has_knowledge_flags.update(condition.has_knowledge_flags)
        self.lacks_knowledge_flags.update(condition.lacks_knowledge_flags)
        for pattern, bounds in condition.patterns.items():
            if bounds.min is not None:
                self.patterns_min[pattern.value] = max(self.patterns_min.get(pattern.value, 0), bounds.min)
            if bounds.max is not None:
                self.patterns_max[pattern.value] = min(self.patterns_max.get(pattern.value, math.inf), bounds.max)

    def apply_change(self, change: StateChange | None, character_id: str) -> None:
        if change is None:
            return
        for flag in change.add_global_flags:
            self.has_global_flags.add(flag)
            self.lacks_global_flags.discard(flag)
        for flag in change.remove_global_flags:
            self.has_global_flags.discard(flag)
            self.lacks_global_flags.add(flag)

        if change.character_id != character_id:
            return
        for flag in change.add_knowledge_flags:
            self.has_knowledge_flags.add(flag)
            self.lacks_knowledge_flags.discard(flag)
        for flag in change.remove_knowledge_flags:
            self.has_knowledge_flags.discard(flag)
            self.lacks_knowledge_flags.add(flag)
        if change.trust_change:
            self.trust_min = max(0, self.trust_min + change.trust_change)
            if self.trust_max is not None:
                self.trust_max = max(0, self.trust_max + change.trust_change)
        if change.set_relationship_status is not None:
            self.relationships = {change.set_relationship_status}

    def apply_changes(self, changes: Iterable[StateChange], character_id: str) -> None:
        for change in changes:
            self.apply_change(change, character_id)

    def satisfies(self, required: StateCondition) -> bool:
        if required.trust is not None:
            if required.trust.min is not None and self.trust_min < required.trust.min:
                return False
            if (
                required.trust.max is not None
                and self.trust_max is not None
                and self.trust_max > required.trust.max
            ):
                return False

        if required.relationship and (
            self.relationships is None or not self.relationships <= set(required.relationship)
        ):
            return False

        for flag in required.has_global_flags:
            if flag not in self.has_global_flags or flag in self.lacks_global_flags:
                return False
        for flag in required.lacks_global_flags:
            if flag not in self.lacks_global_flags or flag in self.has_global_flags:
                return False
        for flag in required.has_knowledge_flags:
            if flag not in self.has_knowledge_flags or flag in self.lacks_knowledge_flags:
                return False
        for flag in required.lacks_knowledge_flags:
            if flag not in self.lacks_knowledge_flags or flag in self.has_knowledge_flags:
                return False

        for pattern, bounds in required.patterns.items():
            low = self.patterns_min.get(pattern.value, 0)
            high = self.patterns_max.get(pattern.value, math.inf)
            if bounds.min is not None and low < bounds.min:
                return False
            if bounds.max is not None and high > bounds.max:
                return False
        return True


def edge_guards_required_state(required: StateCondition, edge: IncomingEdge, character_id: str) -> bool:
    if condition_guards(required, edge.visible_condition):
        return True
    if condition_guards(required, edge.enabled_condition):
        return True

    implied = _ImpliedState()
    implied.merge_condition(edge.from_node_required_state)
    implied.merge_condition(edge.visible_condition)
    implied.merge_condition(edge.enabled_condition)
    implied.apply_changes(edge.from_node_on_enter, character_id)
    implied.apply_change(edge.consequence, character_id)
    # Taking the choice earns one orb of its pattern.
    if edge.pattern is not None:
        implied.patterns_min[edge.pattern] = max(implied.patterns_min.get(edge.pattern, 0), 1)
    return implied.satisfies(required)


def build_required_state_guarding_report(graphs: Mapping[str, DialogueGraph]) -> RequiredStateGuardingReport:
    """List every gated node reachable through at least one unguarded edge."""
    incoming = _collect_incoming_edges(graphs)
    start_node_ids = {graph.start_node_id for graph in graphs.values()}

    report = RequiredStateGuardingReport(
        generated_at=datetime.now(UTC).isoformat(),
        graphs=len(graphs),
        nodes_with_required_state=0,
    )

    for graph_key, graph in graphs.items():
        totals = GraphGuardingTotals()
        for node in graph.nodes.values():
            required = node.required_state
            if required is None or required.is_empty() or node.node_id in start_node_ids:
                continue
            totals.required_state_nodes += 1
            report.nodes_with_required_state += 1

            edges = _edges_for_graph_variant(graphs, graph_key, node.node_id, incoming.get(node.node_id, []))
            unguarded = [e for e in edges if not edge_guards_required_state(required, e, graph.character_id)]
            if unguarded:
                totals.unguarded_nodes += 1
                report.unguarded.append(
                    UnguardedNode(
                        graph_key=graph_key,
                        node_id=node.node_id,
                        required_state=required,
                        unguarded_incoming_count=len(unguarded),
                        example_incoming=unguarded[0],
                    )
                )
        report.by_graph[graph_key] = totals

    report.unguarded.sort(key=lambda u: f"{u.graph_key}/{u.node_id}")
    return report
