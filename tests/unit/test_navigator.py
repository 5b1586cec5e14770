"""Tests for graph navigation."""

from __future__ import annotations

import random

import pytest

from tests.fixtures.graphs import make_choice, make_graph, make_node
from wayfinder.engine.navigator import (
    advance,
    get_available_nodes,
    locate_current_node,
    resolve_character_id,
    select_content,
)
from wayfinder.models.dialogue import DialogueContent, DialogueGraph, DialogueNode
from wayfinder.models.state import GameState, StateCondition, ValueRange, create_new_game_state


@pytest.mark.parametrize(
    ("speaker", "known", "expected"),
    [
        ("maya", {"maya"}, "maya"),
        ("Dr. Maya Chen", {"maya", "samuel"}, "maya"),
        ("Samuel Washington", {"maya", "samuel"}, "samuel"),
        ("Maya Chen", {"maya_chen"}, "maya_chen"),
        ("The Station", {"maya", "samuel"}, None),
    ],
)
def test_resolve_character_id(speaker: str, known: set[str], expected: str | None) -> None:
    assert resolve_character_id(speaker, known) == expected


def _gated(node_id: str, trust_min: int, **kwargs: object) -> DialogueNode:
    return make_node(node_id, required_state=StateCondition(trust=ValueRange(min=trust_min)), **kwargs)


class TestAvailableNodes:
    def test_start_node_without_source(self) -> None:
        graph = make_graph([make_node("start")])
        state = create_new_game_state("p1", "maya")

        assert [n.node_id for n in get_available_nodes(graph, state)] == ["start"]

    def test_start_node_ignores_its_entry_gate(self) -> None:
        graph = make_graph([_gated("start", 5)])
        available = get_available_nodes(graph, create_new_game_state("p1", "maya"))
        assert [n.node_id for n in available] == ["start"]

    def test_one_hop_respects_entry_gates_and_priority(self) -> None:
        graph = make_graph(
            [
                make_node(
                    "start",
                    [
                        make_choice("a", "low"),
                        make_choice("b", "high"),
                        make_choice("c", "locked"),
                        make_choice("d", "missing"),
                        make_choice("e", "low"),
                    ],
                ),
                make_node("low", priority=0),
                make_node("high", priority=5),
                _gated("locked", 5),
            ]
        )
        state = create_new_game_state("p1", "maya")

        available = get_available_nodes(graph, state, "start")

        assert [n.node_id for n in available] == ["high", "low"]

    def test_unresolved_speaker_skips_character_clauses(self) -> None:
        gate = StateCondition(trust=ValueRange(min=5), has_global_flags=["station_open"])
        graph = make_graph(
            [
                make_node("start", [make_choice("go", "announcement")]),
                make_node("announcement", speaker="Station Announcer", required_state=gate),
            ]
        )
        state = GameState(player_id="p1")

        assert get_available_nodes(graph, state, "start") == []
        state.global_flags.add("station_open")
        assert [n.node_id for n in get_available_nodes(graph, state, "start")] == ["announcement"]

    def test_unknown_source_node(self) -> None:
        graph = make_graph([make_node("start")])
        assert get_available_nodes(graph, GameState(player_id="p1"), "nowhere") == []


class TestAdvance:
    def _graph(self) -> DialogueGraph:
        return make_graph(
            [
                make_node("start", [make_choice("go", "next"), make_choice("broken", "missing")]),
                make_node("next"),
            ]
        )

    def test_moves_to_target(self) -> None:
        state = create_new_game_state("p1", "", "start")
        result = advance(self._graph(), state, "go")

        assert result.moved is True
        assert result.node is not None
        assert result.node.node_id == "next"
        assert result.state.current_node_id == "next"
        assert result.state.current_character_id == "maya"
        assert state.current_node_id == "start"

    def test_dangling_target_holds_position(self) -> None:
        state = create_new_game_state("p1", "maya", "start")
        result = advance(self._graph(), state, "broken")

        assert result.moved is False
        assert result.state is state
        assert result.node is not None
        assert result.node.node_id == "start"

    def test_unknown_choice_holds_position(self) -> None:
        state = create_new_game_state("p1", "maya", "start")
        result = advance(self._graph(), state, "fly")

        assert result.moved is False
        assert result.choice is None

    def test_missing_current_node(self) -> None:
        state = create_new_game_state("p1", "maya", "gone")
        result = advance(self._graph(), state, "go")

        assert result.moved is False
        assert result.node is None


def test_locate_current_node() -> None:
    graph = make_graph([make_node("start")])
    state = create_new_game_state("p1", "maya", "start")

    node = locate_current_node({"maya": graph}, state)
    assert node is not None
    assert node.node_id == "start"

    assert locate_current_node({"maya": graph}, state.model_copy(update={"current_node_id": "x"})) is None
    assert locate_current_node({}, state) is None


class TestSelectContent:
    def _node(self) -> DialogueNode:
        return DialogueNode(
            node_id="n",
            speaker="Maya",
            content=[
                DialogueContent(text="First", variation_id="a"),
                DialogueContent(text="Second", variation_id="b"),
                DialogueContent(text="Third", variation_id="c"),
            ],
        )

    def test_first_by_default(self) -> None:
        assert select_content(self._node()).text == "First"

    def test_skips_recent_variations(self) -> None:
        assert select_content(self._node(), recent_variations=["a"]).text == "Second"

    def test_falls_back_when_all_recent(self) -> None:
        assert select_content(self._node(), recent_variations=["a", "b", "c"]).text == "First"

    def test_rng_picks_among_fresh(self) -> None:
        rng = random.Random(7)
        picks = {select_content(self._node(), ["a"], rng).variation_id for _ in range(20)}
        assert picks <= {"b", "c"}
