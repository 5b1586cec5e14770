"""Tests for dialogue graph validators."""

from __future__ import annotations

import pytest

from tests.fixtures.graphs import make_choice, make_graph, make_node
from wayfinder.models.dialogue import SimulationDescriptor, SimulationDifficulty
from wayfinder.models.registry import PatternAffinity, PatternUnlock
from wayfinder.models.state import Pattern, StateCondition, ValueRange
from wayfinder.validation.dialogue import (
    create_minimal_game_state,
    validate_all_dialogue_graphs,
    validate_dialogue_gating,
    validate_dialogue_graph,
    validate_pattern_unlocks,
)
from wayfinder.validation.types import (
    ContentReport,
    GatingIssueType,
    PatternUnlockIssueType,
    ValidationResult,
)

TRUST_10 = StateCondition(trust=ValueRange(min=10))


def _issue_types(issues: list) -> list[str]:
    return [issue.issue_type.value for issue in issues]


def test_minimal_state_knows_only_the_character() -> None:
    state = create_minimal_game_state("maya")

    assert list(state.characters) == ["maya"]
    assert state.characters["maya"].trust == 0
    assert state.global_flags == set()


class TestGating:
    """validate_dialogue_gating issue detection."""

    def test_clean_graph_has_no_issues(self) -> None:
        graph = make_graph(
            [make_node("start", [make_choice("go", "end")]), make_node("end", tags=["terminal"])]
        )
        assert validate_dialogue_gating(graph, "maya") == []

    def test_dangling_target_is_error(self) -> None:
        graph = make_graph([make_node("start", [make_choice("go", "nowhere")])])

        issues = validate_dialogue_gating(graph, "maya")

        assert _issue_types(issues) == ["unreachable_next_node"]
        assert issues[0].severity == "error"
        assert issues[0].target_node_id == "nowhere"
        assert "nowhere" in issues[0].details
        assert validate_dialogue_graph(graph, "maya").valid is False

    def test_no_choices_is_warning(self) -> None:
        graph = make_graph([make_node("start", [make_choice("go", "stub")]), make_node("stub")])

        issues = validate_dialogue_gating(graph, "maya")

        assert _issue_types(issues) == ["no_choices"]
        assert issues[0].severity == "warning"
        assert issues[0].node_id == "stub"

    @pytest.mark.parametrize("tag", ["terminal", "simulation", "boundary"])
    def test_tagged_end_nodes_may_have_no_choices(self, tag: str) -> None:
        graph = make_graph([make_node("start", [make_choice("go", "end")]), make_node("end", tags=[tag])])
        assert validate_dialogue_gating(graph, "maya") == []

    def test_simulation_descriptor_allows_no_choices(self) -> None:
        descriptor = SimulationDescriptor(phase=1, difficulty=SimulationDifficulty.INTRODUCTION)
        graph = make_graph(
            [make_node("start", [make_choice("go", "sim")]), make_node("sim", simulation=descriptor)]
        )
        assert validate_dialogue_gating(graph, "maya") == []

    def test_all_choices_gated_is_error(self) -> None:
        graph = make_graph(
            [
                make_node(
                    "start",
                    [
                        make_choice("a", "end", visible_condition=TRUST_10),
                        make_choice("b", "end", visible_condition=TRUST_10),
                    ],
                ),
                make_node("end", tags=["terminal"]),
            ]
        )

        issues = validate_dialogue_gating(graph, "maya")

        assert _issue_types(issues) == ["all_choices_gated"]
        assert issues[0].severity == "error"
        assert issues[0].node_id == "start"

    def test_enabled_conditions_do_not_count_as_gated(self) -> None:
        graph = make_graph(
            [
                make_node("start", [make_choice("a", "end", enabled_condition=TRUST_10)]),
                make_node("end", tags=["terminal"]),
            ]
        )
        assert validate_dialogue_gating(graph, "maya") == []

    def test_nodes_with_unmet_entry_gate_are_skipped(self) -> None:
        graph = make_graph(
            [
                make_node("start", [make_choice("go", "later")]),
                make_node(
                    "later",
                    [make_choice("a", "start", visible_condition=TRUST_10)],
                    required_state=StateCondition(trust=ValueRange(min=5)),
                ),
            ]
        )
        assert validate_dialogue_gating(graph, "maya") == []

    def test_custom_default_state(self) -> None:
        graph = make_graph(
            [
                make_node("start", [make_choice("a", "end", visible_condition=TRUST_10)]),
                make_node("end", tags=["terminal"]),
            ]
        )
        trusted = create_minimal_game_state("maya")
        trusted.characters["maya"].trust = 10

        assert validate_dialogue_gating(graph, "maya", trusted) == []

    def test_allow_listed_nodes_are_skipped(self) -> None:
        graph = make_graph([make_node("start", [make_choice("go", "stub")]), make_node("stub")])
        assert validate_dialogue_gating(graph, "maya", allow_listed={"stub"}) == []

    def test_missing_start_node(self) -> None:
        graph = make_graph([make_node("other", tags=["terminal"])], start_node_id="start")

        issues = validate_dialogue_gating(graph, "maya")

        assert _issue_types(issues) == ["missing_start_node"]
        assert issues[0].severity == "error"


class TestPatternUnlocks:
    def test_default_registry_reports_missing_nodes(self) -> None:
        graph = make_graph([make_node("start", tags=["terminal"])])

        issues = validate_pattern_unlocks("maya", graph)

        assert {issue.node_id for issue in issues} == {
            "maya_workshop_invitation",
            "maya_collaboration_offer",
            "maya_technical_deep_dive",
        }
        assert all(issue.issue_type is PatternUnlockIssueType.MISSING_NODE for issue in issues)
        assert all(issue.severity == "error" for issue in issues)

    def test_character_without_unlocks(self) -> None:
        graph = make_graph([make_node("start", tags=["terminal"])], character_id="samuel")
        assert validate_pattern_unlocks("samuel", graph) == []

    def test_threshold_and_description_warnings(self) -> None:
        graph = make_graph([make_node("start", tags=["terminal"]), make_node("secret", tags=["terminal"])])
        affinities = {
            "maya": PatternAffinity(
                character_id="maya",
                primary=Pattern.BUILDING,
                secondary=Pattern.ANALYTICAL,
                friction=Pattern.HELPING,
                pattern_unlocks=[
                    PatternUnlock(pattern=Pattern.BUILDING, threshold=150, unlocked_node_id="secret"),
                ],
            )
        }

        issues = validate_pattern_unlocks("maya", graph, affinities)

        assert _issue_types(issues) == ["invalid_threshold", "empty_description"]
        assert all(issue.severity == "warning" for issue in issues)


class TestResults:
    def test_warnings_do_not_invalidate(self) -> None:
        graph = make_graph([make_node("start", [make_choice("go", "stub")]), make_node("stub")])

        result = validate_dialogue_graph(graph, "maya", affinities={})

        assert result.valid is True
        assert result.warning_count == 1
        assert result.summary == "maya: 0 errors, 1 warnings"

    def test_validate_all_keeps_graph_keys(self) -> None:
        maya = make_graph([make_node("start", [make_choice("go", "gone")])])
        samuel = make_graph([make_node("s", tags=["terminal"])], character_id="samuel")

        results = validate_all_dialogue_graphs({"maya": maya, "samuel_revisit": samuel}, affinities={})

        assert set(results) == {"maya", "samuel_revisit"}
        assert results["maya"].valid is False
        assert results["samuel_revisit"].character_id == "samuel"
        assert results["samuel_revisit"].valid is True

    def test_content_report_summary(self) -> None:
        report = ContentReport(
            graphs={
                "a": ValidationResult(character_id="a"),
                "b": validate_dialogue_graph(
                    make_graph([make_node("s", [make_choice("go", "x")])], character_id="b"), "b"
                ),
            }
        )

        assert report.has_failures is True
        assert report.has_warnings is False
        assert report.summary == "graphs: 1 failed, 1 passed"
        assert GatingIssueType.UNREACHABLE_NEXT_NODE in {
            issue.issue_type for issue in report.graphs["b"].gating_issues
        }
