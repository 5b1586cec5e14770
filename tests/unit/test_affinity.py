"""Tests for pattern affinities and resonant trust changes."""

from __future__ import annotations

import pytest

from wayfinder.engine.affinity import (
    DEFAULT_PATTERN_AFFINITIES,
    calculate_resonant_trust_change,
    get_pattern_affinity_level,
    get_pattern_unlocks,
    get_resonance_description,
    get_trust_multiplier,
)
from wayfinder.models.registry import AffinityLevel, PatternAffinity
from wayfinder.models.state import Pattern, PlayerPatterns


@pytest.mark.parametrize(
    ("pattern", "level"),
    [
        (Pattern.BUILDING, AffinityLevel.PRIMARY),
        (Pattern.ANALYTICAL, AffinityLevel.SECONDARY),
        (Pattern.PATIENCE, AffinityLevel.NEUTRAL),
        (Pattern.HELPING, AffinityLevel.FRICTION),
    ],
)
def test_maya_affinity_levels(pattern: Pattern, level: AffinityLevel) -> None:
    assert get_pattern_affinity_level("maya", pattern) is level


def test_unknown_character_is_neutral() -> None:
    assert get_pattern_affinity_level("nobody", Pattern.BUILDING) is AffinityLevel.NEUTRAL
    assert get_trust_multiplier("nobody", Pattern.BUILDING) == 1.0
    assert get_resonance_description("nobody", Pattern.BUILDING) is None


def test_no_pattern_multiplier_is_one() -> None:
    assert get_trust_multiplier("maya", None) == 1.0


class TestResonantTrustChange:
    def test_primary_dominant_pattern_amplifies(self) -> None:
        result = calculate_resonant_trust_change(2, "maya", PlayerPatterns(building=3))

        assert result.modified_trust == 3
        assert result.resonance_triggered is True
        assert result.resonance_description is not None
        assert "kindred maker" in result.resonance_description

    def test_dominant_pattern_needs_three_orbs(self) -> None:
        result = calculate_resonant_trust_change(2, "maya", PlayerPatterns(building=2))

        assert result.modified_trust == 2
        assert result.resonance_triggered is False
        assert result.resonance_description is None

    def test_friction_reduces_but_never_blocks(self) -> None:
        result = calculate_resonant_trust_change(4, "maya", PlayerPatterns(helping=5))

        assert result.modified_trust == 3
        assert result.resonance_triggered is True

    def test_choice_pattern_adds_half_effect(self) -> None:
        # 2 * (1.5 - 1) * 0.5 = 0.5, rounded half up
        result = calculate_resonant_trust_change(2, "maya", PlayerPatterns(), Pattern.BUILDING)

        assert result.modified_trust == 3
        assert result.resonance_triggered is True

    def test_choice_pattern_friction(self) -> None:
        # 8 * (0.75 - 1) * 0.5 = -1
        result = calculate_resonant_trust_change(8, "maya", PlayerPatterns(), Pattern.HELPING)
        assert result.modified_trust == 7

    def test_choice_matching_dominant_is_not_counted_twice(self) -> None:
        result = calculate_resonant_trust_change(2, "maya", PlayerPatterns(building=3), Pattern.BUILDING)
        assert result.modified_trust == 3

    def test_negative_change_rounds_half_up(self) -> None:
        # -2 * 1.5 = -3 exactly; -1 * 1.5 = -1.5 rounds to -1
        assert calculate_resonant_trust_change(-2, "maya", PlayerPatterns(building=3)).modified_trust == -3
        assert calculate_resonant_trust_change(-1, "maya", PlayerPatterns(building=3)).modified_trust == -1

    def test_custom_registry(self) -> None:
        affinities = {
            "ada": PatternAffinity(
                character_id="ada",
                primary=Pattern.EXPLORING,
                secondary=Pattern.PATIENCE,
                friction=Pattern.BUILDING,
            )
        }
        result = calculate_resonant_trust_change(
            2, "ada", PlayerPatterns(exploring=4), affinities=affinities
        )

        assert result.modified_trust == 3
        assert result.resonance_description is None


class TestPatternUnlocks:
    def test_unlocks_follow_orb_fill(self) -> None:
        assert get_pattern_unlocks("maya", PlayerPatterns(building=39)) == []
        assert get_pattern_unlocks("maya", PlayerPatterns(building=40)) == ["maya_workshop_invitation"]
        assert get_pattern_unlocks("maya", PlayerPatterns(building=70, analytical=50)) == [
            "maya_workshop_invitation",
            "maya_collaboration_offer",
            "maya_technical_deep_dive",
        ]

    def test_unknown_character_has_no_unlocks(self) -> None:
        assert get_pattern_unlocks("nobody", PlayerPatterns(building=100)) == []

    def test_default_registry_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            DEFAULT_PATTERN_AFFINITIES["ada"] = DEFAULT_PATTERN_AFFINITIES["maya"]  # type: ignore[index]
