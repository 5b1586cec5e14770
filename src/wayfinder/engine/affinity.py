"""Pattern-character affinities and resonant trust changes.

Some patterns resonate with a character and some create friction. The
player's dominant pattern scales every trust change with that character;
the pattern of the specific choice adds a smaller adjustment on top.
Friction reduces trust gain but never blocks it.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from wayfinder.engine.orbs import dominant_pattern, orb_fill_levels, round_half_up
from wayfinder.models.registry import AffinityLevel, PatternAffinity, PatternUnlock
from wayfinder.models.state import Pattern

if TYPE_CHECKING:
    from collections.abc import Mapping

    from wayfinder.models.state import PlayerPatterns

AFFINITY_MULTIPLIERS: Mapping[AffinityLevel, float] = MappingProxyType(
    {
        AffinityLevel.PRIMARY: 1.5,
        AffinityLevel.SECONDARY: 1.25,
        AffinityLevel.NEUTRAL: 1.0,
        AffinityLevel.FRICTION: 0.75,
    }
)

# A dominant pattern only counts once it holds this many orbs.
DOMINANT_PATTERN_MIN_ORBS = 3

# Share of the multiplier effect applied for a single choice's pattern.
CHOICE_PATTERN_WEIGHT = 0.5

DEFAULT_PATTERN_AFFINITIES: Mapping[str, PatternAffinity] = MappingProxyType(
    {
        "maya": PatternAffinity(
            character_id="maya",
            primary=Pattern.BUILDING,
            secondary=Pattern.ANALYTICAL,
            neutral=[Pattern.PATIENCE, Pattern.EXPLORING],
            friction=Pattern.HELPING,
            resonance_descriptions={
                Pattern.BUILDING: "Maya sees a kindred maker spirit in you. Her eyes light up when you talk about creating things.",
                Pattern.ANALYTICAL: "Your systematic thinking reminds Maya of how she approaches robotics problems.",
                Pattern.PATIENCE: "Maya appreciates that you don't rush her, even if she's not sure what to do with that kindness.",
                Pattern.EXPLORING: "Your curiosity opens doors Maya didn't know existed.",
                Pattern.HELPING: "Maya tenses slightly. She's spent her whole life being helped into a box she didn't choose.",
            },
            pattern_unlocks=[
                PatternUnlock(
                    pattern=Pattern.BUILDING,
                    threshold=40,
                    unlocked_node_id="maya_workshop_invitation",
                    description="Maya invites you to see her secret workshop",
                ),
                PatternUnlock(
                    pattern=Pattern.BUILDING,
                    threshold=70,
                    unlocked_node_id="maya_collaboration_offer",
                    description="Maya asks for your help on a robotics project",
                ),
                PatternUnlock(
                    pattern=Pattern.ANALYTICAL,
                    threshold=50,
                    unlocked_node_id="maya_technical_deep_dive",
                    description="Maya shares the technical details she usually hides",
                ),
            ],
        ),
        "samuel": PatternAffinity(
            character_id="samuel",
            primary=Pattern.PATIENCE,
            secondary=Pattern.HELPING,
            neutral=[Pattern.ANALYTICAL, Pattern.EXPLORING],
            friction=Pattern.BUILDING,
            resonance_descriptions={
                Pattern.PATIENCE: "Samuel nods slowly. You understand that some things can't be rushed.",
                Pattern.HELPING: "Samuel recognizes a fellow guide in you.",
                Pattern.ANALYTICAL: "Samuel appreciates your thoughtfulness, even if he sees things differently.",
                Pattern.EXPLORING: "Your curiosity reminds Samuel of his younger self.",
                Pattern.BUILDING: "Samuel watches carefully. Not everything needs to be fixed immediately.",
            },
        ),
        "devon": PatternAffinity(
            character_id="devon",
            primary=Pattern.ANALYTICAL,
            secondary=Pattern.BUILDING,
            neutral=[Pattern.PATIENCE, Pattern.EXPLORING],
            friction=Pattern.HELPING,
            resonance_descriptions={
                Pattern.ANALYTICAL: "Devon's posture relaxes. You speak his language.",
                Pattern.BUILDING: "Devon respects that you understand making things.",
                Pattern.PATIENCE: "Devon appreciates that you don't push for immediate answers.",
                Pattern.EXPLORING: "Your questions make Devon think in new ways.",
                Pattern.HELPING: "Devon shifts uncomfortably. He prefers systems to sentiment.",
            },
        ),
    }
)


@dataclass(frozen=True)
class ResonantTrustChange:
    modified_trust: int
    resonance_triggered: bool
    resonance_description: str | None


def _registry(affinities: Mapping[str, PatternAffinity] | None) -> Mapping[str, PatternAffinity]:
    return DEFAULT_PATTERN_AFFINITIES if affinities is None else affinities


def get_pattern_affinity_level(
    character_id: str,
    pattern: Pattern,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> AffinityLevel:
    """Affinity between a character and a pattern; neutral for unknown characters."""
    affinity = _registry(affinities).get(character_id)
    if affinity is None:
        return AffinityLevel.NEUTRAL
    if affinity.primary is pattern:
        return AffinityLevel.PRIMARY
    if affinity.secondary is pattern:
        return AffinityLevel.SECONDARY
    if affinity.friction is pattern:
        return AffinityLevel.FRICTION
    return AffinityLevel.NEUTRAL


def get_trust_multiplier(
    character_id: str,
    pattern: Pattern | None,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> float:
    if pattern is None:
        return 1.0
    return AFFINITY_MULTIPLIERS[get_pattern_affinity_level(character_id, pattern, affinities)]


def get_resonance_description(
    character_id: str,
    pattern: Pattern,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> str | None:
    affinity = _registry(affinities).get(character_id)
    if affinity is None:
        return None
    return affinity.resonance_descriptions.get(pattern) or None


def calculate_resonant_trust_change(
    base_trust_change: int,
    character_id: str,
    patterns: PlayerPatterns,
    choice_pattern: Pattern | None = None,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> ResonantTrustChange:
    """Scale a trust change by the player's affinity with ``character_id``.

    The dominant pattern (who the player is) applies the full multiplier.
    A choice pattern different from the dominant one (what the player just
    did) adds half of its own multiplier effect.
    """
    dominant = dominant_pattern(patterns, min_threshold=DOMINANT_PATTERN_MIN_ORBS)
    modified = base_trust_change
    triggered = False
    description: str | None = None

    if dominant is not None:
        multiplier = get_trust_multiplier(character_id, dominant, affinities)
        if multiplier != 1.0:
            modified = round_half_up(base_trust_change * multiplier)
            triggered = True
            description = get_resonance_description(character_id, dominant, affinities)

    if choice_pattern is not None and choice_pattern is not dominant:
        choice_multiplier = get_trust_multiplier(character_id, choice_pattern, affinities)
        if choice_multiplier != 1.0:
            adjustment = base_trust_change * (choice_multiplier - 1.0) * CHOICE_PATTERN_WEIGHT
            modified += round_half_up(adjustment)
            if not triggered:
                triggered = True
                description = get_resonance_description(character_id, choice_pattern, affinities)

    return ResonantTrustChange(
        modified_trust=modified,
        resonance_triggered=triggered,
        resonance_description=description,
    )


def get_pattern_unlocks(
    character_id: str,
    patterns: PlayerPatterns,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> list[str]:
    """Node ids revealed by the player's current orb fill levels."""
    affinity = _registry(affinities).get(character_id)
    if affinity is None:
        return []
    fills = orb_fill_levels(patterns)
    return [
        unlock.unlocked_node_id
        for unlock in affinity.pattern_unlocks
        if fills[unlock.pattern] >= unlock.threshold
    ]
