"""Pattern orb aggregation, tiers and one-time tier unlocks.

Every pattern point is an orb. Total orbs across the five patterns place the
player in a tier; the first time a tier is reached, calculate_orb_resonance
reports it through ``tier_just_unlocked`` and the caller persists the tier's
flag. Once the flag is in the state the unlock is never reported again, so
recomputing after a reload is safe.

Orb *fill* is a separate, per-pattern measure (percent of MAX_ORB_COUNT) used
by ability unlocks and orb-fill gates on choices.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from wayfinder.models.state import PATTERN_ORDER, Pattern, PlayerPatterns

if TYPE_CHECKING:
    from collections.abc import Collection


class OrbTier(StrEnum):
    NASCENT = "nascent"
    EMERGING = "emerging"
    DEVELOPING = "developing"
    FLOURISHING = "flourishing"
    MASTERED = "mastered"


# Ascending; each tier's minimum total orbs.
TIER_THRESHOLDS: tuple[tuple[OrbTier, int], ...] = (
    (OrbTier.NASCENT, 0),
    (OrbTier.EMERGING, 10),
    (OrbTier.DEVELOPING, 30),
    (OrbTier.FLOURISHING, 60),
    (OrbTier.MASTERED, 100),
)

ORB_TIER_FLAGS: dict[OrbTier, str] = {
    tier: f"orb_tier_{tier.value}" for tier, _ in TIER_THRESHOLDS if tier is not OrbTier.NASCENT
}

# Samuel's node for each tier's first crossing.
ORB_DIALOGUE_UNLOCKS: dict[OrbTier, str | None] = {
    OrbTier.NASCENT: None,
    OrbTier.EMERGING: "samuel_orb_emerging",
    OrbTier.DEVELOPING: "samuel_orb_developing",
    OrbTier.FLOURISHING: "samuel_orb_flourishing",
    OrbTier.MASTERED: "samuel_orb_mastered",
}

_TIER_PROMPTS: dict[OrbTier, str] = {
    OrbTier.NASCENT: "",
    OrbTier.EMERGING: "Something stirs in the patterns. Your choices are taking shape.",
    OrbTier.DEVELOPING: "The station recognizes your way of seeing.",
    OrbTier.FLOURISHING: "The platforms respond to you now.",
    OrbTier.MASTERED: "You know who you are.",
}

MAX_ORB_COUNT = 100


@dataclass(frozen=True)
class OrbResonance:
    total_orbs: int
    current_tier: OrbTier
    tier_just_unlocked: OrbTier | None
    dominant_pattern: Pattern | None


@dataclass(frozen=True)
class TierProgress:
    current_tier: OrbTier
    next_tier: OrbTier | None
    orbs_to_next: int
    progress: int


@dataclass(frozen=True)
class PatternAbility:
    """A pattern ability unlocked at an orb fill threshold."""

    ability_id: str
    pattern: Pattern
    name: str
    description: str
    threshold: int


def _ability(pattern: Pattern, index: int, name: str, description: str, threshold: int) -> PatternAbility:
    return PatternAbility(f"{pattern.value}-{index}", pattern, name, description, threshold)


PATTERN_ABILITIES: tuple[PatternAbility, ...] = (
    _ability(Pattern.ANALYTICAL, 1, "Read Between Lines", "See subtext hints in character dialogue", 25),
    _ability(Pattern.ANALYTICAL, 2, "Pattern Recognition", "Notice repeated behaviors and connections", 50),
    _ability(Pattern.ANALYTICAL, 3, "Strategic Insight", "Unlock analytical dialogue options", 85),
    _ability(Pattern.PATIENCE, 1, "Take Your Time", '"Wait and observe" choices appear', 25),
    _ability(Pattern.PATIENCE, 2, "Deep Listening", "Characters reveal more when you wait", 50),
    _ability(Pattern.PATIENCE, 3, "Measured Response", "Thoughtful counter-arguments unlock", 85),
    _ability(Pattern.EXPLORING, 1, "Curiosity Rewarded", "Extra worldbuilding details appear", 25),
    _ability(Pattern.EXPLORING, 2, "Ask the Right Questions", "Probing dialogue options unlock", 50),
    _ability(Pattern.EXPLORING, 3, "Seeker's Intuition", "Find hidden conversation paths", 85),
    _ability(Pattern.HELPING, 1, "Empathy Sense", "See emotional state hints on characters", 25),
    _ability(Pattern.HELPING, 2, "Supportive Presence", "Comfort and support options unlock", 50),
    _ability(Pattern.HELPING, 3, "Heart to Heart", "Deep emotional dialogue branches", 85),
    _ability(Pattern.BUILDING, 1, "See the Structure", "Reference your earlier decisions", 25),
    _ability(Pattern.BUILDING, 2, "Decisive Action", "Bold and direct choice options", 50),
    _ability(Pattern.BUILDING, 3, "Architect's Vision", "Shape conversation outcomes", 85),
)


# ---------------------------------------------------------------------------
# Totals and dominance
# ---------------------------------------------------------------------------


def total_orbs(patterns: PlayerPatterns) -> int:
    return sum(patterns.get(pattern) for pattern in PATTERN_ORDER)


def dominant_pattern(patterns: PlayerPatterns, min_threshold: int = 1) -> Pattern | None:
    """Return the highest pattern, or None if it is below ``min_threshold``.

    Ties go to the pattern that comes first in PATTERN_ORDER. With the
    default threshold, all-zero patterns have no dominant pattern.
    """
    best: Pattern | None = None
    best_value = -1
    for pattern in PATTERN_ORDER:
        value = patterns.get(pattern)
        if value > best_value:
            best, best_value = pattern, value
    if best is None or best_value < max(min_threshold, 1):
        return None
    return best


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def tier_for_total(total: int) -> OrbTier:
    current = OrbTier.NASCENT
    for tier, minimum in TIER_THRESHOLDS:
        if total >= minimum:
            current = tier
    return current


def get_orb_tier_flags(tier: OrbTier) -> list[str]:
    """Return the flags granted by reaching ``tier``, including all lower tiers."""
    flags: list[str] = []
    for candidate, _ in TIER_THRESHOLDS:
        if candidate in ORB_TIER_FLAGS:
            flags.append(ORB_TIER_FLAGS[candidate])
        if candidate is tier:
            break
    return flags


def has_reached_orb_tier(tier: OrbTier, flags: Collection[str]) -> bool:
    if tier is OrbTier.NASCENT:
        return True
    return ORB_TIER_FLAGS[tier] in flags


def calculate_orb_resonance(patterns: PlayerPatterns, existing_flags: Collection[str]) -> OrbResonance:
    """Compute the current tier and whether it was reached just now.

    ``tier_just_unlocked`` is the current tier only while its flag is missing
    from ``existing_flags``; nascent is never reported.
    """
    total = total_orbs(patterns)
    tier = tier_for_total(total)
    just_unlocked = None
    if tier is not OrbTier.NASCENT and ORB_TIER_FLAGS[tier] not in existing_flags:
        just_unlocked = tier
    return OrbResonance(
        total_orbs=total,
        current_tier=tier,
        tier_just_unlocked=just_unlocked,
        dominant_pattern=dominant_pattern(patterns),
    )


def round_half_up(value: float) -> int:
    # Halves round toward positive infinity: 2.5 -> 3, -2.5 -> -2.
    return math.floor(value + 0.5)


def get_orb_tier_progress(total: int) -> TierProgress:
    """Linear progress between the current tier's threshold and the next one."""
    tiers = [tier for tier, _ in TIER_THRESHOLDS]
    minimums = dict(TIER_THRESHOLDS)
    current = tier_for_total(total)
    index = tiers.index(current)
    if index == len(tiers) - 1:
        return TierProgress(current_tier=current, next_tier=None, orbs_to_next=0, progress=100)

    next_tier = tiers[index + 1]
    low, high = minimums[current], minimums[next_tier]
    progress = round_half_up((total - low) * 100 / (high - low))
    return TierProgress(
        current_tier=current,
        next_tier=next_tier,
        orbs_to_next=high - total,
        progress=max(0, min(100, progress)),
    )


def get_orb_tier_dialogue_prompt(tier: OrbTier) -> str:
    return _TIER_PROMPTS[tier]


# ---------------------------------------------------------------------------
# Orb fill and abilities
# ---------------------------------------------------------------------------


def orb_fill_percent(count: int) -> int:
    """Fill percentage of a single pattern's orb, capped at 100."""
    return min(100, round_half_up(max(count, 0) * 100 / MAX_ORB_COUNT))


def orb_fill_levels(patterns: PlayerPatterns) -> dict[Pattern, int]:
    return {pattern: orb_fill_percent(patterns.get(pattern)) for pattern in PATTERN_ORDER}


def get_unlocked_abilities(patterns: PlayerPatterns) -> list[PatternAbility]:
    fills = orb_fill_levels(patterns)
    return [ability for ability in PATTERN_ABILITIES if fills[ability.pattern] >= ability.threshold]


def get_next_ability(pattern: Pattern, fill_percent: int) -> PatternAbility | None:
    """Return the lowest-threshold ability of ``pattern`` not yet reached."""
    candidates = sorted(
        (a for a in PATTERN_ABILITIES if a.pattern is pattern),
        key=lambda a: a.threshold,
    )
    for ability in candidates:
        if fill_percent < ability.threshold:
            return ability
    return None
