"""Condition evaluation for node entry gates and choices.

Evaluation is pure and fail-closed: a clause that needs state which is not
there (an unknown character, a missing flag) evaluates to False. Nothing in
this module raises for missing state.

evaluate_choices() reports, for every choice on a node, whether it is
visible and enabled. Disabled choices carry a ReasonCode so the
presentation layer can show a locked choice with an explanation instead of
hiding it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from wayfinder.engine.orbs import dominant_pattern, orb_fill_percent
from wayfinder.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from wayfinder.models.dialogue import ConditionalChoice, DialogueNode
    from wayfinder.models.state import GameState, PlayerPatterns, StateCondition

log = get_logger(__name__)


class ReasonCode(StrEnum):
    """Why a condition or choice gate failed."""

    UNKNOWN_CHARACTER = "unknown_character"
    TRUST_TOO_LOW = "trust_too_low"
    TRUST_TOO_HIGH = "trust_too_high"
    RELATIONSHIP_MISMATCH = "relationship_mismatch"
    MISSING_KNOWLEDGE_FLAG = "missing_knowledge_flag"
    FORBIDDEN_KNOWLEDGE_FLAG = "forbidden_knowledge_flag"
    MISSING_GLOBAL_FLAG = "missing_global_flag"
    FORBIDDEN_GLOBAL_FLAG = "forbidden_global_flag"
    PATTERN_OUT_OF_RANGE = "pattern_out_of_range"
    SKILL_TOO_LOW = "skill_too_low"
    ORB_FILL_TOO_LOW = "orb_fill_too_low"


@dataclass(frozen=True)
class ConditionFailure:
    code: ReasonCode
    message: str


@dataclass(frozen=True)
class EvaluatedChoice:
    """A choice annotated with its visibility and enabled state.

    ``reason_code`` is set only when the choice is visible but disabled.
    """

    choice: ConditionalChoice
    visible: bool
    enabled: bool
    reason_code: ReasonCode | None = None
    reason: str = ""
    mercy_unlocked: bool = False


def explain_condition(
    condition: StateCondition | None,
    state: GameState,
    character_id: str | None = None,
    *,
    skip_character_clauses: bool = False,
) -> ConditionFailure | None:
    """Return the first failing clause of ``condition``, or None if it holds.

    Args:
        condition: The gate to check. None or an empty condition always holds.
        state: Current game state.
        character_id: Character for trust, relationship and knowledge clauses.
        skip_character_clauses: Ignore character-scoped clauses entirely. Used
            when the owning character of a node cannot be resolved.
    """
    if condition is None or condition.is_empty():
        return None

    if condition.is_character_scoped() and not skip_character_clauses:
        failure = _explain_character_clauses(condition, state, character_id)
        if failure is not None:
            return failure

    for flag in condition.has_global_flags:
        if flag not in state.global_flags:
            return ConditionFailure(ReasonCode.MISSING_GLOBAL_FLAG, f"Requires '{flag}'")
    for flag in condition.lacks_global_flags:
        if flag in state.global_flags:
            return ConditionFailure(ReasonCode.FORBIDDEN_GLOBAL_FLAG, f"Closed once '{flag}' is set")

    for pattern, bounds in condition.patterns.items():
        value = state.patterns.get(pattern)
        if not bounds.contains(value):
            return ConditionFailure(
                ReasonCode.PATTERN_OUT_OF_RANGE,
                f"{pattern.value.capitalize()} is {value}, needs {_describe_range(bounds.min, bounds.max)}",
            )

    return None


def _explain_character_clauses(
    condition: StateCondition,
    state: GameState,
    character_id: str | None,
) -> ConditionFailure | None:
    character = state.character(character_id)
    if character is None:
        log.debug("condition_unknown_character", character_id=character_id)
        return ConditionFailure(
            ReasonCode.UNKNOWN_CHARACTER,
            f"You haven't met {character_id or 'this character'} yet",
        )

    if condition.trust is not None and not condition.trust.contains(character.trust):
        if condition.trust.min is not None and character.trust < condition.trust.min:
            return ConditionFailure(
                ReasonCode.TRUST_TOO_LOW,
                f"Requires trust of at least {condition.trust.min} with {character_id}",
            )
        return ConditionFailure(
            ReasonCode.TRUST_TOO_HIGH,
            f"Only while trust with {character_id} is at most {condition.trust.max}",
        )

    if condition.relationship and character.relationship_status not in condition.relationship:
        allowed = ", ".join(status.value for status in condition.relationship)
        return ConditionFailure(
            ReasonCode.RELATIONSHIP_MISMATCH,
            f"Requires relationship: {allowed}",
        )

    for flag in condition.has_knowledge_flags:
        if flag not in character.knowledge_flags:
            return ConditionFailure(
                ReasonCode.MISSING_KNOWLEDGE_FLAG,
                f"{character_id} hasn't shared '{flag}' yet",
            )
    for flag in condition.lacks_knowledge_flags:
        if flag in character.knowledge_flags:
            return ConditionFailure(
                ReasonCode.FORBIDDEN_KNOWLEDGE_FLAG,
                f"Closed once {character_id} has shared '{flag}'",
            )
    return None


def _describe_range(low: int | None, high: int | None) -> str:
    if low is not None and high is not None:
        return f"{low}-{high}"
    if low is not None:
        return f"at least {low}"
    return f"at most {high}"


def evaluate(
    condition: StateCondition | None,
    state: GameState,
    character_id: str | None = None,
    *,
    skip_character_clauses: bool = False,
) -> bool:
    """True when every present clause of ``condition`` holds."""
    return (
        explain_condition(
            condition,
            state,
            character_id,
            skip_character_clauses=skip_character_clauses,
        )
        is None
    )


# ---------------------------------------------------------------------------
# Choices
# ---------------------------------------------------------------------------


def _check_skills(
    choice: ConditionalChoice,
    skill_levels: Mapping[str, float],
) -> ConditionFailure | None:
    for skill, minimum in choice.required_skills.items():
        level = skill_levels.get(skill, 0.0)
        if level < minimum:
            return ConditionFailure(
                ReasonCode.SKILL_TOO_LOW,
                f"Requires {skill} level {minimum:g} (you have {level:g})",
            )
    return None


def _check_orb_fill(choice: ConditionalChoice, state: GameState) -> ConditionFailure | None:
    requirement = choice.required_orb_fill
    if requirement is None:
        return None
    fill = orb_fill_percent(state.patterns.get(requirement.pattern))
    if fill < requirement.threshold:
        return ConditionFailure(
            ReasonCode.ORB_FILL_TOO_LOW,
            f"Requires {requirement.pattern.value} orb at {requirement.threshold}% (now {fill}%)",
        )
    return None


def evaluate_choices(
    node: DialogueNode,
    state: GameState,
    character_id: str | None = None,
    skill_levels: Mapping[str, float] | None = None,
) -> list[EvaluatedChoice]:
    """Evaluate visibility and enabled state for every choice on ``node``.

    Visibility follows ``visible_condition``. A visible choice is enabled when
    its ``enabled_condition``, skill requirements and orb fill requirement all
    hold. If every visible choice is blocked only by orb fill, the one with
    the lowest threshold is enabled anyway so the node can't soft-lock on
    orb gates.

    Args:
        node: Node whose choices to evaluate.
        state: Current game state.
        character_id: Character for character-scoped clauses; defaults to
            ``state.current_character_id``.
        skill_levels: Skill levels for skill gates; defaults to
            ``state.skill_levels``.
    """
    owner = character_id if character_id is not None else state.current_character_id
    skills = skill_levels if skill_levels is not None else state.skill_levels

    results: list[EvaluatedChoice] = []
    orb_locked: list[int] = []
    for choice in node.choices:
        visibility_failure = explain_condition(choice.visible_condition, state, owner)
        if visibility_failure is not None:
            results.append(EvaluatedChoice(choice=choice, visible=False, enabled=False))
            continue

        failure = (
            explain_condition(choice.enabled_condition, state, owner)
            or _check_skills(choice, skills)
        )
        if failure is None:
            failure = _check_orb_fill(choice, state)
            if failure is not None:
                orb_locked.append(len(results))

        results.append(
            EvaluatedChoice(
                choice=choice,
                visible=True,
                enabled=failure is None,
                reason_code=failure.code if failure else None,
                reason=failure.message if failure else "",
            )
        )

    if orb_locked and not any(result.enabled for result in results):
        index = min(orb_locked, key=lambda i: _orb_threshold(results[i].choice))
        mercy = results[index]
        results[index] = EvaluatedChoice(choice=mercy.choice, visible=True, enabled=True, mercy_unlocked=True)
        log.info(
            "orb_gate_mercy_unlock",
            node_id=node.node_id,
            choice_id=mercy.choice.choice_id,
        )

    return results


def _orb_threshold(choice: ConditionalChoice) -> int:
    return choice.required_orb_fill.threshold if choice.required_orb_fill else 0


def choice_text_for(choice: ConditionalChoice, patterns: PlayerPatterns) -> str:
    """Return the choice text in the voice of the player's dominant pattern."""
    dominant = dominant_pattern(patterns)
    if dominant is not None and dominant in choice.voice_variations:
        return choice.voice_variations[dominant]
    return choice.text
