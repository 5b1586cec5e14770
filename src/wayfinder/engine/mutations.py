"""Applying declared state changes to a GameState.

Every function here returns a new GameState and leaves its input untouched.
Relationship status only changes when a StateChange sets it explicitly;
trust never moves it implicitly.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wayfinder.engine.affinity import calculate_resonant_trust_change
from wayfinder.engine.orbs import OrbResonance, calculate_orb_resonance, get_orb_tier_flags
from wayfinder.models.state import MAX_TRUST, MIN_TRUST, CharacterState, StateChange
from wayfinder.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from wayfinder.models.dialogue import ConditionalChoice
    from wayfinder.models.registry import PatternAffinity
    from wayfinder.models.state import GameState

log = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def clamp_trust(value: int) -> int:
    return max(MIN_TRUST, min(MAX_TRUST, value))


def ensure_character(state: GameState, character_id: str) -> GameState:
    """Return a state in which ``character_id`` exists, creating it with trust 0."""
    if character_id in state.characters:
        return state
    new_state = state.model_copy(deep=True)
    new_state.characters[character_id] = CharacterState(character_id=character_id)
    log.debug("character_created", character_id=character_id)
    return new_state


def apply_state_change(state: GameState, change: StateChange) -> GameState:
    """Apply one StateChange; character-scoped fields create the character lazily."""
    new_state = state.model_copy(deep=True)

    new_state.global_flags.update(change.add_global_flags)
    new_state.global_flags.difference_update(change.remove_global_flags)

    for pattern, delta in change.pattern_changes.items():
        current = new_state.patterns.get(pattern)
        setattr(new_state.patterns, pattern.value, max(0, current + delta))

    if change.character_id:
        character = new_state.characters.get(change.character_id)
        if character is None:
            character = CharacterState(character_id=change.character_id)
            new_state.characters[change.character_id] = character

        if change.trust_change:
            character.trust = clamp_trust(character.trust + change.trust_change)
        if change.set_relationship_status is not None:
            character.relationship_status = change.set_relationship_status
        character.knowledge_flags.update(change.add_knowledge_flags)
        character.knowledge_flags.difference_update(change.remove_knowledge_flags)
    elif change.trust_change or change.add_knowledge_flags or change.set_relationship_status:
        log.warning("state_change_without_character", change=change.model_dump(exclude_defaults=True))

    return new_state


def apply_state_changes(state: GameState, changes: Iterable[StateChange]) -> GameState:
    for change in changes:
        state = apply_state_change(state, change)
    return state


def record_visit(
    state: GameState,
    character_id: str,
    node_id: str,
    *,
    new_encounter: bool = False,
    timestamp: int | None = None,
) -> GameState:
    """Append ``node_id`` to the character's history and stamp the interaction."""
    new_state = ensure_character(state, character_id).model_copy(deep=True)
    character = new_state.characters[character_id]
    character.conversation_history.append(node_id)
    character.last_interaction = timestamp if timestamp is not None else now_ms()
    if new_encounter:
        character.encounter_count += 1
    return new_state


def apply_orb_resonance(state: GameState) -> tuple[GameState, OrbResonance]:
    """Grant tier flags for a newly reached tier.

    Flags are cumulative, so skipping a tier in one step still grants the
    flags of every tier below.
    """
    resonance = calculate_orb_resonance(state.patterns, state.global_flags)
    if resonance.tier_just_unlocked is None:
        return state, resonance

    new_state = state.model_copy(deep=True)
    new_state.global_flags.update(get_orb_tier_flags(resonance.current_tier))
    log.info(
        "orb_tier_unlocked",
        tier=resonance.current_tier.value,
        total_orbs=resonance.total_orbs,
    )
    return new_state, resonance


@dataclass(frozen=True)
class ChoiceOutcome:
    state: GameState
    resonance: OrbResonance
    trust_change: int
    resonance_description: str | None = None


def apply_choice(
    state: GameState,
    choice: ConditionalChoice,
    character_id: str,
    affinities: Mapping[str, PatternAffinity] | None = None,
) -> ChoiceOutcome:
    """Apply everything taking ``choice`` implies, except moving position.

    The consequence's trust change is scaled by pattern affinity using the
    patterns held before this choice. The choice's own pattern then earns one
    orb, and the orb tier is re-evaluated.
    """
    trust_change = 0
    description = None
    new_state = state

    if choice.consequence is not None:
        change = choice.consequence
        target = change.character_id or character_id
        if change.trust_change:
            resonant = calculate_resonant_trust_change(
                change.trust_change,
                target,
                state.patterns,
                choice.pattern,
                affinities,
            )
            trust_change = resonant.modified_trust
            description = resonant.resonance_description
        new_state = apply_state_change(
            new_state,
            change.model_copy(update={"character_id": target, "trust_change": trust_change}),
        )

    if choice.pattern is not None:
        new_state = apply_state_change(new_state, StateChange(pattern_changes={choice.pattern: 1}))

    new_state, resonance = apply_orb_resonance(new_state)
    return ChoiceOutcome(
        state=new_state,
        resonance=resonance,
        trust_change=trust_change,
        resonance_description=description,
    )
