"""GameState snapshot serialization.

Snapshots are plain JSON-compatible dicts. Loading is lenient: every
missing or malformed field falls back to its fresh-game default, and saves
written with camelCase keys by older clients are accepted. Only data that
is not a mapping at all is rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from wayfinder.errors import SaveCorruptedError
from wayfinder.models.state import (
    PATTERN_ORDER,
    SAVE_VERSION,
    GameState,
    RelationshipStatus,
)
from wayfinder.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_PLAYER_ID = "anonymous"


def serialize_state(state: GameState) -> dict[str, Any]:
    """Convert a GameState to a JSON-compatible dict with stable ordering."""
    data = state.model_dump(mode="json")
    data["global_flags"] = sorted(state.global_flags)
    data["characters"] = [
        {
            **character.model_dump(mode="json"),
            "knowledge_flags": sorted(character.knowledge_flags),
        }
        for _, character in sorted(state.characters.items())
    ]
    return data


def _get(data: Mapping[str, Any], key: str, legacy_key: str | None = None) -> Any:
    if key in data:
        return data[key]
    if legacy_key is not None:
        return data.get(legacy_key)
    return None


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list | tuple | set):
        return []
    return [item for item in value if isinstance(item, str)]


def _character_entries(raw: Any) -> list[tuple[str | None, Mapping[str, Any]]]:
    if isinstance(raw, Mapping):
        return [(key, value) for key, value in raw.items() if isinstance(value, Mapping)]
    if isinstance(raw, list):
        return [(None, value) for value in raw if isinstance(value, Mapping)]
    return []


def _normalize_character(key: str | None, raw: Mapping[str, Any]) -> dict[str, Any] | None:
    character_id = _get(raw, "character_id", "characterId") or key
    if not isinstance(character_id, str) or not character_id:
        log.warning("save_character_without_id", entry=dict(raw))
        return None

    status = _get(raw, "relationship_status", "relationshipStatus")
    if status not in {s.value for s in RelationshipStatus}:
        status = RelationshipStatus.STRANGER.value

    return {
        "character_id": character_id,
        "trust": _as_int(raw.get("trust")),
        "relationship_status": status,
        "knowledge_flags": set(_as_str_list(_get(raw, "knowledge_flags", "knowledgeFlags"))),
        "encounter_count": max(0, _as_int(_get(raw, "encounter_count", "encounterCount"))),
        "conversation_history": _as_str_list(_get(raw, "conversation_history", "conversationHistory")),
        "last_interaction": _as_int(_get(raw, "last_interaction", "lastInteraction")),
    }


def deserialize_state(data: Any) -> GameState:
    """Build a GameState from a snapshot, defaulting anything missing.

    Raises:
        SaveCorruptedError: If ``data`` is not a mapping, or if the
            normalized values still fail model validation.
    """
    if not isinstance(data, Mapping):
        raise SaveCorruptedError(f"save snapshot must be a mapping, got {type(data).__name__}")

    characters: dict[str, Any] = {}
    for key, raw in _character_entries(_get(data, "characters")):
        normalized = _normalize_character(key, raw)
        if normalized is not None:
            characters[normalized["character_id"]] = normalized

    raw_patterns = _get(data, "patterns")
    raw_patterns = raw_patterns if isinstance(raw_patterns, Mapping) else {}
    patterns = {p.value: max(0, _as_int(raw_patterns.get(p.value))) for p in PATTERN_ORDER}

    raw_skills = _get(data, "skill_levels", "skillLevels")
    skills = {
        str(skill): float(level)
        for skill, level in (raw_skills.items() if isinstance(raw_skills, Mapping) else [])
        if isinstance(level, int | float) and not isinstance(level, bool)
    }

    player_id = _get(data, "player_id", "playerId")
    version = _get(data, "save_version", "saveVersion")
    if version != SAVE_VERSION:
        log.info("save_version_upgraded", from_version=version, to_version=SAVE_VERSION)

    normalized_state = {
        "save_version": SAVE_VERSION,
        "player_id": player_id if isinstance(player_id, str) and player_id else DEFAULT_PLAYER_ID,
        "characters": characters,
        "global_flags": set(_as_str_list(_get(data, "global_flags", "globalFlags"))),
        "patterns": patterns,
        "current_node_id": _get(data, "current_node_id", "currentNodeId") or "",
        "current_character_id": _get(data, "current_character_id", "currentCharacterId") or "",
        "skill_levels": skills,
        "last_saved": _as_int(_get(data, "last_saved", "lastSaved")),
    }
    for key in ("current_node_id", "current_character_id"):
        if not isinstance(normalized_state[key], str):
            normalized_state[key] = ""

    try:
        return GameState.model_validate(normalized_state)
    except ValidationError as e:
        raise SaveCorruptedError(f"save snapshot failed validation: {e}") from e
