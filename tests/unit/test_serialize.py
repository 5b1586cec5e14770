"""Tests for save snapshot serialization."""

from __future__ import annotations

import json

import pytest

from wayfinder.errors import SaveCorruptedError
from wayfinder.models.state import (
    SAVE_VERSION,
    CharacterState,
    GameState,
    PlayerPatterns,
    RelationshipStatus,
)
from wayfinder.persistence.serialize import DEFAULT_PLAYER_ID, deserialize_state, serialize_state


def _sample_state() -> GameState:
    return GameState(
        player_id="p1",
        characters={
            "samuel": CharacterState(character_id="samuel", trust=-2),
            "maya": CharacterState(
                character_id="maya",
                trust=4,
                relationship_status=RelationshipStatus.ACQUAINTANCE,
                knowledge_flags={"knows_robotics", "knows_family"},
                encounter_count=2,
                conversation_history=["maya_intro", "maya_robots"],
                last_interaction=1700000000000,
            ),
        },
        global_flags={"met_maya", "entered_platform"},
        patterns=PlayerPatterns(building=4, patience=1),
        current_node_id="maya_robots",
        current_character_id="maya",
        skill_levels={"systems_thinking": 0.4},
        last_saved=1700000000000,
    )


class TestSerialize:
    def test_output_is_json_and_stable(self) -> None:
        data = serialize_state(_sample_state())

        assert json.loads(json.dumps(data)) == data
        assert data["global_flags"] == ["entered_platform", "met_maya"]
        assert [c["character_id"] for c in data["characters"]] == ["maya", "samuel"]
        assert data["characters"][0]["knowledge_flags"] == ["knows_family", "knows_robotics"]
        assert data["save_version"] == SAVE_VERSION

    def test_reload_preserves_state(self) -> None:
        state = _sample_state()
        assert deserialize_state(json.loads(json.dumps(serialize_state(state)))) == state


class TestDeserialize:
    def test_empty_mapping_gives_fresh_state(self) -> None:
        state = deserialize_state({})

        assert state.player_id == DEFAULT_PLAYER_ID
        assert state.characters == {}
        assert state.patterns == PlayerPatterns()
        assert state.save_version == SAVE_VERSION
        assert state.current_node_id == ""

    @pytest.mark.parametrize("data", [None, [], "save", 42])
    def test_non_mapping_is_corrupted(self, data: object) -> None:
        with pytest.raises(SaveCorruptedError, match="must be a mapping"):
            deserialize_state(data)

    def test_accepts_camel_case_keys(self) -> None:
        state = deserialize_state(
            {
                "saveVersion": 1,
                "playerId": "legacy",
                "currentNodeId": "maya_intro",
                "currentCharacterId": "maya",
                "globalFlags": ["met_maya"],
                "characters": [
                    {
                        "characterId": "maya",
                        "trust": 3,
                        "relationshipStatus": "confidant",
                        "knowledgeFlags": ["knows_robotics"],
                        "conversationHistory": ["maya_intro"],
                    }
                ],
            }
        )

        assert state.player_id == "legacy"
        assert state.save_version == SAVE_VERSION
        assert state.current_node_id == "maya_intro"
        assert state.global_flags == {"met_maya"}
        maya = state.characters["maya"]
        assert maya.trust == 3
        assert maya.relationship_status is RelationshipStatus.CONFIDANT
        assert maya.knowledge_flags == {"knows_robotics"}
        assert maya.conversation_history == ["maya_intro"]

    def test_characters_keyed_by_id(self) -> None:
        state = deserialize_state({"player_id": "p1", "characters": {"maya": {"trust": 2}}})
        assert state.characters["maya"].trust == 2

    def test_malformed_fields_fall_back(self) -> None:
        state = deserialize_state(
            {
                "player_id": "p1",
                "global_flags": "not-a-list",
                "patterns": {"building": -3, "helping": "lots", "patience": True, "analytical": 2},
                "skill_levels": {"systems_thinking": "high", "debugging": 0.5},
                "current_node_id": 17,
                "characters": [
                    {"character_id": "maya", "relationship_status": "enemy", "trust": 1.5},
                    {"trust": 4},
                    "garbage",
                ],
            }
        )

        assert state.global_flags == set()
        assert state.patterns == PlayerPatterns(analytical=2)
        assert state.skill_levels == {"debugging": 0.5}
        assert state.current_node_id == ""
        assert list(state.characters) == ["maya"]
        assert state.characters["maya"].relationship_status is RelationshipStatus.STRANGER
        assert state.characters["maya"].trust == 0
