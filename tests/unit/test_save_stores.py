"""Tests for save store backends."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from wayfinder.errors import InvalidPlayerIdError, PersistenceError, SaveCorruptedError
from wayfinder.models.state import GameState, create_new_game_state
from wayfinder.persistence.store import JsonSaveStore, MemorySaveStore, SaveStore, SqliteSaveStore

if TYPE_CHECKING:
    from pathlib import Path


def _state(node_id: str = "maya_intro", player_id: str = "p1") -> GameState:
    return create_new_game_state(player_id, "maya", node_id)


@pytest.mark.parametrize("store_type", [MemorySaveStore, JsonSaveStore, SqliteSaveStore])
def test_stores_satisfy_protocol(store_type: type, tmp_path: Path) -> None:
    store = store_type(tmp_path) if store_type is JsonSaveStore else store_type()
    assert isinstance(store, SaveStore)


class TestMemorySaveStore:
    def test_load_missing(self) -> None:
        assert MemorySaveStore().load("p1") is None

    def test_load_returns_copy(self) -> None:
        store = MemorySaveStore()
        state = _state()
        store.commit(state)

        loaded = store.load("p1")
        assert loaded == state
        assert loaded is not state


class TestJsonSaveStore:
    def test_commit_and_load(self, tmp_path: Path) -> None:
        store = JsonSaveStore(tmp_path / "saves")
        state = _state()

        store.commit(state)

        assert store.path_for("p1").exists()
        assert store.load("p1") == state
        assert [p.name for p in (tmp_path / "saves").iterdir()] == ["p1.json"]

    def test_load_missing(self, tmp_path: Path) -> None:
        assert JsonSaveStore(tmp_path).load("nobody") is None

    def test_invalid_json_is_corrupted(self, tmp_path: Path) -> None:
        store = JsonSaveStore(tmp_path)
        store.path_for("p1").write_text("{not json", encoding="utf-8")

        with pytest.raises(SaveCorruptedError, match="not valid JSON"):
            store.load("p1")

    def test_failed_commit_keeps_previous_save(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = JsonSaveStore(tmp_path)
        store.commit(_state("maya_intro"))
        before = store.path_for("p1").read_text(encoding="utf-8")

        def fail_replace(src: str, dst: str) -> None:
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(PersistenceError, match="read-only"):
            store.commit(_state("maya_robots"))

        assert store.path_for("p1").read_text(encoding="utf-8") == before
        assert [p.name for p in tmp_path.iterdir()] == ["p1.json"]

    @pytest.mark.parametrize("player_id", ["../escaped", "a/b", "..", ".hidden", "p1\n"])
    def test_player_id_must_be_a_file_stem(self, tmp_path: Path, player_id: str) -> None:
        store = JsonSaveStore(tmp_path / "saves")

        with pytest.raises(InvalidPlayerIdError):
            store.load(player_id)
        with pytest.raises(PersistenceError, match="Invalid player id"):
            store.commit(_state(player_id=player_id))
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.parametrize("player_id", ["p1", "player-7", "ana.b", "_x"])
    def test_plain_ids_are_accepted(self, tmp_path: Path, player_id: str) -> None:
        assert JsonSaveStore(tmp_path).path_for(player_id).name == f"{player_id}.json"


class TestSqliteSaveStore:
    def test_commit_and_load(self) -> None:
        store = SqliteSaveStore()
        state = _state()

        store.commit(state)

        assert store.load("p1") == state
        assert store.load("p2") is None
        store.close()

    def test_commit_overwrites_and_records_history(self, tmp_path: Path) -> None:
        store = SqliteSaveStore(tmp_path / "saves.db")
        store.commit(_state("maya_intro"))
        store.commit(_state("maya_robots"))

        loaded = store.load("p1")
        assert loaded is not None
        assert loaded.current_node_id == "maya_robots"
        assert store.commit_history("p1") == ["maya_intro", "maya_robots"]
        store.close()

    def test_persists_across_connections(self, tmp_path: Path) -> None:
        db_path = tmp_path / "saves.db"
        first = SqliteSaveStore(db_path)
        first.commit(_state())
        first.close()

        second = SqliteSaveStore(db_path)
        assert second.load("p1") == _state()
        second.close()

    def test_failed_commit_rolls_back(self) -> None:
        store = SqliteSaveStore()
        store.commit(_state("maya_intro"))
        store._conn.execute("DROP TABLE commits")

        with pytest.raises(PersistenceError, match="Cannot commit save for p1"):
            store.commit(_state("maya_robots"))

        loaded = store.load("p1")
        assert loaded is not None
        assert loaded.current_node_id == "maya_intro"
        store.close()
