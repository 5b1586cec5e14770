"""Save storage backends.

A SaveStore exposes a single atomic ``commit``: either the whole new state
is durable afterwards, or the previous save is left exactly as it was and
PersistenceError is raised. Callers only adopt a new in-memory state after
commit returns, so memory and disk never diverge.

JsonSaveStore writes one JSON file per player through a temp file and
``os.replace``. SqliteSaveStore keeps saves in stdlib sqlite3 and records
every commit in an audit table inside the same transaction.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import sqlite3
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from wayfinder.errors import InvalidPlayerIdError, PersistenceError, SaveCorruptedError
from wayfinder.persistence.serialize import deserialize_state, serialize_state

if TYPE_CHECKING:
    from wayfinder.models.state import GameState

# Player ids become file names; no separators and no leading dot
_PLAYER_ID = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]*")


@runtime_checkable
class SaveStore(Protocol):
    """Persistence boundary for game saves."""

    def commit(self, state: GameState) -> None:
        """Durably store ``state`` as the player's save, atomically."""
        ...

    def load(self, player_id: str) -> GameState | None:
        """Load the player's save, or None if there is none."""
        ...


class MemorySaveStore:
    """In-process store; keeps serialized snapshots so loads return copies."""

    def __init__(self) -> None:
        self._saves: dict[str, dict] = {}

    def commit(self, state: GameState) -> None:
        self._saves[state.player_id] = serialize_state(state)

    def load(self, player_id: str) -> GameState | None:
        data = self._saves.get(player_id)
        return deserialize_state(data) if data is not None else None


class JsonSaveStore:
    """One ``<player_id>.json`` file per player under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, player_id: str) -> Path:
        """Save file for ``player_id``.

        Raises:
            InvalidPlayerIdError: If the id is not a plain file name stem.
        """
        if not _PLAYER_ID.fullmatch(player_id):
            raise InvalidPlayerIdError(player_id)
        return self.directory / f"{player_id}.json"

    def commit(self, state: GameState) -> None:
        target = self.path_for(state.player_id)
        payload = json.dumps(serialize_state(state), indent=2, ensure_ascii=False)
        tmp_name: str | None = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=f".{state.player_id}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise PersistenceError(f"Cannot write save {target}: {e}") from e

    def load(self, player_id: str) -> GameState | None:
        path = self.path_for(player_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise SaveCorruptedError(f"Save {path} is not valid JSON: {e}") from e
        return deserialize_state(data)


_SCHEMA = """\
CREATE TABLE IF NOT EXISTS saves (
    player_id    TEXT PRIMARY KEY,
    save_version INTEGER NOT NULL,
    data         JSON NOT NULL,
    saved_at     INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS commits (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now')),
    player_id    TEXT NOT NULL,
    node_id      TEXT NOT NULL DEFAULT '',
    character_id TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_commits_player ON commits(player_id);
"""


class SqliteSaveStore:
    """SQLite-backed saves with a commit audit trail."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        """Open or create a save database.

        Args:
            db_path: Path to ``.db`` file, or ``":memory:"`` for in-memory.
        """
        self._db_path = str(db_path) if isinstance(db_path, Path) else db_path
        self._conn = sqlite3.connect(
            self._db_path,
            isolation_level=None,  # autocommit; commit() manages its transaction
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        self._conn.close()

    def commit(self, state: GameState) -> None:
        payload = json.dumps(serialize_state(state))
        try:
            self._conn.execute("BEGIN IMMEDIATE")
            self._conn.execute(
                "INSERT INTO saves (player_id, save_version, data, saved_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(player_id) DO UPDATE SET "
                "save_version = excluded.save_version, data = excluded.data, saved_at = excluded.saved_at",
                (state.player_id, state.save_version, payload, state.last_saved),
            )
            self._conn.execute(
                "INSERT INTO commits (player_id, node_id, character_id) VALUES (?, ?, ?)",
                (state.player_id, state.current_node_id, state.current_character_id),
            )
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise PersistenceError(f"Cannot commit save for {state.player_id}: {e}") from e

    def load(self, player_id: str) -> GameState | None:
        row = self._conn.execute("SELECT data FROM saves WHERE player_id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        try:
            data = json.loads(row["data"])
        except json.JSONDecodeError as e:
            raise SaveCorruptedError(f"Save for {player_id} is not valid JSON: {e}") from e
        return deserialize_state(data)

    def commit_history(self, player_id: str) -> list[str]:
        """Node ids recorded by each commit for ``player_id``, oldest first."""
        rows = self._conn.execute(
            "SELECT node_id FROM commits WHERE player_id = ? ORDER BY id",
            (player_id,),
        ).fetchall()
        return [row["node_id"] for row in rows]
