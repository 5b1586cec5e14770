"""Persistence boundary: save snapshots and atomic save stores."""

from wayfinder.persistence.serialize import deserialize_state, serialize_state
from wayfinder.persistence.store import (
    JsonSaveStore,
    MemorySaveStore,
    SaveStore,
    SqliteSaveStore,
)

__all__ = [
    "JsonSaveStore",
    "MemorySaveStore",
    "SaveStore",
    "SqliteSaveStore",
    "deserialize_state",
    "serialize_state",
]
