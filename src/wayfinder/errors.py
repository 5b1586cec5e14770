"""Error types for content integrity, persistence and configuration.

Evaluation and navigation never raise for missing state; these errors are
raised at the boundaries instead: loading content, reading saves, committing
saves and reading configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from pathlib import Path  # noqa: TC003 - Used at runtime in dataclass fields


class WayfinderError(Exception):
    """Base class for all Wayfinder errors."""


@dataclass
class NodeNotFoundError(WayfinderError):
    """Raised when a node id is referenced but absent from its graph.

    Attributes:
        node_id: The ID that was referenced but doesn't exist.
        available: Node ids present in the graph.
        context: Description of where the reference occurred.
    """

    node_id: str
    available: list[str] = field(default_factory=list)
    context: str = ""

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Node '{self.node_id}' not found"
        if self.context:
            msg += f" ({self.context})"
        suggestions = self.suggestions()
        if suggestions:
            msg += f"; did you mean: {', '.join(suggestions)}?"
        return msg

    def suggestions(self) -> list[str]:
        """Find similar ids that might be typos."""
        return get_close_matches(self.node_id, self.available, n=3, cutoff=0.6)


class ContentLoadError(WayfinderError):
    """Raised when a graph or registry file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load {path}: {reason}")


class DuplicateNodeError(ContentLoadError):
    """Raised when a graph file declares the same node id twice."""

    def __init__(self, path: Path, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(path, f"duplicate node id '{node_id}'")


class SaveCorruptedError(WayfinderError):
    """Raised when a save snapshot is not a mapping or holds invalid values."""


class PersistenceError(WayfinderError):
    """Raised when a save cannot be committed; the previous save is untouched."""


class ConfigError(WayfinderError):
    """Raised when wayfinder.yaml is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config {path}: {reason}")


class InvalidPlayerIdError(PersistenceError):
    """Raised when a player id cannot be used as a save file name."""

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"Invalid player id {player_id!r}: use letters, digits, '_', '-' or '.'")
