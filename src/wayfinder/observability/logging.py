"""Structured logging for the engine, validators and CLI.

Events are structlog event dicts routed through stdlib logging:

- Console: Rich on stderr, level chosen by ``-v`` (WARNING, INFO, DEBUG).
- File: with ``--log``, every event is appended to ``{log_dir}/engine.jsonl``
  as one JSON object per line.

Session code wraps a turn in ``bind_engine_context(player_id=..., graph_id=...)``
so every event emitted while resolving it carries the same identifiers,
whichever module logged it.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.typing import Processor

LOG_FILE_NAME = "engine.jsonl"

# Loggers that would flood DEBUG output while content is parsed
QUIET_LOGGERS = ("asyncio", "ruamel", "ruamel.yaml")

_VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None


class EngineEventFileHandler(logging.FileHandler):
    """Append structlog event dicts to a JSONL file.

    Each line has ``timestamp``, ``level``, ``logger`` and ``event`` followed
    by the event's keyword context (``player_id``, ``node_id``, ...).
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(self._entry(record), default=str) + "\n"
            if self.stream:
                self.stream.write(line)
                self.stream.flush()
        except Exception:
            self.handleError(record)

    @staticmethod
    def _entry(record: logging.LogRecord) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        if not isinstance(record.msg, dict):
            entry["event"] = record.getMessage()
            return entry

        context = {k: v for k, v in record.msg.items() if k not in ("level", "timestamp")}
        entry["event"] = context.pop("event", "")
        entry.update(context)
        return entry


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=_VERBOSITY_LEVELS.get(verbosity, logging.DEBUG),
    )


def _open_event_file(log_dir: Path) -> EngineEventFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = EngineEventFileHandler(str(log_dir / LOG_FILE_NAME), mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure console and optional JSONL logging.

    Calling again replaces the previous configuration and closes any open
    event file.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write every event to ``{log_dir}/engine.jsonl``.
        log_dir: Directory for the event file. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    global _configured, _file_handler, _logs_dir

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    _logs_dir = log_dir if log_to_file else None
    if log_to_file and log_dir is not None:
        _file_handler = _open_event_file(log_dir)
        handlers.append(_file_handler)

    # The event file wants everything; the console handler filters by itself
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=False,
    )

    _configured = True


@contextmanager
def bind_engine_context(**context: Any) -> Iterator[None]:
    """Attach ``context`` to every event logged inside the block.

    Keys whose value is None are left unbound.
    """
    bound = {key: value for key, value in context.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring logging on first use.

    Args:
        name: Logger name (typically __name__).
    """
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def get_logs_dir() -> Path | None:
    """Return the event file directory, or None when file logging is off."""
    return _logs_dir


def close_file_logging() -> None:
    """Close the event file, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
