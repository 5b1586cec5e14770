"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

import wayfinder.observability.logging as log_module
from wayfinder.observability import (
    bind_engine_context,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_configure_logging_sets_level_warning() -> None:
    """Default verbosity (0) sets WARNING level."""
    configure_logging(verbosity=0)

    assert logging.getLogger().level == logging.WARNING


@pytest.mark.parametrize("verbosity", [1, 2])
def test_verbose_opens_root_logger(verbosity: int) -> None:
    # the console handler does the filtering
    configure_logging(verbosity=verbosity)

    assert logging.getLogger().level == logging.DEBUG


def test_get_logger_auto_configures() -> None:
    """get_logger configures logging if not already done."""
    log_module._configured = False

    logger = get_logger("test")

    assert log_module._configured is True
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")


def test_configure_logging_suppresses_ruamel() -> None:
    configure_logging(verbosity=2)

    assert logging.getLogger("ruamel").level == logging.WARNING


def test_file_logging_creates_log_dir(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    configure_logging(verbosity=0, log_to_file=True, log_dir=log_dir)

    assert log_dir.exists()
    assert get_logs_dir() == log_dir
    close_file_logging()


def test_file_logging_requires_log_dir() -> None:
    with pytest.raises(ValueError, match="log_dir is required"):
        configure_logging(verbosity=0, log_to_file=True, log_dir=None)


def test_reconfiguration_closes_previous_handler(tmp_path: Path) -> None:
    """Reconfiguring logging closes the previous file handler."""
    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    first_handler = log_module._file_handler
    assert first_handler is not None

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

    assert first_handler.stream is None or first_handler.stream.closed
    assert log_module._file_handler is not None
    close_file_logging()
    assert log_module._file_handler is None


def test_jsonl_handler_writes_structlog_context(tmp_path: Path) -> None:
    """Event keys land as top-level JSON fields in engine.jsonl."""
    configure_logging(verbosity=2, log_to_file=True, log_dir=tmp_path)

    get_logger("test.context").info("choice_resolved", node_id="maya_intro", trust_change=2)
    close_file_logging()

    log_file = tmp_path / "engine.jsonl"
    entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    entry = next(e for e in entries if e.get("event") == "choice_resolved")

    assert entry["node_id"] == "maya_intro"
    assert entry["trust_change"] == 2
    assert entry["level"] == "INFO"
    assert entry["logger"] == "test.context"


def test_engine_context_is_attached_inside_block(tmp_path: Path) -> None:
    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    logger = get_logger("test.session")

    with bind_engine_context(player_id="p1", graph_id=None):
        logger.info("inside")
    logger.info("outside")
    close_file_logging()

    lines = (tmp_path / "engine.jsonl").read_text(encoding="utf-8").splitlines()
    entries = {entry["event"]: entry for entry in map(json.loads, lines)}

    assert entries["inside"]["player_id"] == "p1"
    assert "graph_id" not in entries["inside"]
    assert "player_id" not in entries["outside"]


def test_file_logging_off_clears_logs_dir(tmp_path: Path) -> None:
    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    configure_logging(verbosity=0)

    assert get_logs_dir() is None
