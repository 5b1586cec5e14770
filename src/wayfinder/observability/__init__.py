"""Observability module for Wayfinder.

Provides structured logging for the engine, validators and CLI.
"""

from wayfinder.observability.logging import (
    bind_engine_context,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "bind_engine_context",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
