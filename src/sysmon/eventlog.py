"""Event logging for sysmon.

Core operations report what happened through an ``EventSink``: any object
with an ``emit(message)`` method. Sinks are passed in explicitly; nothing in
the core reaches for a global logger.

This module provides:
1. The EventSink protocol and two sinks (StructlogSink, MemorySink)
2. Structlog configuration for the append-only JSON event log (configure)
3. Rich console helpers for human-readable CLI status lines (info, warn, error)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from sysmon.config import Config

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)

_LOGGER_NAME = "sysmon.events"


class EventSink(Protocol):
    """Receives one descriptive string per core event."""

    def emit(self, message: str) -> None: ...


class StructlogSink:
    """Sink that forwards events to a structlog logger.

    Timestamps and persistence are handled by whatever ``configure`` set up.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._log = logger if logger is not None else get_structlog()

    def emit(self, message: str) -> None:
        self._log.info(message)


class MemorySink:
    """Sink that keeps events in a list."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def emit(self, message: str) -> None:
        self.messages.append(message)


# ─────────────────────────────────────────────────────────────────────────────
# Console
# ─────────────────────────────────────────────────────────────────────────────


def info(msg: str) -> None:
    """Print an informational line."""
    _console.print(f"[bright_blue]\\[info][/] {msg}")


def warn(msg: str) -> None:
    """Print a warning line."""
    _console.print(f"[yellow]\\[warn][/] {msg}")


def error(msg: str) -> None:
    """Print an error line to stderr."""
    _err_console.print(f"[bold red]\\[err][/] {msg}")


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def configure(config: Config) -> None:
    """Configure structlog to append JSON lines to the event log file.

    Each line carries an ISO timestamp (local time) and the log level. When
    logging is disabled in the config, events are dropped.

    Args:
        config: Application config with the logging section
    """
    event_logger = logging.getLogger(_LOGGER_NAME)
    for handler in list(event_logger.handlers):
        event_logger.removeHandler(handler)
        handler.close()
    event_logger.propagate = False

    if config.logging.enabled:
        path = config.logging.path
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                    structlog.processors.add_log_level,
                ],
            )
        )
        event_logger.setLevel(logging.INFO)
    else:
        handler = logging.NullHandler()
    event_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get the structlog logger that writes the event log."""
    return structlog.get_logger(_LOGGER_NAME)
