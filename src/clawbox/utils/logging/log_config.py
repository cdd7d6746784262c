"""Logger setup for clawbox.

One application logger ("clawbox") owns the handlers; components log
through children named after their area:

    _logger = get_logger("reconciler")   # -> "clawbox.reconciler"

Interactive commands keep stdout for click.echo, so by default only
WARNING+ reaches stderr. The power daemon calls configure_file_logging()
once at startup to add its JSONL file.
"""

from __future__ import annotations

__all__ = [
    "configure_file_logging",
    "get_logger",
    "log_event",
]

import logging
from pathlib import Path

from clawbox.constants import APP_NAME
from clawbox.models import SystemEvent

from .iso_formatter import ISO8601Formatter

_logger = logging.getLogger(APP_NAME)
_logger.setLevel(logging.INFO)
_logger.propagate = False


class _ConsoleFormatter(logging.Formatter):
    """`LEVEL: message` for terminals; events show their message (or name)."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            text = record.msg.get("message") or record.msg.get("event", "")
        else:
            text = record.getMessage()
        return f"{record.levelname}: {text}"


def _stderr_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_ConsoleFormatter())
    return handler


if not _logger.handlers:
    _logger.addHandler(_stderr_handler(logging.WARNING))


def get_logger(area: str) -> logging.Logger:
    """Return the "clawbox.<area>" child logger."""
    return _logger.getChild(area)


def _has_file_handler(log_path: Path) -> bool:
    target = str(log_path.resolve())
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target for handler in _logger.handlers
    )


def configure_file_logging(log_path: Path, *, console_level: int = logging.INFO) -> None:
    """Switch the application logger to daemon mode.

    Replaces the console handler with one at console_level and appends
    WARNING+ records to log_path as JSONL. Calling again with the same
    path is a no-op. If the file cannot be opened the daemon keeps running
    with stderr only.

    Args:
        log_path: JSONL file, created with an owner-only parent directory.
        console_level: Minimum level echoed to stderr.
    """
    if _has_file_handler(log_path):
        return

    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
        handler.close()
    _logger.addHandler(_stderr_handler(console_level))

    try:
        log_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        log_event(
            logging.WARNING,
            SystemEvent(
                event="file_logging_failed",
                message=f"Cannot write {log_path}, logging to stderr only",
                error_type=type(e).__name__,
                error_message=str(e),
            ),
        )
        return

    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ISO8601Formatter())
    _logger.addHandler(file_handler)


def log_event(level: int, event: SystemEvent, logger: logging.Logger | None = None) -> None:
    """Log a SystemEvent as a dict (None fields dropped).

    Args:
        level: logging level.
        event: Structured payload.
        logger: Child logger to use (defaults to the application logger).
    """
    (logger or _logger).log(level, event.model_dump(exclude_none=True))
