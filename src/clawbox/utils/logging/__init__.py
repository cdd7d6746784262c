"""Logging utilities for clawbox."""

from .iso_formatter import ISO8601Formatter
from .log_config import configure_file_logging, get_logger, log_event

__all__ = [
    "ISO8601Formatter",
    "configure_file_logging",
    "get_logger",
    "log_event",
]
