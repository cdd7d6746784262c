"""Unit tests for the JSONL log formatter."""

from __future__ import annotations

import json
import logging
import sys

from clawbox.models import SystemEvent
from clawbox.utils.logging import ISO8601Formatter


def _record(msg: object, level: int = logging.WARNING) -> logging.LogRecord:
    return logging.LogRecord("clawbox.powerd", level, __file__, 1, msg, None, None)


class TestISO8601Formatter:
    """Tests for ISO8601Formatter."""

    def test_structured_event(self) -> None:
        """SystemEvent dicts are merged into the JSON line."""
        # Arrange
        event = SystemEvent(event="hold_exited", message="hold died", pid=42).model_dump(exclude_none=True)

        # Act
        entry = json.loads(ISO8601Formatter().format(_record(event)))

        # Assert
        assert entry["event"] == "hold_exited"
        assert entry["pid"] == 42
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "clawbox.powerd"
        assert entry["time"].endswith("Z")

    def test_plain_message(self) -> None:
        """Plain strings land under message."""
        entry = json.loads(ISO8601Formatter().format(_record("hello")))

        assert entry["message"] == "hello"

    def test_exception_info_becomes_traceback(self) -> None:
        """Given a record with exc_info, the formatted traceback is included."""
        # Arrange
        try:
            raise RuntimeError("hold spawn failed")
        except RuntimeError:
            record = logging.LogRecord("clawbox.powerd", logging.ERROR, __file__, 1, "boom", None, sys.exc_info())

        # Act
        entry = json.loads(ISO8601Formatter().format(record))

        # Assert
        assert entry["message"] == "boom"
        assert "RuntimeError: hold spawn failed" in entry["traceback"]

    def test_timestamp_has_millisecond_precision(self) -> None:
        """Timestamps are UTC with exactly three fractional digits."""
        # Arrange
        record = _record("x")
        record.created = 0.5

        # Act
        entry = json.loads(ISO8601Formatter().format(record))

        # Assert
        assert entry["time"] == "1970-01-01T00:00:00.500Z"
