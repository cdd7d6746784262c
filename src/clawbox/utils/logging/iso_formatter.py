"""JSONL formatter for the power daemon log.

Each record becomes one JSON object led by `time` (UTC, millisecond
precision, `Z` suffix), `level` and `logger`. SystemEvent payloads are
merged in field by field; anything else lands under `message`.
"""

from __future__ import annotations

__all__ = ["ISO8601Formatter"]

import json
import logging
from datetime import datetime, timezone


def _utc_timestamp(created: float) -> str:
    moment = datetime.fromtimestamp(created, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class ISO8601Formatter(logging.Formatter):
    """Render records as single-line JSON, e.g.

        {"time": "2026-10-17T10:48:37.123Z", "level": "WARNING",
         "logger": "clawbox.powerd", "event": "hold_exited", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "time": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            entry.update(record.msg)
        else:
            entry["message"] = record.getMessage()

        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)
