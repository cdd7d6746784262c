"""Per-instance preferences the runtime cannot persist.

The keep-awake flag lives in a small JSON file next to config.json:

    {"keepAwakeByInternalName": {"clawbox-dev": true}}

The file is authoritative over label-derived defaults. A missing or
malformed file reads as empty; non-boolean values are dropped on read.
Writes are read-modify-write with an atomic replace, so readers never see
a partial file (concurrent writers: last one wins).
"""

from __future__ import annotations

__all__ = [
    "PREFERENCES_FILENAME",
    "PreferenceStore",
    "get_preferences_path",
]

import json
import logging
from pathlib import Path
from typing import Any

from clawbox.models import SystemEvent
from clawbox.utils.file_helpers import atomic_write_text, get_app_dir
from clawbox.utils.logging import get_logger, log_event
from clawbox.utils.parsing import is_record

_logger = get_logger("preferences")

PREFERENCES_FILENAME = "instance-preferences.json"

_KEEP_AWAKE_KEY = "keepAwakeByInternalName"


def get_preferences_path() -> Path:
    """Get the default preference file path (in the app directory)."""
    return get_app_dir() / PREFERENCES_FILENAME


class PreferenceStore:
    """Keep-awake flags keyed by internal instance name."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else get_preferences_path()

    def _load(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="preferences_read_failed",
                    message="Failed to read instance preferences, treating as empty",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"path": str(self.path)},
                ),
                _logger,
            )
            return {}

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return parsed if is_record(parsed) else {}

    def read(self) -> dict[str, bool]:
        """Return the keep-awake map (empty if absent or malformed)."""
        raw_map = self._load().get(_KEEP_AWAKE_KEY)
        if not is_record(raw_map):
            return {}
        return {str(key): value for key, value in raw_map.items() if isinstance(value, bool)}

    def _write(self, keep_awake: dict[str, bool]) -> None:
        content = json.dumps({_KEEP_AWAKE_KEY: keep_awake}, indent=2) + "\n"
        atomic_write_text(self.path, content)

    def set_keep_awake(self, internal_name: str, keep_awake: bool) -> None:
        """Record the keep-awake flag for one instance."""
        current = self.read()
        current[internal_name] = keep_awake
        self._write(current)

    def remove(self, internal_name: str) -> None:
        """Forget an instance (no-op if it has no entry)."""
        current = self.read()
        if current.pop(internal_name, None) is None and not self.path.exists():
            return
        self._write(current)
