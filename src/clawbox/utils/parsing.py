"""Defensive parsing helpers for runtime output.

The runtime's JSON shape drifts between versions, so every helper here
accepts arbitrary input and returns None instead of raising.
"""

from __future__ import annotations

__all__ = [
    "as_string_dict",
    "first_string",
    "format_gb",
    "is_record",
    "normalize_ipv4",
    "parse_container_timestamp",
    "parse_iso_datetime",
    "parse_label_boolean",
    "parse_maybe_number",
    "round_to",
    "string_field",
]

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

# Apple's Foundation reference date; the runtime reports some timestamps
# as seconds since this instant
_APPLE_REFERENCE_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

# Anything below this is treated as seconds since the Apple reference epoch
_UNIX_SECONDS_THRESHOLD = 1_000_000_000

_TRUE_LABEL_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_LABEL_VALUES = frozenset({"0", "false", "no", "off"})


def round_to(value: float, digits: int = 2) -> float:
    """Round to a fixed number of decimal places."""
    return round(value, digits)


def format_gb(value: float | None) -> str:
    """Format a GB amount for display ("-" when unknown)."""
    if value is None or math.isnan(value):
        return "-"
    return f"{round_to(value, 2):g} GB"


def is_record(value: Any) -> bool:
    """True for JSON objects (dicts)."""
    return isinstance(value, Mapping)


def string_field(value: Any) -> str | None:
    """Return value if it is a string, else None."""
    return value if isinstance(value, str) else None


def first_string(record: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    """Return the first string value found under any of the candidate keys."""
    for key in keys:
        value = string_field(record.get(key))
        if value is not None:
            return value
    return None


def as_string_dict(value: Any) -> dict[str, str]:
    """Keep only the string-valued entries of a JSON object."""
    if not is_record(value):
        return {}
    return {str(key): raw for key, raw in value.items() if isinstance(raw, str)}


def normalize_ipv4(raw: str | None) -> str | None:
    """Strip a CIDR prefix length ("10.0.0.2/24" -> "10.0.0.2")."""
    if not raw:
        return None
    return raw.split("/")[0] or None


def parse_maybe_number(value: Any) -> float | None:
    """Parse an int/float/numeric string, rejecting bools and non-finite values."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_container_timestamp(value: Any) -> datetime | None:
    """Parse a runtime timestamp.

    Values below 1e9 are seconds since 2001-01-01 UTC (Apple reference
    date); larger values are Unix seconds. Zero or negative means absent.
    """
    numeric = parse_maybe_number(value)
    if numeric is None or numeric <= 0:
        return None

    try:
        if numeric < _UNIX_SECONDS_THRESHOLD:
            return _APPLE_REFERENCE_EPOCH + timedelta(seconds=numeric)
        return datetime.fromtimestamp(numeric, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 string (a trailing "Z" is accepted)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_label_boolean(value: str | None) -> bool | None:
    """Parse a boolean label value; unrecognized values yield None."""
    if not value:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_LABEL_VALUES:
        return True
    if normalized in _FALSE_LABEL_VALUES:
        return False
    return None
