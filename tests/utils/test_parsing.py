"""Unit tests for lenient field parsing helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from clawbox.utils.parsing import (
    format_gb,
    normalize_ipv4,
    parse_container_timestamp,
    parse_iso_datetime,
    parse_label_boolean,
    parse_maybe_number,
)


class TestParseMaybeNumber:
    """Tests for parse_maybe_number()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (4, 4.0),
            (4.5, 4.5),
            ("6", 6.0),
            (" 2.5 ", 2.5),
        ],
    )
    def test_accepts_numbers_and_numeric_strings(self, value: object, expected: float) -> None:
        """Numbers and numeric strings parse to float."""
        assert parse_maybe_number(value) == expected

    @pytest.mark.parametrize("value", [None, True, "", "abc", float("inf"), "nan", [1]])
    def test_rejects_everything_else(self, value: object) -> None:
        """Bools, blanks, non-finite values and other types yield None."""
        assert parse_maybe_number(value) is None


class TestParseContainerTimestamp:
    """Tests for parse_container_timestamp()."""

    def test_small_values_use_apple_reference_epoch(self) -> None:
        """Values below 1e9 are seconds since 2001-01-01 UTC."""
        assert parse_container_timestamp(86400) == datetime(2001, 1, 2, tzinfo=timezone.utc)

    def test_large_values_are_unix_seconds(self) -> None:
        """Values of 1e9 and up are Unix seconds."""
        assert parse_container_timestamp(1_700_000_000) == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    @pytest.mark.parametrize("value", [0, -5, None, "soon"])
    def test_absent_values(self, value: object) -> None:
        """Zero, negative and unparsable values mean absent."""
        assert parse_container_timestamp(value) is None


class TestSmallHelpers:
    """Tests for the remaining helpers."""

    def test_normalize_ipv4_strips_prefix_length(self) -> None:
        """CIDR suffix is dropped."""
        assert normalize_ipv4("192.168.64.3/24") == "192.168.64.3"

    def test_normalize_ipv4_empty(self) -> None:
        """Empty input yields None."""
        assert normalize_ipv4("") is None

    def test_parse_iso_datetime_accepts_z_suffix(self) -> None:
        """Trailing Z parses as UTC."""
        assert parse_iso_datetime("2025-01-02T03:04:05Z") == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_parse_iso_datetime_invalid(self) -> None:
        """Garbage yields None."""
        assert parse_iso_datetime("yesterday") is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("YES", True), ("0", False), ("off", False), ("maybe", None), (None, None)],
    )
    def test_parse_label_boolean(self, value: str | None, expected: bool | None) -> None:
        """Recognized truthy and falsy label values map to bools."""
        assert parse_label_boolean(value) is expected

    def test_format_gb(self) -> None:
        """GB amounts render compactly, unknown as a dash."""
        assert format_gb(4.0) == "4 GB"
        assert format_gb(5.5) == "5.5 GB"
        assert format_gb(None) == "-"
