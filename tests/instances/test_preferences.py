"""Unit tests for the keep-awake preference store."""

from __future__ import annotations

import json
from pathlib import Path

from clawbox.instances.preferences import PreferenceStore


class TestPreferenceStore:
    """Tests for PreferenceStore."""

    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        """Given no file, read() returns an empty map."""
        assert PreferenceStore(tmp_path / "prefs.json").read() == {}

    def test_malformed_file_reads_empty(self, tmp_path: Path) -> None:
        """Given malformed JSON, read() returns an empty map."""
        # Arrange
        path = tmp_path / "prefs.json"
        path.write_text("{oops")

        # Act / Assert
        assert PreferenceStore(path).read() == {}

    def test_non_boolean_values_are_dropped(self, tmp_path: Path) -> None:
        """Only boolean flags survive a read."""
        # Arrange
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps({"keepAwakeByInternalName": {"clawbox-a": False, "clawbox-b": "yes"}}))

        # Act / Assert
        assert PreferenceStore(path).read() == {"clawbox-a": False}

    def test_set_keep_awake_writes_file_format(self, tmp_path: Path) -> None:
        """Flags are stored under keepAwakeByInternalName."""
        # Arrange
        path = tmp_path / "nested" / "prefs.json"
        store = PreferenceStore(path)

        # Act
        store.set_keep_awake("clawbox-a", False)
        store.set_keep_awake("clawbox-b", True)

        # Assert
        assert json.loads(path.read_text()) == {"keepAwakeByInternalName": {"clawbox-a": False, "clawbox-b": True}}

    def test_remove_drops_entry(self, tmp_path: Path) -> None:
        """remove() forgets one instance and keeps the rest."""
        # Arrange
        store = PreferenceStore(tmp_path / "prefs.json")
        store.set_keep_awake("clawbox-a", False)
        store.set_keep_awake("clawbox-b", True)

        # Act
        store.remove("clawbox-a")

        # Assert
        assert store.read() == {"clawbox-b": True}

    def test_remove_without_file_does_not_create_it(self, tmp_path: Path) -> None:
        """Removing from a missing store is a no-op."""
        # Arrange
        path = tmp_path / "prefs.json"

        # Act
        PreferenceStore(path).remove("clawbox-a")

        # Assert
        assert not path.exists()
