"""Unit tests for relay selection."""

from __future__ import annotations

import pytest

from clawbox.bridge.relay import bash_relay_args, python_relay_args, resolve_bridge_spec
from clawbox.exceptions import ClawboxError
from clawbox.runtime.executor import CommandResult


def _available(*programs: str):
    def handle(script: str) -> CommandResult:
        found = any(program in script for program in programs)
        return CommandResult("", "", 0 if found else 1)

    return handle


class TestResolveBridgeSpec:
    """Tests for resolve_bridge_spec()."""

    def test_prefers_python(self, fake_runtime) -> None:
        """python3 wins when present."""
        # Arrange
        fake_runtime.shell_handler = _available("python3", "/bin/bash")

        # Act
        spec = resolve_bridge_spec(fake_runtime, "clawbox-dev", 18789)

        # Assert
        assert spec.label == "python3 tcp bridge"
        assert spec.args == python_relay_args(18789)

    def test_falls_back_to_bash(self, fake_runtime) -> None:
        """Without python3, the bash /dev/tcp relay is used."""
        # Arrange
        fake_runtime.shell_handler = _available("/bin/bash")

        # Act
        spec = resolve_bridge_spec(fake_runtime, "clawbox-dev", 18789)

        # Assert
        assert spec.args == bash_relay_args(18789)
        assert "/dev/tcp/127.0.0.1/18789" in spec.args[-1]

    def test_no_relay_available(self, fake_runtime) -> None:
        """Neither program available is a runtime error."""
        # Arrange
        fake_runtime.shell_handler = _available()

        # Act / Assert
        with pytest.raises(ClawboxError) as exc_info:
            resolve_bridge_spec(fake_runtime, "clawbox-dev", 18789)
        assert exc_info.value.kind == "runtime"
