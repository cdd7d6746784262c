"""Unit tests for error normalization and rendering."""

from __future__ import annotations

from clawbox.exceptions import (
    ClawboxError,
    CommandError,
    CommandTimeoutError,
    render_error,
    to_clawbox_error,
)


class TestToClawboxError:
    """Tests for to_clawbox_error()."""

    def test_passes_clawbox_error_through(self) -> None:
        """Given a ClawboxError, returns the same object."""
        # Arrange
        error = ClawboxError("bad name", kind="validation")

        # Act / Assert
        assert to_clawbox_error(error) is error

    def test_command_error_keeps_output_as_detail(self) -> None:
        """CommandError becomes runtime with stdout and stderr joined as detail."""
        # Arrange
        error = CommandError("container start x", 1, "partial", "boom")

        # Act
        result = to_clawbox_error(error)

        # Assert
        assert result.kind == "runtime"
        assert result.detail == "partial\nboom"
        assert "container start x" in result.message

    def test_command_error_without_output_has_no_detail(self) -> None:
        """Empty stdout and stderr yield no detail."""
        result = to_clawbox_error(CommandError("container rm x", 2, "", ""))

        assert result.detail is None

    def test_timeout_becomes_runtime(self) -> None:
        """CommandTimeoutError becomes a runtime error."""
        result = to_clawbox_error(CommandTimeoutError("container ls", 30))

        assert result.kind == "runtime"
        assert "timed out after 30s" in result.message

    def test_generic_exception_uses_type_name_when_empty(self) -> None:
        """An exception without text falls back to its class name."""
        result = to_clawbox_error(RuntimeError())

        assert result.kind == "runtime"
        assert result.message == "RuntimeError"


class TestRenderError:
    """Tests for render_error()."""

    def test_message_only(self) -> None:
        """Given only a message, renders one line."""
        assert render_error(ClawboxError("oops")) == "oops"

    def test_message_hint_and_detail(self) -> None:
        """Hint and detail each land on their own line."""
        # Arrange
        error = ClawboxError("oops", hint="try again", detail="log line 1\nlog line 2")

        # Act
        rendered = render_error(error)

        # Assert
        assert rendered.splitlines() == ["oops", "Hint: try again", "log line 1", "log line 2"]

    def test_default_exit_code_is_one(self) -> None:
        """ClawboxError exits 1 unless told otherwise."""
        assert ClawboxError("x").exit_code == 1
