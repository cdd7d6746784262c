"""Custom exceptions for clawbox.

This module contains all custom exceptions used throughout the package.
Exceptions are organized into two categories:

Process Failures (raised by the executor):
    - CommandError: External command exited non-zero
    - CommandTimeoutError: External command exceeded its timeout

User-facing Errors (rendered by the CLI):
    - ClawboxError: One typed error carrying kind, message, hint, and detail

Lower-layer failures are normalized with to_clawbox_error() before they
reach the user, so every failure surfaces in the same shape.

Usage:
    from clawbox.exceptions import ClawboxError, CommandError
"""

from __future__ import annotations

__all__ = [
    "ERROR_KINDS",
    "ClawboxError",
    "CommandError",
    "CommandTimeoutError",
    "ErrorKind",
    "render_error",
    "to_clawbox_error",
]

from typing import Literal

ErrorKind = Literal["validation", "not_found", "dependency", "runtime"]

ERROR_KINDS: tuple[str, ...] = ("validation", "not_found", "dependency", "runtime")


# =============================================================================
# Process Failures
# =============================================================================


class CommandError(Exception):
    """External command exited with a non-zero status.

    Attributes:
        command: The formatted command line that was run.
        exit_code: Process exit status.
        stdout: Captured standard output (stripped).
        stderr: Captured standard error (stripped).
    """

    def __init__(self, command: str, exit_code: int, stdout: str, stderr: str) -> None:
        super().__init__(f"Command failed ({exit_code}): {command}")
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeoutError(Exception):
    """External command did not finish within its timeout.

    The child process has already been terminated when this is raised.
    """

    def __init__(self, command: str, timeout_seconds: float) -> None:
        super().__init__(f"Command timed out after {timeout_seconds:g}s: {command}")
        self.command = command
        self.timeout_seconds = timeout_seconds


# =============================================================================
# User-facing Errors
# =============================================================================


class ClawboxError(Exception):
    """Typed error surfaced to the operator.

    Kinds:
    - validation: bad input or a policy-denied request
    - not_found: named instance absent
    - dependency: runtime binary missing or runtime not running
    - runtime: execution failures, timeouts, unexpected parse failures

    Attributes:
        kind: Error category.
        message: One-line summary (may span lines for policy arithmetic).
        hint: Optional suggestion for the next step.
        detail: Optional multi-line diagnostic payload (log tails, stderr).
        exit_code: Process exit code used by the CLI.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = "runtime",
        hint: str | None = None,
        detail: str | None = None,
        exit_code: int = 1,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.hint = hint
        self.detail = detail
        self.exit_code = exit_code

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        parts = [f"ClawboxError({self.message!r}, kind={self.kind!r}"]
        if self.hint is not None:
            parts.append(f", hint={self.hint!r}")
        if self.detail is not None:
            parts.append(f", detail={self.detail!r}")
        parts.append(")")
        return "".join(parts)

    def __str__(self) -> str:
        """Return human-readable string representation."""
        return self.message


def to_clawbox_error(error: BaseException) -> ClawboxError:
    """Normalize any exception into a ClawboxError.

    Args:
        error: The exception raised by a lower layer.

    Returns:
        The same object if it already is a ClawboxError, otherwise a
        runtime ClawboxError. CommandError output is kept as detail.
    """
    if isinstance(error, ClawboxError):
        return error

    if isinstance(error, CommandError):
        detail = "\n".join(part for part in (error.stdout, error.stderr) if part)
        return ClawboxError(str(error), kind="runtime", detail=detail or None)

    return ClawboxError(str(error) or type(error).__name__, kind="runtime")


def render_error(error: ClawboxError) -> str:
    """Render an error as message, hint, and detail on separate lines."""
    lines = [error.message]
    if error.hint:
        lines.append(f"Hint: {error.hint}")
    if error.detail:
        lines.append(error.detail)
    return "\n".join(lines)
