"""Client for the external container runtime.

ContainerRuntime wraps the runtime executable path and is the single seam
through which the reconciler, lifecycle helpers, gateway orchestrator, and
proxy bridge reach the runtime. Tests substitute a stub subclass here.
"""

from __future__ import annotations

__all__ = [
    "ContainerRuntime",
    "RuntimeStatus",
    "is_runtime_running",
]

import logging
from collections.abc import Sequence
from typing import NamedTuple

from clawbox.constants import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    LIFECYCLE_TIMEOUT_SECONDS,
    PROBE_TIMEOUT_SECONDS,
)
from clawbox.exceptions import ClawboxError
from clawbox.models import SystemEvent
from clawbox.utils.logging import get_logger, log_event

from .executor import CommandResult, run_command, run_interactive

_logger = get_logger("runtime")

# Timeout for `system status` (seconds)
STATUS_TIMEOUT_SECONDS = 15.0

# Shell used for in-instance scripts unless a caller asks otherwise
DEFAULT_INSTANCE_SHELL = "/bin/bash"


class RuntimeStatus(NamedTuple):
    """Runtime service state as reported by `system status`."""

    running: bool
    raw_status: str


def is_runtime_running(raw_status: str) -> bool:
    """Interpret `system status` output.

    Args:
        raw_status: Combined stdout/stderr of `system status`.

    Returns:
        True if the output reports the service as running.
    """
    normalized = raw_status.lower()
    if "not running" in normalized or "stopped" in normalized:
        return False
    return "running" in normalized


class ContainerRuntime:
    """Argument-vector client for the runtime executable.

    Attributes:
        binary: Absolute path to the runtime executable.
    """

    def __init__(self, binary: str) -> None:
        self.binary = binary
        self._supports_labels: bool | None = None

    def __repr__(self) -> str:
        return f"ContainerRuntime({self.binary!r})"

    # -------------------------------------------------------------------------
    # Raw invocation
    # -------------------------------------------------------------------------

    def run(
        self,
        args: Sequence[str],
        *,
        timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        allow_non_zero_exit: bool = False,
        input_text: str | None = None,
    ) -> CommandResult:
        """Run the runtime executable with an argument vector.

        Raises:
            CommandError: Non-zero exit (unless allowed).
            CommandTimeoutError: Timeout expired.
        """
        return run_command(
            self.binary,
            list(args),
            timeout_seconds=timeout_seconds,
            allow_non_zero_exit=allow_non_zero_exit,
            input_text=input_text,
        )

    def exec_argv(
        self,
        internal_name: str,
        command_args: Sequence[str],
        *,
        tty: bool = False,
    ) -> list[str]:
        """Build the full argv that runs a command inside an instance.

        stdin is always kept open (-i) so piped input reaches the command.
        """
        flags = ["-i", "-t"] if tty else ["-i"]
        return [self.binary, "exec", *flags, internal_name, *command_args]

    def exec_shell(
        self,
        internal_name: str,
        script: str,
        *script_args: str,
        shell: str = DEFAULT_INSTANCE_SHELL,
        timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        allow_non_zero_exit: bool = True,
    ) -> CommandResult:
        """Run a shell script inside an instance (login shell, non-interactive).

        Extra arguments are available to the script as $1, $2, ...
        """
        argv = self.exec_argv(internal_name, [shell, "-lc", script, "clawbox", *script_args])
        return run_command(
            argv[0],
            argv[1:],
            timeout_seconds=timeout_seconds,
            allow_non_zero_exit=allow_non_zero_exit,
        )

    def exec_interactive(self, internal_name: str, command_args: Sequence[str]) -> int:
        """Attach the current terminal to a command inside an instance."""
        argv = self.exec_argv(internal_name, command_args, tty=True)
        return run_interactive(argv[0], argv[1:])

    # -------------------------------------------------------------------------
    # Runtime service
    # -------------------------------------------------------------------------

    def version(self) -> str:
        """Return the runtime's version string."""
        result = self.run(["--version"], timeout_seconds=PROBE_TIMEOUT_SECONDS)
        return result.stdout or "unknown"

    def status(self) -> RuntimeStatus:
        """Query the runtime service state (never raises on non-zero exit)."""
        result = self.run(
            ["system", "status"],
            timeout_seconds=STATUS_TIMEOUT_SECONDS,
            allow_non_zero_exit=True,
        )
        raw = "\n".join(part for part in (result.stdout, result.stderr) if part).strip()
        return RuntimeStatus(running=is_runtime_running(raw), raw_status=raw or "unknown")

    def ensure_running(self) -> None:
        """Start the runtime service if it is not running.

        Raises:
            ClawboxError: (dependency) If the service still is not running.
        """
        if self.status().running:
            return

        log_event(
            logging.INFO,
            SystemEvent(event="runtime_starting", message="Container runtime not running, starting it"),
            _logger,
        )
        self.run(["system", "start"], timeout_seconds=LIFECYCLE_TIMEOUT_SECONDS)
        current = self.status()
        if not current.running:
            raise ClawboxError(
                "Container runtime is not running.",
                kind="dependency",
                hint="Run `container system start` and retry.",
                detail=current.raw_status,
            )

    def supports_labels(self) -> bool:
        """Check (once per client) whether `create` accepts --label."""
        if self._supports_labels is None:
            result = self.run(
                ["create", "--help"],
                timeout_seconds=PROBE_TIMEOUT_SECONDS,
                allow_non_zero_exit=True,
            )
            self._supports_labels = "--label" in f"{result.stdout}\n{result.stderr}".lower()
        return self._supports_labels
