"""Process executor for external commands.

Every call into the container runtime goes through this module. Each
invocation runs under an explicit timeout; on expiry the child gets
SIGTERM, then SIGKILL after a short grace period, so nothing blocks
indefinitely.

Invocation styles:
- run_command: captured stdout/stderr and exit code (optionally with stdin)
- run_interactive: inherits the terminal (shell attach)
- spawn_detached: backgrounded, survives the parent (daemon startup)
"""

from __future__ import annotations

__all__ = [
    "CommandResult",
    "format_command",
    "run_command",
    "run_interactive",
    "spawn_detached",
]

import os
import subprocess
from collections.abc import Mapping, Sequence
from typing import NamedTuple

from clawbox.constants import COMMAND_KILL_GRACE_SECONDS, DEFAULT_COMMAND_TIMEOUT_SECONDS
from clawbox.exceptions import CommandError, CommandTimeoutError


class CommandResult(NamedTuple):
    """Captured outcome of a finished command."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        """True if the command exited 0."""
        return self.exit_code == 0


def format_command(command: str, args: Sequence[str] = ()) -> str:
    """Render a command and its arguments as one line (for messages only)."""
    return " ".join([command, *args])


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if env is None:
        return None
    return {**os.environ, **env}


def _terminate(process: subprocess.Popen[str], grace_seconds: float) -> tuple[str, str]:
    """Terminate a child with escalation and collect whatever it printed."""
    process.terminate()
    try:
        return process.communicate(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        process.kill()
        return process.communicate()


def run_command(
    command: str,
    args: Sequence[str] = (),
    *,
    timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
    allow_non_zero_exit: bool = False,
    input_text: str | None = None,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run a command and capture its output.

    Args:
        command: Executable path or name.
        args: Argument vector (no shell interpretation).
        timeout_seconds: Hard limit for the whole invocation.
        allow_non_zero_exit: Return the result instead of raising on failure.
        input_text: Text written to stdin (stdin is /dev/null otherwise).
        cwd: Working directory.
        env: Extra environment variables, merged over the current environment.

    Returns:
        CommandResult with stripped stdout/stderr (undecodable bytes become U+FFFD).

    Raises:
        CommandError: If the exit code is non-zero and not allowed.
        CommandTimeoutError: If the timeout expired (child already terminated).
        FileNotFoundError: If the executable does not exist.
    """
    formatted = format_command(command, args)
    process = subprocess.Popen(
        [command, *args],
        stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        cwd=cwd,
        env=_merged_env(env),
    )
    try:
        stdout, stderr = process.communicate(input=input_text, timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        _terminate(process, COMMAND_KILL_GRACE_SECONDS)
        raise CommandTimeoutError(formatted, timeout_seconds) from None

    exit_code = process.returncode if process.returncode is not None else 1
    result = CommandResult(stdout=stdout.strip(), stderr=stderr.strip(), exit_code=exit_code)
    if exit_code != 0 and not allow_non_zero_exit:
        raise CommandError(formatted, exit_code, result.stdout, result.stderr)
    return result


def run_interactive(
    command: str,
    args: Sequence[str] = (),
    *,
    timeout_seconds: float | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run a command attached to the current terminal.

    Args:
        command: Executable path or name.
        args: Argument vector.
        timeout_seconds: Optional limit; None waits until the command exits.
        env: Extra environment variables.

    Returns:
        The command's exit code.

    Raises:
        CommandTimeoutError: If the timeout expired.
    """
    process = subprocess.Popen([command, *args], env=_merged_env(env))
    try:
        return process.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        process.terminate()
        try:
            process.wait(timeout=COMMAND_KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
        raise CommandTimeoutError(format_command(command, args), timeout_seconds or 0) from None
    except KeyboardInterrupt:
        # The child shares our terminal and received the same SIGINT
        return process.wait()


def spawn_detached(command: str, args: Sequence[str] = ()) -> subprocess.Popen[bytes]:
    """Spawn a background process in its own session.

    The child survives the parent exiting and has no attached stdio.

    Args:
        command: Executable path or name.
        args: Argument vector.

    Returns:
        The Popen handle (callers normally just drop it).

    Raises:
        OSError: If the process cannot be spawned.
    """
    return subprocess.Popen(
        [command, *args],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
