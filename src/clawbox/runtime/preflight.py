"""Host prerequisite checks for `clawbox doctor`.

Each check is independent; a failed check carries a fix and, where one
exists, shell commands the operator can paste. Checks after the binary
lookup are skipped when no runtime executable is found.
"""

from __future__ import annotations

__all__ = [
    "MIN_HOST_RAM_GB",
    "MIN_PYTHON_VERSION",
    "PreflightCheck",
    "PreflightReport",
    "run_preflight",
]

import sys

from pydantic import Field

from clawbox.config import ClawboxConfig
from clawbox.exceptions import CommandError, CommandTimeoutError
from clawbox.models import FrozenModel
from clawbox.ram_policy import host_total_ram_gb

from .binary import get_host_compatibility, resolve_container_binary
from .container import ContainerRuntime

MIN_HOST_RAM_GB = 16

MIN_PYTHON_VERSION = (3, 11)

_INSTALL_COMMANDS = (
    "curl -fL -o /tmp/container-installer-signed.pkg "
    "https://github.com/apple/container/releases/latest/download/container-installer-signed.pkg",
    "sudo installer -pkg /tmp/container-installer-signed.pkg -target /",
    "container system start",
)


class PreflightCheck(FrozenModel):
    """Outcome of one prerequisite check."""

    key: str
    ok: bool
    message: str
    fix: str | None = None
    suggested_commands: tuple[str, ...] = Field(default_factory=tuple)


class PreflightReport(FrozenModel):
    """All checks; ok only if every check passed."""

    checks: tuple[PreflightCheck, ...]

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)


def _runtime_checks(binary: str) -> list[PreflightCheck]:
    runtime = ContainerRuntime(binary)
    checks: list[PreflightCheck] = []

    try:
        checks.append(PreflightCheck(key="container-version", ok=True, message=runtime.version()))
    except (CommandError, CommandTimeoutError, OSError) as e:
        checks.append(
            PreflightCheck(
                key="container-version",
                ok=False,
                message=str(e),
                fix="Verify the container CLI is correctly installed.",
            )
        )

    try:
        running = runtime.status().running
        checks.append(
            PreflightCheck(
                key="container-runtime",
                ok=running,
                message="container runtime is running" if running else "container runtime is not running",
                fix=None if running else "Run `container system start`.",
                suggested_commands=() if running else ("container system start",),
            )
        )
    except (CommandError, CommandTimeoutError, OSError) as e:
        checks.append(
            PreflightCheck(
                key="container-runtime",
                ok=False,
                message=str(e),
                fix="Run `container system start` and retry.",
                suggested_commands=("container system start",),
            )
        )
    return checks


def run_preflight(config: ClawboxConfig | None = None) -> PreflightReport:
    """Run every host prerequisite check."""
    checks: list[PreflightCheck] = []

    compatibility = get_host_compatibility()
    checks.append(
        PreflightCheck(
            key="host",
            ok=compatibility.supported,
            message=(
                f"Host platform is supported ({compatibility.os}/{compatibility.arch})"
                if compatibility.supported
                else compatibility.reason or "Unsupported host platform"
            ),
            fix=None if compatibility.supported else "Use macOS on Apple Silicon.",
        )
    )

    python_ok = sys.version_info[:2] >= MIN_PYTHON_VERSION
    checks.append(
        PreflightCheck(
            key="python",
            ok=python_ok,
            message=f"Python {sys.version.split()[0]}",
            fix=None if python_ok else "Install Python 3.11 or newer.",
        )
    )

    total_ram_gb = host_total_ram_gb()
    ram_ok = total_ram_gb >= MIN_HOST_RAM_GB
    checks.append(
        PreflightCheck(
            key="ram",
            ok=ram_ok,
            message=f"Host RAM: {total_ram_gb:g} GB",
            fix=None if ram_ok else f"Use a host with at least {MIN_HOST_RAM_GB} GB RAM.",
        )
    )

    binary = resolve_container_binary(config)
    if not binary:
        checks.append(
            PreflightCheck(
                key="container-bin",
                ok=False,
                message="Apple container CLI not found.",
                fix="Install Apple's container CLI, then start the runtime.",
                suggested_commands=_INSTALL_COMMANDS,
            )
        )
        return PreflightReport(checks=tuple(checks))

    checks.append(PreflightCheck(key="container-bin", ok=True, message=f"container CLI found at {binary}"))
    checks.extend(_runtime_checks(binary))
    return PreflightReport(checks=tuple(checks))
