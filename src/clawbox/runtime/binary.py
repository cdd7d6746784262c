"""Runtime executable discovery and host compatibility.

Discovery order:
1. CLAWBOX_CONTAINER_BIN environment variable
2. container_bin from config.json
3. Well-known install locations
4. PATH lookup
"""

from __future__ import annotations

__all__ = [
    "HostCompatibility",
    "get_host_compatibility",
    "open_runtime",
    "require_container_binary",
    "resolve_container_binary",
]

import os
import platform
import shutil
import sys
from typing import NamedTuple

from clawbox.config import ClawboxConfig
from clawbox.constants import (
    CONTAINER_BIN_ENV_VAR,
    CONTAINER_BINARY_CANDIDATES,
    MIN_SUPPORTED_DARWIN_MAJOR,
)
from clawbox.exceptions import ClawboxError

from .container import ContainerRuntime

_INSTALL_HINT = "Install the Apple container CLI, then run `container system start`."


class HostCompatibility(NamedTuple):
    """Whether this host can run the container runtime."""

    os: str
    arch: str
    darwin_major: int | None
    supported: bool
    reason: str | None = None


def resolve_container_binary(config: ClawboxConfig | None = None) -> str | None:
    """Find the runtime executable.

    Args:
        config: Loaded configuration (its container_bin is a candidate).

    Returns:
        Path to an existing executable, or None if not found.
    """
    candidates = [
        os.environ.get(CONTAINER_BIN_ENV_VAR),
        config.container_bin if config is not None else None,
        *CONTAINER_BINARY_CANDIDATES,
    ]
    for candidate in candidates:
        if candidate and os.path.isfile(os.path.expanduser(candidate)):
            return os.path.expanduser(candidate)

    return shutil.which("container")


def require_container_binary(config: ClawboxConfig | None = None) -> str:
    """Find the runtime executable or fail with a dependency error.

    Raises:
        ClawboxError: (dependency) If no executable was found.
    """
    binary = resolve_container_binary(config)
    if binary:
        return binary

    raise ClawboxError(
        "Apple container CLI was not found.",
        kind="dependency",
        hint=_INSTALL_HINT,
    )


def open_runtime(config: ClawboxConfig | None = None, *, ensure_running: bool = True) -> ContainerRuntime:
    """Resolve the executable and return a client with the service running.

    Raises:
        ClawboxError: (dependency) If the binary is missing or the service
            cannot be started.
    """
    runtime = ContainerRuntime(require_container_binary(config))
    if ensure_running:
        runtime.ensure_running()
    return runtime


def _parse_darwin_major(release: str) -> int | None:
    try:
        return int(release.split(".")[0])
    except ValueError:
        return None


def get_host_compatibility() -> HostCompatibility:
    """Check OS, architecture, and macOS version requirements."""
    arch = platform.machine()
    if sys.platform != "darwin":
        return HostCompatibility(sys.platform, arch, None, False, "clawbox only supports macOS")
    if arch != "arm64":
        return HostCompatibility(sys.platform, arch, None, False, "clawbox requires Apple Silicon (arm64)")

    darwin_major = _parse_darwin_major(platform.release())
    if darwin_major is not None and darwin_major < MIN_SUPPORTED_DARWIN_MAJOR:
        return HostCompatibility(
            sys.platform,
            arch,
            darwin_major,
            False,
            f"clawbox requires macOS 26+ (Darwin {MIN_SUPPORTED_DARWIN_MAJOR}+)",
        )
    return HostCompatibility(sys.platform, arch, darwin_major, True)
