"""Runtime package: everything that talks to the container runtime.

- executor.py: Timed external command execution
- container.py: ContainerRuntime client (the single runtime seam)
- binary.py: Executable discovery and host compatibility
- image.py: Default image presence and build
- preflight.py: Host prerequisite checks (doctor)
"""

from .binary import (
    HostCompatibility,
    get_host_compatibility,
    open_runtime,
    require_container_binary,
    resolve_container_binary,
)
from .container import ContainerRuntime, RuntimeStatus, is_runtime_running
from .executor import CommandResult, format_command, run_command, run_interactive, spawn_detached

__all__ = [
    "CommandResult",
    "ContainerRuntime",
    "HostCompatibility",
    "RuntimeStatus",
    "format_command",
    "get_host_compatibility",
    "is_runtime_running",
    "open_runtime",
    "require_container_binary",
    "resolve_container_binary",
    "run_command",
    "run_interactive",
    "spawn_detached",
]
