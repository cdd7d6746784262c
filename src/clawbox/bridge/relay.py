"""Relay programs run inside an instance by the local proxy bridge.

Each accepted host connection gets one `container exec -i` child running
a relay: bytes on its stdin go to the in-instance port, bytes from the
port come back on its stdout. The relay is picked by probing the
instance: python3 if present, else a bash /dev/tcp one-liner.
"""

from __future__ import annotations

__all__ = [
    "BridgeSpec",
    "bash_relay_args",
    "python_relay_args",
    "python_relay_script",
    "resolve_bridge_spec",
]

from typing import NamedTuple

from clawbox.constants import LOOPBACK_HOST, PROBE_TIMEOUT_SECONDS
from clawbox.exceptions import ClawboxError
from clawbox.runtime.container import ContainerRuntime

_PROBE_SHELL = "/bin/sh"


class BridgeSpec(NamedTuple):
    """Relay selected for an instance."""

    label: str
    args: tuple[str, ...]


def python_relay_script(port: int) -> str:
    """Socket relay between stdin/stdout and a loopback port."""
    return "\n".join(
        [
            "import socket",
            "import sys",
            "import threading",
            f"sock = socket.create_connection(({LOOPBACK_HOST!r}, {int(port)}), timeout=10)",
            "sock.settimeout(None)",
            "",
            "def stdin_to_sock():",
            "    try:",
            "        while True:",
            "            data = sys.stdin.buffer.read1(65536)",
            "            if not data:",
            "                break",
            "            sock.sendall(data)",
            "    except OSError:",
            "        pass",
            "    finally:",
            "        try:",
            "            sock.shutdown(socket.SHUT_WR)",
            "        except OSError:",
            "            pass",
            "",
            "threading.Thread(target=stdin_to_sock, daemon=True).start()",
            "try:",
            "    while True:",
            "        chunk = sock.recv(65536)",
            "        if not chunk:",
            "            break",
            "        sys.stdout.buffer.write(chunk)",
            "        sys.stdout.buffer.flush()",
            "finally:",
            "    sock.close()",
        ]
    )


def python_relay_args(port: int) -> tuple[str, ...]:
    return ("python3", "-u", "-c", python_relay_script(port))


def bash_relay_args(port: int) -> tuple[str, ...]:
    return ("/bin/bash", "-lc", f"exec 3<>/dev/tcp/{LOOPBACK_HOST}/{int(port)}; cat <&3 & cat >&3")


def resolve_bridge_spec(runtime: ContainerRuntime, internal_name: str, target_port: int) -> BridgeSpec:
    """Probe the instance and pick the best available relay.

    Raises:
        ClawboxError: (runtime) If neither python3 nor /bin/bash exists.
    """
    python_check = runtime.exec_shell(
        internal_name,
        "command -v python3 >/dev/null 2>&1",
        shell=_PROBE_SHELL,
        timeout_seconds=PROBE_TIMEOUT_SECONDS,
    )
    if python_check.ok:
        return BridgeSpec("python3 tcp bridge", python_relay_args(target_port))

    bash_check = runtime.exec_shell(
        internal_name,
        "test -x /bin/bash",
        shell=_PROBE_SHELL,
        timeout_seconds=PROBE_TIMEOUT_SECONDS,
    )
    if bash_check.ok:
        return BridgeSpec("bash /dev/tcp bridge", bash_relay_args(target_port))

    raise ClawboxError(
        "Unable to build a local proxy bridge: neither python3 nor /bin/bash is available in the instance.",
        kind="runtime",
    )
