"""Local proxy bridge: loopback TCP listener relayed into an instance.

Binds only 127.0.0.1. Each accepted connection spawns one bridge child
(`container exec -i <instance> <relay>`) and relays bytes full-duplex:

    client socket  --reader-->  bridge stdin
    bridge stdout  --writer-->  client socket

Teardown:
- client EOF: close bridge stdin, allow a bounded drain, then terminate
- client socket error: terminate the bridge immediately
- bridge exit: close the client socket
- stop(): close the listener and terminate every live bridge

One child per connection, unbounded; this is a single-operator tool.
"""

from __future__ import annotations

__all__ = [
    "BRIDGE_DRAIN_TIMEOUT_SECONDS",
    "LocalProxyBridge",
    "start_local_proxy",
]

import asyncio
import contextlib
import logging
from collections.abc import Sequence

from clawbox.constants import COMMAND_KILL_GRACE_SECONDS, LOOPBACK_HOST
from clawbox.models import SystemEvent
from clawbox.runtime.container import ContainerRuntime
from clawbox.utils.logging import get_logger, log_event

from .relay import BridgeSpec, resolve_bridge_spec

_logger = get_logger("bridge")

# After client EOF, how long the bridge may keep flushing output (seconds)
BRIDGE_DRAIN_TIMEOUT_SECONDS = 5.0

# Read size for both relay directions
_CHUNK_SIZE = 65536

# Upper bound on waiting for connection handlers during stop() (seconds)
_STOP_TIMEOUT_SECONDS = 5.0


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Terminate a bridge child, escalating to kill."""
    if process.returncode is not None:
        return
    try:
        process.terminate()
        await asyncio.wait_for(process.wait(), timeout=COMMAND_KILL_GRACE_SECONDS)
    except ProcessLookupError:
        return
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()


class LocalProxyBridge:
    """Loopback listener that relays each connection through a bridge child.

    Args:
        bridge_argv: Full argv of the per-connection bridge process.
        local_port: Port to bind on 127.0.0.1 (0 picks a free port).
        drain_timeout_seconds: Grace period after client EOF.
        label: Relay description for log messages.
    """

    def __init__(
        self,
        bridge_argv: Sequence[str],
        local_port: int,
        *,
        drain_timeout_seconds: float = BRIDGE_DRAIN_TIMEOUT_SECONDS,
        label: str = "bridge",
    ) -> None:
        self.bridge_argv = tuple(bridge_argv)
        self.local_port = local_port
        self.drain_timeout_seconds = drain_timeout_seconds
        self.label = label
        self._server: asyncio.Server | None = None
        self._bridges: set[asyncio.subprocess.Process] = set()

    @property
    def host(self) -> str:
        return LOOPBACK_HOST

    @property
    def port(self) -> int:
        """The bound port (resolved after start when local_port was 0)."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self.local_port

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    @property
    def active_bridges(self) -> int:
        return sum(1 for process in self._bridges if process.returncode is None)

    async def start(self) -> None:
        """Bind the listener.

        Raises:
            OSError: If the port is unavailable.
        """
        self._server = await asyncio.start_server(self._handle_connection, LOOPBACK_HOST, self.local_port)
        log_event(
            logging.INFO,
            SystemEvent(
                event="bridge_listening",
                message=f"Local proxy listening on {LOOPBACK_HOST}:{self.port} ({self.label})",
            ),
            _logger,
        )

    async def stop(self) -> None:
        """Close the listener and terminate every outstanding bridge."""
        server, self._server = self._server, None
        if server is not None:
            server.close()

        await asyncio.gather(*(_terminate(process) for process in list(self._bridges)))
        self._bridges.clear()

        if server is not None:
            try:
                await asyncio.wait_for(server.wait_closed(), timeout=_STOP_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                log_event(
                    logging.WARNING,
                    SystemEvent(event="bridge_stop_timeout", message="Timed out waiting for connections to close"),
                    _logger,
                )

    async def __aenter__(self) -> LocalProxyBridge:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _client_to_bridge(self, reader: asyncio.StreamReader, process: asyncio.subprocess.Process) -> None:
        stdin = process.stdin
        assert stdin is not None
        try:
            while chunk := await reader.read(_CHUNK_SIZE):
                stdin.write(chunk)
                await stdin.drain()
        except (ConnectionError, OSError):
            # Socket error (or bridge stdin gone): no drain
            await _terminate(process)
            return

        stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout=self.drain_timeout_seconds)
        except asyncio.TimeoutError:
            await _terminate(process)

    async def _bridge_to_client(self, process: asyncio.subprocess.Process, writer: asyncio.StreamWriter) -> None:
        stdout = process.stdout
        assert stdout is not None
        try:
            while chunk := await stdout.read(_CHUNK_SIZE):
                writer.write(chunk)
                await writer.drain()
        except (ConnectionError, OSError):
            await _terminate(process)

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.bridge_argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="bridge_spawn_failed",
                    message="Failed to spawn bridge process",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
                _logger,
            )
            writer.close()
            return

        self._bridges.add(process)
        upstream = asyncio.create_task(self._client_to_bridge(reader, process))
        try:
            await self._bridge_to_client(process, writer)
        finally:
            # Bridge output ended: the connection is over either way
            if not upstream.done():
                upstream.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await upstream
            await _terminate(process)
            self._bridges.discard(process)
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()


async def start_local_proxy(
    runtime: ContainerRuntime,
    internal_name: str,
    target_port: int,
    local_port: int,
    *,
    spec: BridgeSpec | None = None,
) -> LocalProxyBridge:
    """Probe the instance for a relay and start listening on loopback.

    Args:
        runtime: Runtime client.
        internal_name: Runtime id of a running instance.
        target_port: Port inside the instance.
        local_port: Port on 127.0.0.1.
        spec: Preselected relay (probed when None).

    Returns:
        A started bridge; call stop() to tear it down.

    Raises:
        ClawboxError: (runtime) If no relay program is available.
        OSError: If the local port cannot be bound.
    """
    if spec is None:
        spec = await asyncio.to_thread(resolve_bridge_spec, runtime, internal_name, target_port)

    bridge = LocalProxyBridge(runtime.exec_argv(internal_name, spec.args), local_port, label=spec.label)
    await bridge.start()
    return bridge
