"""Power daemon: keep the host awake while keep-awake instances run.

One detached background process per user (`clawbox _powerd`), guarded by
a PID file claim. Every interval it asks whether any running instance has
keep_awake set and toggles a single `caffeinate -ims` hold process to
match. Any error while polling counts as "no hold needed" for that tick.

SIGINT, SIGTERM and SIGHUP trigger shutdown: the hold is terminated
(escalating to kill after a grace period) and the PID file is removed
only if it still names this process.

Commands that touch running instances call ensure_power_daemon_running(),
which spawns the daemon if none is alive (macOS only).
"""

from __future__ import annotations

__all__ = [
    "HOLD_STOP_TIMEOUT_SECONDS",
    "PowerDaemon",
    "ensure_power_daemon_running",
    "run_power_daemon",
    "should_keep_host_awake",
]

import asyncio
import logging
import os
import shutil
import signal
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from clawbox.config import ClawboxConfig, get_powerd_log_path, load_config
from clawbox.constants import (
    APP_NAME,
    KEEP_AWAKE_COMMAND,
    POWER_POLL_INTERVAL_SECONDS,
    POWERD_COMMAND,
    POWERD_PID_PATH,
)
from clawbox.instances.reconciler import list_managed_instances
from clawbox.models import SystemEvent
from clawbox.runtime.binary import resolve_container_binary
from clawbox.runtime.container import ContainerRuntime
from clawbox.runtime.executor import spawn_detached
from clawbox.utils.logging import configure_file_logging, get_logger, log_event

from .pidfile import claim_pid_file, has_live_daemon, release_if_owned

_logger = get_logger("powerd")

# Grace period between SIGTERM and SIGKILL for the hold process (seconds)
HOLD_STOP_TIMEOUT_SECONDS = 5.0

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


def should_keep_host_awake(config: ClawboxConfig | None = None) -> bool:
    """True if any running managed instance has keep_awake set.

    Blocking (runs runtime commands); the daemon calls it from a worker
    thread. A missing binary or stopped runtime means no hold.
    """
    binary = resolve_container_binary(config)
    if not binary:
        return False

    runtime = ContainerRuntime(binary)
    if not runtime.status().running:
        return False

    return any(instance.is_running and instance.keep_awake for instance in list_managed_instances(runtime))


class PowerDaemon:
    """Poll loop owning at most one stay-awake hold process.

    Args:
        should_hold: Blocking predicate queried once per tick.
        interval_seconds: Poll cadence.
        hold_command: Argv of the stay-awake utility.
    """

    def __init__(
        self,
        should_hold: Callable[[], bool],
        *,
        interval_seconds: float = POWER_POLL_INTERVAL_SECONDS,
        hold_command: Sequence[str] = KEEP_AWAKE_COMMAND,
    ) -> None:
        self._should_hold = should_hold
        self.interval_seconds = interval_seconds
        self.hold_command = tuple(hold_command)
        self._hold: asyncio.subprocess.Process | None = None

    @property
    def hold_active(self) -> bool:
        """True while a hold process is tracked and still running."""
        return self._hold is not None and self._hold.returncode is None

    @property
    def hold_pid(self) -> int | None:
        return self._hold.pid if self._hold is not None else None

    async def _query(self) -> bool:
        try:
            return await asyncio.to_thread(self._should_hold)
        except Exception as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="poll_failed",
                    message="Failed to query instance state, releasing hold for this tick",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
                _logger,
            )
            return False

    async def _acquire_hold(self) -> None:
        try:
            self._hold = await asyncio.create_subprocess_exec(
                *self.hold_command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="hold_spawn_failed",
                    message=f"Failed to start {self.hold_command[0]}",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
                _logger,
            )
            return
        log_event(
            logging.INFO,
            SystemEvent(event="hold_acquired", message="Keep-awake hold acquired", pid=self._hold.pid),
            _logger,
        )

    async def release_hold(self) -> None:
        """Terminate the hold process (kill if it ignores SIGTERM)."""
        process, self._hold = self._hold, None
        if process is None or process.returncode is not None:
            return
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=HOLD_STOP_TIMEOUT_SECONDS)
        except ProcessLookupError:
            return
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
        log_event(
            logging.INFO,
            SystemEvent(event="hold_released", message="Keep-awake hold released", pid=process.pid),
            _logger,
        )

    async def tick(self) -> bool:
        """Run one poll cycle.

        Returns:
            Whether a hold was wanted this tick.
        """
        wanted = await self._query()

        if self._hold is not None and self._hold.returncode is not None:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="hold_exited",
                    message=f"Keep-awake hold exited on its own (code {self._hold.returncode})",
                    pid=self._hold.pid,
                ),
                _logger,
            )
            self._hold = None

        if wanted and self._hold is None:
            await self._acquire_hold()
        elif not wanted and self._hold is not None:
            await self.release_hold()
        return wanted

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Tick until shutdown_event is set, then release the hold."""
        try:
            while not shutdown_event.is_set():
                await self.tick()
                try:
                    await asyncio.wait_for(shutdown_event.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    continue
        finally:
            await self.release_hold()


async def _run_until_signalled(daemon: PowerDaemon) -> None:
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_signal(signum: int) -> None:
        log_event(
            logging.INFO,
            SystemEvent(
                event="shutdown_signal_received",
                message=f"Received signal {signum}, initiating shutdown",
                details={"signal": signum},
            ),
            _logger,
        )
        shutdown_event.set()

    for signum in _SHUTDOWN_SIGNALS:
        loop.add_signal_handler(signum, handle_signal, signum)

    await daemon.run(shutdown_event)


def run_power_daemon(config: ClawboxConfig | None = None, *, pid_path: Path = POWERD_PID_PATH) -> bool:
    """Run the daemon in the foreground until a shutdown signal.

    Returns:
        False if another live daemon holds the claim (this one exits at once).
    """
    config = config or load_config()
    configure_file_logging(get_powerd_log_path(config))

    if not claim_pid_file(pid_path):
        log_event(
            logging.INFO,
            SystemEvent(event="powerd_already_running", message="Power daemon already running, exiting"),
            _logger,
        )
        return False

    log_event(
        logging.INFO,
        SystemEvent(
            event="powerd_started",
            message=f"Power daemon started (interval {config.power_poll_interval_seconds:g}s)",
            pid=os.getpid(),
        ),
        _logger,
    )
    daemon = PowerDaemon(
        lambda: should_keep_host_awake(config),
        interval_seconds=config.power_poll_interval_seconds,
    )
    try:
        asyncio.run(_run_until_signalled(daemon))
    finally:
        release_if_owned(pid_path)
        log_event(
            logging.INFO,
            SystemEvent(event="powerd_stopped", message="Power daemon stopped", pid=os.getpid()),
            _logger,
        )
    return True


def ensure_power_daemon_running(pid_path: Path = POWERD_PID_PATH) -> bool:
    """Spawn the detached daemon unless one is alive.

    Only macOS has the stay-awake utility; elsewhere this is a no-op.

    Returns:
        True if a daemon process was spawned.
    """
    if sys.platform != "darwin":
        return False
    if has_live_daemon(pid_path):
        return False

    # Prefer the installed entry point, fall back to the module (__main__.py)
    clawbox_path = shutil.which(APP_NAME)
    if clawbox_path is None:
        spawn_detached(sys.executable, ["-m", "clawbox.cli", POWERD_COMMAND])
    else:
        spawn_detached(clawbox_path, [POWERD_COMMAND])
    return True
