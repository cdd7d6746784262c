"""Gateway orchestration: make the in-instance gateway healthy.

Per-call state machine (nothing persists between calls):

1. Binary missing   -> arm the bootstrap watcher, return pending
2. Already healthy  -> return ready (no restart)
3. Stale process    -> kill it
4. Start, wait      -> ready
5. Token missing    -> provision token file, restart with token, wait
6. Otherwise        -> error with the log tail as detail

A gateway that is already healthy is never restarted, so repeated calls
are idempotent.
"""

from __future__ import annotations

__all__ = [
    "GatewayOrchestrator",
    "ensure_gateway",
    "format_gateway_result",
]

import logging
import time
from collections.abc import Callable

import click

from clawbox.config import GatewaySettings
from clawbox.constants import LOOPBACK_HOST
from clawbox.models import GatewayEnsureResult, SystemEvent
from clawbox.runtime.container import ContainerRuntime
from clawbox.runtime.executor import CommandResult
from clawbox.utils.logging import get_logger, log_event
from clawbox.utils.polling import wait_for_condition

from . import scripts

_logger = get_logger("gateway")

# Poll interval while waiting for the gateway to answer (seconds)
HEALTH_POLL_INTERVAL_SECONDS = 1.0


class GatewayOrchestrator:
    """Ensures the gateway inside one instance is running and healthy.

    Args:
        runtime: Runtime client used for every in-instance script.
        settings: Gateway settings (port, timeouts, enabled flag).
        sleep: Sleep function (injectable for tests).
        clock: Monotonic clock (injectable for tests).
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        settings: GatewaySettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.runtime = runtime
        self.settings = settings or GatewaySettings()
        self._sleep = sleep
        self._clock = clock

    def _exec(self, internal_name: str, script: str) -> CommandResult:
        return self.runtime.exec_shell(internal_name, script, allow_non_zero_exit=True)

    def _succeeds(self, internal_name: str, script: str) -> bool:
        return self._exec(internal_name, script).ok

    def is_healthy(self, internal_name: str) -> bool:
        return self._succeeds(internal_name, scripts.health_probe_script(self.settings.port))

    def wait_for_health(self, internal_name: str, timeout_seconds: float) -> bool:
        return wait_for_condition(
            lambda: self.is_healthy(internal_name),
            timeout_seconds,
            HEALTH_POLL_INTERVAL_SECONDS,
            sleep=self._sleep,
            clock=self._clock,
        )

    def read_log_tail(self, internal_name: str) -> str:
        result = self._exec(internal_name, scripts.log_tail_script())
        return result.stdout or result.stderr or "<no log output>"

    def _ready(self, internal_name: str, message: str) -> GatewayEnsureResult:
        log_event(
            logging.INFO,
            SystemEvent(event="gateway_ready", message=message, internal_name=internal_name),
            _logger,
        )
        return GatewayEnsureResult(status="ready", message=message)

    def _error(self, internal_name: str, message: str) -> GatewayEnsureResult:
        detail = self.read_log_tail(internal_name)
        log_event(
            logging.WARNING,
            SystemEvent(event="gateway_unhealthy", message=message, internal_name=internal_name),
            _logger,
        )
        return GatewayEnsureResult(status="error", message=message, detail=detail)

    def _recover_missing_token(self, internal_name: str) -> bool:
        """Provision a token and restart with it; True if healthy afterwards."""
        log_event(
            logging.INFO,
            SystemEvent(
                event="gateway_token_recovery",
                message="Gateway reports no auth token, provisioning one and restarting",
                internal_name=internal_name,
            ),
            _logger,
        )
        self._exec(internal_name, scripts.stop_gateway_script())
        if not self._succeeds(internal_name, scripts.ensure_token_script()):
            return False
        if not self._succeeds(internal_name, scripts.start_gateway_script(self.settings.port, with_token=True)):
            return False
        return self.wait_for_health(internal_name, self.settings.token_timeout_seconds)

    def ensure(self, internal_name: str) -> GatewayEnsureResult:
        """Bring the gateway to a healthy state (or explain why not).

        Args:
            internal_name: Runtime id of a running instance.

        Returns:
            ready, pending (watcher armed), skipped (disabled), or error.
        """
        if not self.settings.enabled:
            return GatewayEnsureResult(status="skipped", message="Gateway management is disabled in config.")

        if not self._succeeds(internal_name, scripts.binary_exists_script()):
            self._exec(internal_name, scripts.watcher_script(self.settings.port))
            log_event(
                logging.INFO,
                SystemEvent(
                    event="gateway_watcher_armed",
                    message="Gateway binary not installed, bootstrap watcher armed",
                    internal_name=internal_name,
                ),
                _logger,
            )
            return GatewayEnsureResult(
                status="pending",
                message="OpenClaw not installed yet. Gateway bootstrap watcher is armed "
                "and will auto-start after install.",
            )

        self._exec(internal_name, scripts.ensure_log_dir_script())

        if self.is_healthy(internal_name):
            return GatewayEnsureResult(status="ready", message="OpenClaw gateway already healthy.")

        if self._succeeds(internal_name, scripts.process_running_script()):
            self._exec(internal_name, scripts.stop_gateway_script())

        if not self._succeeds(internal_name, scripts.start_gateway_script(self.settings.port)):
            return self._error(internal_name, "Failed to launch OpenClaw gateway process.")

        ready_message = f"OpenClaw gateway is ready on ws://{LOOPBACK_HOST}:{self.settings.port}."
        if self.wait_for_health(internal_name, self.settings.start_timeout_seconds):
            return self._ready(internal_name, ready_message)

        if scripts.is_gateway_token_missing_log(self.read_log_tail(internal_name)):
            if self._recover_missing_token(internal_name):
                return self._ready(internal_name, ready_message)

        return self._error(internal_name, "OpenClaw gateway did not become healthy in time.")


def ensure_gateway(
    runtime: ContainerRuntime,
    internal_name: str,
    settings: GatewaySettings | None = None,
) -> GatewayEnsureResult:
    """Convenience wrapper for one-off ensure calls."""
    return GatewayOrchestrator(runtime, settings).ensure(internal_name)


def format_gateway_result(result: GatewayEnsureResult) -> str:
    """Render a result for the terminal (color by status, log tail on error)."""
    if result.status == "ready":
        return click.style(result.message, fg="green")
    if result.status == "pending":
        return click.style(result.message, fg="cyan")
    if result.status == "skipped":
        return click.style(result.message, fg="yellow")

    message = click.style(result.message, fg="red")
    if result.detail:
        message += "\n" + click.style("gateway log tail:", dim=True) + "\n" + result.detail
    return message
