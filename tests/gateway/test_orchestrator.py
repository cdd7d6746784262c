"""Unit tests for the gateway orchestrator.

A recording FakeRuntime answers each in-instance script; tests assert on
which scripts ran. Sleep and clock are injected so waits are instant.
"""

from __future__ import annotations

from collections.abc import Callable

import click
import pytest

from clawbox.config import GatewaySettings
from clawbox.gateway import GatewayOrchestrator, format_gateway_result, scripts
from clawbox.models import GatewayEnsureResult
from clawbox.runtime.executor import CommandResult

PORT = 18789
OK = CommandResult("", "", 0)
FAIL = CommandResult("", "", 1)


class FakeClock:
    """Monotonic clock advanced by the injected sleep."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def _handler(
    *,
    binary: bool = True,
    healthy: Callable[[], bool] = lambda: False,
    running: bool = False,
    start_ok: bool = True,
    log: str = "",
) -> Callable[[str], CommandResult]:
    def handle(script: str) -> CommandResult:
        if script == scripts.binary_exists_script():
            return OK if binary else FAIL
        if script == scripts.health_probe_script(PORT):
            return OK if healthy() else FAIL
        if script == scripts.process_running_script():
            return OK if running else FAIL
        if script.startswith("nohup ") or script.startswith('token="'):
            return OK if start_ok else FAIL
        if script == scripts.log_tail_script():
            return CommandResult(log, "", 0)
        return OK

    return handle


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def orchestrator(fake_runtime, clock: FakeClock) -> GatewayOrchestrator:
    """Orchestrator wired to the fake runtime and clock."""
    return GatewayOrchestrator(fake_runtime, GatewaySettings(port=PORT), sleep=clock.sleep, clock=clock)


def _start_scripts(recorded: list[str]) -> list[str]:
    starts = (scripts.start_gateway_script(PORT), scripts.start_gateway_script(PORT, with_token=True))
    return [script for script in recorded if script in starts]


class TestEnsure:
    """Tests for GatewayOrchestrator.ensure()."""

    def test_healthy_gateway_is_not_restarted(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """Given a healthy gateway, repeated ensure calls never start or stop it."""
        # Arrange
        fake_runtime.shell_handler = _handler(healthy=lambda: True)

        # Act
        first = orchestrator.ensure("clawbox-dev")
        second = orchestrator.ensure("clawbox-dev")

        # Assert
        assert first.status == second.status == "ready"
        assert first.message == "OpenClaw gateway already healthy."
        assert _start_scripts(fake_runtime.scripts) == []
        assert scripts.stop_gateway_script() not in fake_runtime.scripts

    def test_missing_binary_arms_watcher(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """Given no gateway binary, the watcher is armed and status is pending."""
        # Arrange
        fake_runtime.shell_handler = _handler(binary=False)

        # Act
        result = orchestrator.ensure("clawbox-dev")

        # Assert
        assert result.status == "pending"
        assert scripts.watcher_script(PORT) in fake_runtime.scripts
        assert _start_scripts(fake_runtime.scripts) == []

    def test_starts_and_waits_for_health(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """Given a stopped gateway, starts it and reports ready once healthy."""
        # Arrange
        probes = iter([False, False, True])
        fake_runtime.shell_handler = _handler(healthy=lambda: next(probes, True))

        # Act
        result = orchestrator.ensure("clawbox-dev")

        # Assert
        assert result.status == "ready"
        assert result.message == f"OpenClaw gateway is ready on ws://127.0.0.1:{PORT}."
        assert _start_scripts(fake_runtime.scripts) == [scripts.start_gateway_script(PORT)]

    def test_stale_process_is_stopped_before_start(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """A running but unhealthy process is killed first."""
        # Arrange
        probes = iter([False, True])
        fake_runtime.shell_handler = _handler(healthy=lambda: next(probes, True), running=True)

        # Act
        orchestrator.ensure("clawbox-dev")

        # Assert
        stop_index = fake_runtime.scripts.index(scripts.stop_gateway_script())
        start_index = fake_runtime.scripts.index(scripts.start_gateway_script(PORT))
        assert stop_index < start_index

    def test_token_recovery(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """A token-missing log provisions a token and restarts with it."""
        # Arrange
        state = {"with_token": False}

        def healthy() -> bool:
            return state["with_token"]

        base = _handler(healthy=healthy, log="Error: No token is configured for gateway")

        def handle(script: str) -> CommandResult:
            if script == scripts.start_gateway_script(PORT, with_token=True):
                state["with_token"] = True
            return base(script)

        fake_runtime.shell_handler = handle

        # Act
        result = orchestrator.ensure("clawbox-dev")

        # Assert
        assert result.status == "ready"
        assert scripts.ensure_token_script() in fake_runtime.scripts
        assert _start_scripts(fake_runtime.scripts) == [
            scripts.start_gateway_script(PORT),
            scripts.start_gateway_script(PORT, with_token=True),
        ]

    def test_unhealthy_returns_error_with_log_tail(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """A gateway that never answers yields error with the log tail as detail."""
        # Arrange
        fake_runtime.shell_handler = _handler(log="listen EADDRINUSE")

        # Act
        result = orchestrator.ensure("clawbox-dev")

        # Assert
        assert result.status == "error"
        assert result.message == "OpenClaw gateway did not become healthy in time."
        assert result.detail == "listen EADDRINUSE"
        assert scripts.ensure_token_script() not in fake_runtime.scripts

    def test_launch_failure(self, fake_runtime, orchestrator: GatewayOrchestrator) -> None:
        """A start script that fails is reported immediately."""
        # Arrange
        fake_runtime.shell_handler = _handler(start_ok=False, log="boom")

        # Act
        result = orchestrator.ensure("clawbox-dev")

        # Assert
        assert result.status == "error"
        assert result.message == "Failed to launch OpenClaw gateway process."

    def test_disabled_is_skipped(self, fake_runtime, clock: FakeClock) -> None:
        """Disabled gateway management runs no scripts."""
        # Arrange
        orchestrator = GatewayOrchestrator(fake_runtime, GatewaySettings(enabled=False), sleep=clock.sleep, clock=clock)

        # Act
        result = orchestrator.ensure("clawbox-dev")

        # Assert
        assert result.status == "skipped"
        assert fake_runtime.scripts == []


class TestFormatGatewayResult:
    """Tests for format_gateway_result()."""

    def test_error_includes_log_tail(self) -> None:
        """Error rendering appends the log tail."""
        # Arrange
        result = GatewayEnsureResult(status="error", message="failed", detail="line 1")

        # Act
        rendered = click.unstyle(format_gateway_result(result))

        # Assert
        assert rendered == "failed\ngateway log tail:\nline 1"

    def test_ready_is_message_only(self) -> None:
        """Ready rendering is just the message."""
        result = GatewayEnsureResult(status="ready", message="ok")

        assert click.unstyle(format_gateway_result(result)) == "ok"
