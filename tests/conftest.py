"""Shared fixtures for clawbox tests.

FakeRuntime stands in for the container executable: run() answers from a
table keyed by argument vector, exec_shell() answers from a handler that
sees the script text. Every call is recorded.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from clawbox.exceptions import CommandError
from clawbox.instances.preferences import PreferenceStore
from clawbox.runtime.container import ContainerRuntime
from clawbox.runtime.executor import CommandResult, format_command

OK = CommandResult(stdout="", stderr="", exit_code=0)


class FakeRuntime(ContainerRuntime):
    """Recording stub for the runtime client."""

    def __init__(self) -> None:
        super().__init__("/usr/local/bin/container")
        self.responses: dict[tuple[str, ...], CommandResult | Exception] = {}
        self.calls: list[tuple[str, ...]] = []
        self.scripts: list[str] = []
        self.shell_handler: Callable[[str], CommandResult] = lambda script: OK

    def respond(self, args: Sequence[str], stdout: str = "", *, exit_code: int = 0, stderr: str = "") -> None:
        self.responses[tuple(args)] = CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    def respond_json(self, args: Sequence[str], payload: Any) -> None:
        self.respond(args, json.dumps(payload))

    def run(
        self,
        args: Sequence[str],
        *,
        timeout_seconds: float = 60.0,
        allow_non_zero_exit: bool = False,
        input_text: str | None = None,
    ) -> CommandResult:
        key = tuple(args)
        self.calls.append(key)
        response = self.responses.get(key, OK)
        if isinstance(response, Exception):
            raise response
        if not response.ok and not allow_non_zero_exit:
            raise CommandError(format_command(self.binary, args), response.exit_code, response.stdout, response.stderr)
        return response

    def exec_shell(
        self,
        internal_name: str,
        script: str,
        *script_args: str,
        shell: str = "/bin/bash",
        timeout_seconds: float = 60.0,
        allow_non_zero_exit: bool = True,
    ) -> CommandResult:
        self.scripts.append(script)
        return self.shell_handler(script)

    def supports_labels(self) -> bool:
        return True


def list_entry(
    internal_name: str,
    status: str = "stopped",
    *,
    memory_gb: float | None = None,
    ip: str | None = None,
    labels: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build one `ls --all --format json` entry."""
    configuration: dict[str, Any] = {"id": internal_name, "labels": labels or {}}
    if memory_gb is not None:
        configuration["resources"] = {"memoryInBytes": int(memory_gb * 1024**3)}
    entry: dict[str, Any] = {"status": status, "configuration": configuration}
    if ip is not None:
        entry["networks"] = [{"ipv4Address": f"{ip}/24"}]
    return entry


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    """Create a fresh recording runtime for each test."""
    runtime = FakeRuntime()
    runtime.respond(["ls", "--all", "--format", "json"], "[]")
    return runtime


@pytest.fixture
def preferences(tmp_path: Path) -> PreferenceStore:
    """Preference store backed by a temp file."""
    return PreferenceStore(tmp_path / "instance-preferences.json")


@pytest.fixture
def make_entry() -> Callable[..., dict[str, Any]]:
    """Expose list_entry() to tests."""
    return list_entry
