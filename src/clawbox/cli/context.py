"""Shared plumbing for command handlers.

Every command that talks to the runtime starts from get_command_context(),
which loads config, resolves the runtime binary, starts the runtime
service if needed, and (for commands touching running instances) makes
sure the power daemon is alive.
"""

from __future__ import annotations

__all__ = [
    "CommandContext",
    "admit_and_start",
    "confirm_start_if_paused",
    "ensure_gateway_for",
    "get_command_context",
    "is_interactive",
]

import sys
from typing import NamedTuple

import click

from clawbox.config import ClawboxConfig, load_config
from clawbox.constants import DEFAULT_RAM_GB
from clawbox.exceptions import ClawboxError
from clawbox.gateway import ensure_gateway
from clawbox.instances.lifecycle import start_instance, wait_for_instance_ip
from clawbox.instances.preferences import PreferenceStore
from clawbox.models import GatewayEnsureResult, ManagedInstance
from clawbox.power import ensure_power_daemon_running
from clawbox.ram_policy import host_total_ram_gb, require_ram_admission, sum_allocated_ram_gb
from clawbox.runtime.binary import open_runtime
from clawbox.runtime.container import ContainerRuntime


class CommandContext(NamedTuple):
    """Everything a command handler needs."""

    config: ClawboxConfig
    runtime: ContainerRuntime
    preferences: PreferenceStore


def is_interactive() -> bool:
    """True when both stdin and stdout are terminals (prompts allowed)."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def get_command_context(*, ensure_power_daemon: bool = False) -> CommandContext:
    """Load config and open the runtime.

    Raises:
        ClawboxError: (dependency) If the runtime is missing or not running.
    """
    config = load_config()
    runtime = open_runtime(config)
    if ensure_power_daemon:
        ensure_power_daemon_running()
    return CommandContext(config=config, runtime=runtime, preferences=PreferenceStore())


def confirm_start_if_paused(instance: ManagedInstance, yes: bool) -> bool:
    """Decide whether a paused instance should be started.

    Returns:
        True to start, False if the operator declined.

    Raises:
        ClawboxError: (validation) Paused, no --yes, and no terminal to ask.
    """
    if yes:
        return True
    if not is_interactive():
        raise ClawboxError(
            f"Instance '{instance.name}' is paused. Re-run with --yes to auto-start in non-interactive mode.",
            kind="validation",
        )
    return click.confirm(f"Instance '{instance.name}' is paused. Start it now?", default=True)


def admit_and_start(
    ctx: CommandContext,
    instance: ManagedInstance,
    instances: list[ManagedInstance],
) -> str | None:
    """Check RAM admission against running instances, then start.

    The instance's own allocation is excluded from the running total.

    Returns:
        The instance IP once attached (None if it never appeared).

    Raises:
        ClawboxError: (validation) If the RAM policy denies the start.
    """
    require_ram_admission(
        host_total_ram_gb(),
        sum_allocated_ram_gb(instances, "running", exclude_internal_name=instance.internal_name),
        instance.ram_gb if instance.ram_gb is not None else DEFAULT_RAM_GB,
    )
    start_instance(ctx.runtime, instance.internal_name)
    return wait_for_instance_ip(ctx.runtime, instance.internal_name)


def ensure_gateway_for(ctx: CommandContext, internal_name: str) -> GatewayEnsureResult:
    """Run the gateway orchestrator with the configured settings."""
    return ensure_gateway(ctx.runtime, internal_name, ctx.config.gateway)
