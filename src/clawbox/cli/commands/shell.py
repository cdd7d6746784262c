"""Shell command for clawbox CLI."""

from __future__ import annotations

__all__ = ["shell"]

import shlex
import sys

import click

from clawbox.constants import APP_NAME, PROBE_TIMEOUT_SECONDS
from clawbox.exceptions import ClawboxError
from clawbox.gateway import format_gateway_result
from clawbox.instances.lifecycle import require_instance_by_name
from clawbox.runtime.container import ContainerRuntime
from clawbox.runtime.executor import run_command

from ..context import admit_and_start, confirm_start_if_paused, ensure_gateway_for, get_command_context
from ..styling import style_dim, style_success


def _pick_login_shell(runtime: ContainerRuntime, internal_name: str) -> str:
    result = runtime.exec_shell(
        internal_name,
        "[ -x /bin/bash ]",
        shell="/bin/sh",
        timeout_seconds=PROBE_TIMEOUT_SECONDS,
    )
    return "/bin/bash" if result.ok else "/bin/sh"


def _open_in_new_terminal(name: str) -> None:
    """Re-run this command in a new Terminal.app window (macOS)."""
    if sys.platform != "darwin":
        raise ClawboxError("--new-terminal is only supported on macOS.", kind="validation")

    command = shlex.join([APP_NAME, "shell", name, "--yes"])
    escaped = command.replace("\\", "\\\\").replace('"', '\\"')
    run_command(
        "osascript",
        [
            "-e",
            f'tell application "Terminal" to do script "{escaped}"',
            "-e",
            'tell application "Terminal" to activate',
        ],
        timeout_seconds=PROBE_TIMEOUT_SECONDS,
    )


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Auto-start the instance if it is paused")
@click.option("--new-terminal", "-n", is_flag=True, help="Open the shell in a new Terminal window")
def shell(name: str, yes: bool, new_terminal: bool) -> None:
    """Open an interactive shell inside an instance."""
    if new_terminal:
        _open_in_new_terminal(name)
        click.echo(f"Opened a new terminal for '{name}'.")
        return

    ctx = get_command_context(ensure_power_daemon=True)
    instance, instances = require_instance_by_name(ctx.runtime, name, ctx.preferences)

    if not instance.is_running:
        if not confirm_start_if_paused(instance, yes):
            click.echo("Cancelled.")
            return
        admit_and_start(ctx, instance, instances)
        click.echo(style_success(f"Started '{name}'."))

    gateway = ensure_gateway_for(ctx, instance.internal_name)
    if gateway.status == "error":
        click.echo(format_gateway_result(gateway), err=True)

    click.echo(style_dim(f"Tip: run `{APP_NAME} ui {name}` in another terminal for the web UI."))

    login_shell = _pick_login_shell(ctx.runtime, instance.internal_name)
    exit_code = ctx.runtime.exec_interactive(instance.internal_name, [login_shell, "-l"])
    sys.exit(exit_code)
