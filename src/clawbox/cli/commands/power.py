"""Power command for clawbox CLI.

Sets whether the host is kept awake while an instance runs. The flag is
stored locally and picked up by the power daemon on its next poll.
"""

from __future__ import annotations

__all__ = ["power"]

import click

from clawbox.exceptions import ClawboxError
from clawbox.instances.lifecycle import require_instance_by_name, set_keep_awake_policy

from ..context import get_command_context, is_interactive


def _resolve_policy(keep_awake: bool, allow_sleep: bool, current: bool, name: str) -> bool:
    if keep_awake:
        return True
    if allow_sleep:
        return False
    if not is_interactive():
        raise ClawboxError(
            f"Specify --keep-awake or --allow-sleep in non-interactive mode for instance '{name}'.",
            kind="validation",
        )
    choice = click.prompt(
        f"Host sleep policy for '{name}'",
        type=click.Choice(["keep-awake", "allow-sleep"]),
        default="keep-awake" if current else "allow-sleep",
    )
    return choice == "keep-awake"


@click.command()
@click.argument("name")
@click.option("--keep-awake", is_flag=True, help="Prevent host idle sleep while this instance runs")
@click.option("--allow-sleep", is_flag=True, help="Allow normal host sleep while this instance runs")
def power(name: str, keep_awake: bool, allow_sleep: bool) -> None:
    """Set host sleep policy for an instance."""
    if keep_awake and allow_sleep:
        raise ClawboxError("Choose either --keep-awake or --allow-sleep, not both.", kind="validation")

    ctx = get_command_context(ensure_power_daemon=True)
    instance, _ = require_instance_by_name(ctx.runtime, name, ctx.preferences)

    target = _resolve_policy(keep_awake, allow_sleep, instance.keep_awake, name)
    set_keep_awake_policy(instance.internal_name, target, ctx.preferences)

    if target:
        click.echo(f"Updated '{name}': host sleep policy is now keep-awake (uses more battery).")
    else:
        click.echo(f"Updated '{name}': host sleep policy is now normal (host sleep allowed).")
