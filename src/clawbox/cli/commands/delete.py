"""Delete command for clawbox CLI."""

from __future__ import annotations

__all__ = ["delete"]

import click

from clawbox.exceptions import ClawboxError
from clawbox.instances.lifecycle import delete_instance, pause_instance, require_instance_by_name

from ..context import get_command_context, is_interactive
from ..styling import style_success


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip interactive confirmation")
@click.option("--confirm-name", default=None, help="Name confirmation for non-interactive delete")
def delete(name: str, yes: bool, confirm_name: str | None) -> None:
    """Permanently delete an instance and its filesystem.

    Non-interactive deletes need both --yes and --confirm-name NAME.
    """
    ctx = get_command_context()
    instance, _ = require_instance_by_name(ctx.runtime, name, ctx.preferences)

    if not yes:
        if not is_interactive():
            raise ClawboxError(
                "Delete confirmation requires a terminal. Re-run with --yes --confirm-name <name>.",
                kind="validation",
            )
        if not click.confirm(f"Delete '{name}' permanently?", default=False):
            click.echo("Cancelled.")
            return
        if click.prompt(f"Type '{name}' to confirm", default="", show_default=False) != name:
            raise ClawboxError("Confirmation name mismatch. Delete aborted.", kind="validation")
    elif confirm_name != name:
        raise ClawboxError(
            "Non-interactive delete requires --confirm-name to exactly match the instance name.",
            kind="validation",
        )

    if instance.is_running:
        pause_instance(ctx.runtime, instance.internal_name)
    delete_instance(ctx.runtime, instance.internal_name, ctx.preferences)
    click.echo(style_success(f"Deleted '{name}'."))
