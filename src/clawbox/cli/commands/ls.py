"""List command for clawbox CLI."""

from __future__ import annotations

__all__ = ["ls"]

import click

from clawbox.instances.reconciler import list_managed_instances
from clawbox.utils.parsing import format_gb

from ..context import get_command_context
from ..styling import render_table, style_dim

_HEADERS = ("NAME", "STATUS", "HOST SLEEP", "IP", "RAM", "MOUNT")


@click.command()
def ls() -> None:
    """List all clawbox instances."""
    ctx = get_command_context()
    instances = list_managed_instances(ctx.runtime, ctx.preferences)
    if not instances:
        click.echo(style_dim("No clawbox instances found."))
        return

    rows = [
        (
            instance.name,
            instance.status,
            "keep-awake" if instance.keep_awake else "normal",
            instance.ip or "-",
            format_gb(instance.ram_gb),
            instance.mount_path or "-",
        )
        for instance in instances
    ]
    click.echo(render_table(_HEADERS, rows))
