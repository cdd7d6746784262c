"""Pause command for clawbox CLI."""

from __future__ import annotations

__all__ = ["pause"]

import click

from clawbox.instances.lifecycle import pause_instance, require_instance_by_name

from ..context import get_command_context
from ..styling import style_success


@click.command()
@click.argument("name")
def pause(name: str) -> None:
    """Pause a running instance (filesystem is preserved)."""
    ctx = get_command_context()
    instance, _ = require_instance_by_name(ctx.runtime, name, ctx.preferences)

    if not instance.is_running:
        click.echo(f"Instance '{name}' is already paused.")
        return

    pause_instance(ctx.runtime, instance.internal_name)
    click.echo(style_success(f"Paused '{name}'."))
    click.echo(f"Filesystem is preserved. Resume anytime with `clawbox start {name}`.")
