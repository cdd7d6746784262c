"""Start command for clawbox CLI."""

from __future__ import annotations

__all__ = ["start"]

import click

from clawbox.gateway import format_gateway_result
from clawbox.instances.lifecycle import require_instance_by_name

from ..context import admit_and_start, ensure_gateway_for, get_command_context
from ..styling import style_success


@click.command()
@click.argument("name")
def start(name: str) -> None:
    """Start a paused instance and ensure its gateway.

    RAM is checked against running instances only: at least 8 GB of host
    RAM must remain free after the start.
    """
    ctx = get_command_context(ensure_power_daemon=True)
    instance, instances = require_instance_by_name(ctx.runtime, name, ctx.preferences)

    if instance.is_running:
        click.echo(f"Instance '{name}' is already running.")
        click.echo(format_gateway_result(ensure_gateway_for(ctx, instance.internal_name)))
        if instance.ip:
            click.echo(f"IP: {instance.ip}")
        return

    click.echo(f"Starting '{name}'...")
    ip = admit_and_start(ctx, instance, instances)
    click.echo(style_success(f"Started '{name}'."))
    click.echo(format_gateway_result(ensure_gateway_for(ctx, instance.internal_name)))
    click.echo(f"IP: {ip or 'pending'}")
