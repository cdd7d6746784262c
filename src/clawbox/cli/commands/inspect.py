"""Inspect command for clawbox CLI."""

from __future__ import annotations

__all__ = ["format_uptime", "inspect"]

from datetime import datetime, timezone

import click

from clawbox.instances.lifecycle import require_instance_by_name
from clawbox.utils.parsing import format_gb

from ..context import get_command_context


def format_uptime(started_at: datetime | None, running: bool, now: datetime | None = None) -> str:
    """Render uptime as "2d 3h 4m", "3h 4m" or "4m" ("-" if not running)."""
    if started_at is None or not running:
        return "-"

    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - started_at).total_seconds()))
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else "-"


@click.command()
@click.argument("name")
def inspect(name: str) -> None:
    """Show detailed info about an instance."""
    ctx = get_command_context()
    instance, _ = require_instance_by_name(ctx.runtime, name, ctx.preferences)

    click.echo(f"name: {instance.name}")
    click.echo(f"internal name: {instance.internal_name}")
    click.echo(f"status: {instance.status}")
    click.echo(f"host sleep: {'keep-awake' if instance.keep_awake else 'normal'}")
    click.echo(f"ip: {instance.ip or '-'}")
    click.echo(f"ram: {format_gb(instance.ram_gb)}")
    click.echo(f"mount: {instance.mount_path or '-'}")
    click.echo(f"created: {_iso(instance.created_at)}")
    click.echo(f"started: {_iso(instance.started_at)}")
    click.echo(f"uptime: {format_uptime(instance.started_at, instance.is_running)}")
