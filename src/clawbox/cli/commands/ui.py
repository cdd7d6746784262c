"""UI command for clawbox CLI.

Exposes the in-instance gateway on 127.0.0.1 through a per-connection
exec relay, then waits for Ctrl+C.
"""

from __future__ import annotations

__all__ = ["ui"]

import asyncio
import signal

import click
import httpx

from clawbox.bridge import start_local_proxy
from clawbox.constants import PROBE_TIMEOUT_SECONDS
from clawbox.exceptions import ClawboxError
from clawbox.instances.lifecycle import require_instance_by_name
from clawbox.runtime.container import ContainerRuntime

from ..context import admit_and_start, confirm_start_if_paused, ensure_gateway_for, get_command_context
from ..styling import style_dim, style_label, style_success, style_warning


async def _probe(url: str) -> str | None:
    """GET the relayed URL once; returns a warning on failure."""
    try:
        async with httpx.AsyncClient(timeout=PROBE_TIMEOUT_SECONDS) as client:
            await client.get(url)
    except httpx.HTTPError as e:
        return f"Gateway did not answer through the proxy yet ({type(e).__name__})."
    return None


async def _serve(
    runtime: ContainerRuntime,
    internal_name: str,
    target_port: int,
    local_port: int,
    open_browser: bool,
) -> None:
    bridge = await start_local_proxy(runtime, internal_name, target_port, local_port)
    try:
        warning = await _probe(bridge.url)
        if warning:
            click.echo(style_warning(warning))
        if open_browser:
            click.launch(bridge.url)

        click.echo(f"{style_label('UI')} {bridge.url}")
        click.echo(style_dim(f"Proxy mode: {bridge.label} relay into '{internal_name}' port {target_port}."))
        click.echo("Press Ctrl+C to stop.")

        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, shutdown_event.set)
        await shutdown_event.wait()
    finally:
        await bridge.stop()


@click.command()
@click.argument("name")
@click.option("--port", type=click.IntRange(1, 65535), default=None, help="Local port (default from config)")
@click.option("--yes", "-y", is_flag=True, help="Auto-start the instance if it is paused")
@click.option("--open/--no-open", "open_browser", default=True, help="Open the browser")
def ui(name: str, port: int | None, yes: bool, open_browser: bool) -> None:
    """Open the gateway web UI through a local proxy."""
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
        raise ClawboxError(gateway.message, kind="runtime", detail=gateway.detail)

    local_port = port or ctx.config.ui_port
    try:
        asyncio.run(_serve(ctx.runtime, instance.internal_name, ctx.config.gateway.port, local_port, open_browser))
    except OSError as e:
        raise ClawboxError(
            f"Could not listen on 127.0.0.1:{local_port}: {e}",
            kind="runtime",
            hint="Pick another port with --port.",
        ) from e
    click.echo("Proxy stopped.")
