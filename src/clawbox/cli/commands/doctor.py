"""Doctor command for clawbox CLI."""

from __future__ import annotations

__all__ = ["doctor"]

import click

from clawbox.config import load_config
from clawbox.exceptions import ClawboxError
from clawbox.runtime.preflight import run_preflight

from ..styling import style_dim, style_error, style_label, style_success


@click.command()
def doctor() -> None:
    """Check host prerequisites."""
    report = run_preflight(load_config())

    click.echo(style_label("Host checks"))
    for check in report.checks:
        line = f"{check.key}: {check.message}"
        click.echo("  " + (style_success(line) if check.ok else style_error(line)))
        if check.ok:
            continue
        if check.fix:
            click.echo(f"      fix: {check.fix}")
        if check.suggested_commands:
            click.echo("      please run:")
            for command in check.suggested_commands:
                click.echo(style_dim(f"        {command}"))

    click.echo()
    if not report.ok:
        raise ClawboxError("Action required: fix the failed checks above and re-run `clawbox doctor`.")
    click.echo(style_success("All checks passed."))
