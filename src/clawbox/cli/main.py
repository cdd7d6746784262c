"""Main CLI entry point for clawbox.

Defines the CLI group and registers all subcommands.

Commands:
    create   - Create a new instance
    ls       - List instances
    inspect  - Show detailed info about an instance
    start    - Start a paused instance (and ensure its gateway)
    pause    - Pause a running instance
    delete   - Permanently delete an instance
    power    - Set the host sleep policy for an instance
    shell    - Open an interactive shell inside an instance
    ui       - Proxy the Control UI to localhost
    doctor   - Run host prerequisite checks

Subcommand help:
    clawbox COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys

import click

from clawbox import __version__
from clawbox.exceptions import render_error, to_clawbox_error

from .commands.create import create
from .commands.delete import delete
from .commands.doctor import doctor
from .commands.inspect import inspect
from .commands.ls import ls
from .commands.pause import pause
from .commands.power import power
from .commands.powerd import powerd
from .commands.shell import shell
from .commands.start import start
from .commands.ui import ui


class ClawboxGroup(click.Group):
    """Group that renders any command failure as a typed error.

    Exceptions other than click's own are normalized with
    to_clawbox_error(), printed to stderr, and mapped to the error's
    exit code.
    """

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  clawbox doctor                   Check host prerequisites
  clawbox create dev --yes         Create an instance (4 GB RAM)
  clawbox start dev                Start it and bring up the gateway
  clawbox shell dev                Attach a shell
  clawbox ui dev                   Open the Control UI on localhost
"""
        )

    def invoke(self, ctx: click.Context) -> object:
        try:
            return super().invoke(ctx)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except Exception as e:
            error = to_clawbox_error(e)
            click.echo(click.style(render_error(error), fg="red"), err=True)
            ctx.exit(error.exit_code)


@click.group(
    cls=ClawboxGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """clawbox: opinionated instance manager for Apple's container runtime."""
    if version:
        click.echo(f"clawbox {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(create)
cli.add_command(delete)
cli.add_command(doctor)
cli.add_command(inspect)
cli.add_command(ls)
cli.add_command(pause)
cli.add_command(power)
cli.add_command(powerd)
cli.add_command(shell)
cli.add_command(start)
cli.add_command(ui)


def main() -> None:
    """CLI entry point."""
    cli()
