"""Hidden command that runs the power daemon loop (spawned detached)."""

from __future__ import annotations

__all__ = ["powerd"]

import sys

import click

from clawbox.constants import POWERD_COMMAND
from clawbox.power import run_power_daemon


@click.command(POWERD_COMMAND, hidden=True)
def powerd() -> None:
    """Internal command to run the power daemon."""
    try:
        run_power_daemon()
    except KeyboardInterrupt:
        sys.exit(0)
