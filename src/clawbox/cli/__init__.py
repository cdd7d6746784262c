"""Command-line interface for clawbox.

Provides commands for creating, listing, starting, pausing, and deleting
instances, attaching shells, and reaching the in-instance Control UI.
"""

from .main import cli, main

__all__ = ["cli", "main"]
