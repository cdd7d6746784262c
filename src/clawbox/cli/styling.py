"""Terminal styling for command output.

Labels are cyan bold, success lines get a green check, failures a red
cross, hints and empty states are dimmed. Tables are plain padded columns
so `clawbox ls` stays greppable.
"""

from __future__ import annotations

__all__ = [
    "render_table",
    "style_dim",
    "style_error",
    "style_label",
    "style_success",
    "style_warning",
]

from collections.abc import Sequence

import click


def style_label(label: str) -> str:
    """Cyan bold label with a trailing colon.

    Example:
        >>> click.echo(style_label("Create summary"))
        Create summary:
    """
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    """Green line prefixed with a check mark.

    Example:
        >>> click.echo(style_success("Started 'dev'."))
        ✓ Started 'dev'.
    """
    return click.style(f"✓ {message}", fg="green")


def style_error(message: str) -> str:
    """Red line prefixed with a cross (failed doctor checks)."""
    return click.style(f"✗ {message}", fg="red")


def style_dim(message: str) -> str:
    """Dimmed text for hints and empty states."""
    return click.style(message, dim=True)


def style_warning(message: str) -> str:
    """Yellow bold `Warning:` line."""
    return click.style(f"Warning: {message}", fg="yellow", bold=True)


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render rows as left-aligned columns with a dashed divider.

    Returns:
        The table, or "" when there are no rows.
    """
    if not rows:
        return ""

    widths = [max(len(header), *(len(row[idx]) for row in rows)) for idx, header in enumerate(headers)]
    header_line = "  ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers))
    divider = "  ".join("-" * width for width in widths)
    body = ["  ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row)).rstrip() for row in rows]
    return "\n".join([header_line.rstrip(), divider, *body])
