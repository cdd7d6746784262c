"""Host file helpers.

Config and the preference store both live in the click app dir
(~/Library/Application Support/clawbox on macOS) and are rewritten whole,
so writes go through a same-directory temp file and os.replace().
Mount sources typed by the operator go through normalize/resolve here.
"""

from __future__ import annotations

__all__ = [
    "atomic_write_text",
    "get_app_dir",
    "normalize_input_path",
    "resolve_existing_directory",
]

import contextlib
import os
import tempfile
from pathlib import Path

import click

from clawbox.constants import APP_NAME


def get_app_dir() -> Path:
    """Directory holding config.json and instance-preferences.json."""
    return Path(click.get_app_dir(APP_NAME))


def atomic_write_text(path: Path, content: str) -> None:
    """Replace path with content (UTF-8, mode 0600) in one rename.

    A crash mid-write leaves the previous file intact; the temp file is
    removed on failure.

    Raises:
        OSError: If the parent cannot be created or the write fails.
    """
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def normalize_input_path(input_path: str) -> str:
    """Trim whitespace and expand a leading ~ in a user-supplied path."""
    trimmed = input_path.strip()
    if trimmed == "~" or trimmed.startswith("~/"):
        return os.path.expanduser(trimmed)
    return trimmed


def resolve_existing_directory(input_path: str) -> str:
    """Resolve a user-supplied path to an absolute existing directory.

    Raises:
        ValueError: If the path does not exist or is not a directory.
    """
    resolved = Path(normalize_input_path(input_path)).resolve()
    if not resolved.is_dir():
        raise ValueError(f"Mount path does not exist or is not a directory: {resolved}")
    return str(resolved)
