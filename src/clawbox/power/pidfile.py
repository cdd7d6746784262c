"""PID file claim for the singleton power daemon.

Claimants serialize on an flock over `<pid file>.lock`, and the PID file is
published with os.link() from a temp file that already holds the pid, so
the file never exists empty. Exactly one of several concurrent claimants
wins.

A file naming a dead pid is stale: it is removed and the claim retried.
An unparsable file counts as stale only once it is older than
STALE_GRACE_SECONDS, since a writer not holding the lock may still be
filling it.
"""

from __future__ import annotations

__all__ = [
    "STALE_GRACE_SECONDS",
    "claim_pid_file",
    "has_live_daemon",
    "is_process_alive",
    "read_pid",
    "release_if_owned",
]

import contextlib
import errno
import fcntl
import logging
import os
import tempfile
import time
from collections.abc import Iterator
from pathlib import Path

from clawbox.models import SystemEvent
from clawbox.utils.logging import get_logger, log_event

_logger = get_logger("powerd")

# Age after which an unreadable PID file may be replaced (seconds)
STALE_GRACE_SECONDS = 2.0


def is_process_alive(pid: int) -> bool:
    """Check whether a process exists (signal 0 = check existence)."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user
        return True
    except OSError as e:
        if e.errno == errno.ESRCH:
            return False
        raise
    return True


def read_pid(path: Path) -> int | None:
    """Read the pid recorded in a PID file.

    Returns:
        The pid, or None if the file is absent or does not hold a pid > 1.
    """
    try:
        pid = int(path.read_text(encoding="utf-8").strip())
    except (FileNotFoundError, ValueError):
        return None
    return pid if pid > 1 else None


def has_live_daemon(path: Path) -> bool:
    """True if the PID file names a running process."""
    pid = read_pid(path)
    return pid is not None and is_process_alive(pid)


@contextlib.contextmanager
def _claim_lock(path: Path) -> Iterator[None]:
    """Hold an exclusive flock on the sibling lock file."""
    with open(path.with_name(f"{path.name}.lock"), "w") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def _create_exclusive(path: Path, pid: int) -> bool:
    """Publish path with pid already written; False if path exists."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f"{pid}\n")
        try:
            os.link(tmp_name, path)
        except FileExistsError:
            return False
        return True
    finally:
        os.unlink(tmp_name)


def _modified_within(path: Path, seconds: float) -> bool:
    try:
        return time.time() - path.stat().st_mtime < seconds
    except FileNotFoundError:
        return False


def claim_pid_file(path: Path, pid: int | None = None) -> bool:
    """Atomically claim the PID file for this process.

    Args:
        path: PID file location (parent directory is created).
        pid: Pid to record (default: the current process).

    Returns:
        True if this process now owns the claim, False if a live daemon
        (or a concurrent claimant) holds it.
    """
    own_pid = pid if pid is not None else os.getpid()
    path.parent.mkdir(parents=True, exist_ok=True)

    with _claim_lock(path):
        if _create_exclusive(path, own_pid):
            return True

        existing = read_pid(path)
        if existing == own_pid:
            return True
        if existing is not None:
            if is_process_alive(existing):
                return False
        elif _modified_within(path, STALE_GRACE_SECONDS):
            return False

        path.unlink(missing_ok=True)
        log_event(
            logging.INFO,
            SystemEvent(
                event="stale_pid_removed",
                message=f"Removed stale PID file: {path}",
                pid=existing,
            ),
            _logger,
        )
        return _create_exclusive(path, own_pid)


def release_if_owned(path: Path, pid: int | None = None) -> bool:
    """Remove the PID file only if it still names this process.

    Returns:
        True if the file was removed.
    """
    own_pid = pid if pid is not None else os.getpid()
    if read_pid(path) != own_pid:
        return False
    path.unlink(missing_ok=True)
    return True
