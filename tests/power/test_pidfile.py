"""Unit tests for the power daemon PID file claim."""

from __future__ import annotations

import os
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from clawbox.power.pidfile import (
    STALE_GRACE_SECONDS,
    claim_pid_file,
    has_live_daemon,
    read_pid,
    release_if_owned,
)


@pytest.fixture
def pid_path(tmp_path: Path) -> Path:
    return tmp_path / "run" / "powerd.pid"


@pytest.fixture
def dead_pid() -> int:
    """Pid of a process that has already exited and been reaped."""
    process = subprocess.Popen([sys.executable, "-c", "pass"])
    process.wait()
    return process.pid


class TestClaimPidFile:
    """Tests for claim_pid_file()."""

    def test_claims_when_absent(self, pid_path: Path) -> None:
        """Given no file, the claim succeeds and records our pid."""
        # Act
        claimed = claim_pid_file(pid_path)

        # Assert
        assert claimed is True
        assert read_pid(pid_path) == os.getpid()

    def test_live_owner_blocks_claim(self, pid_path: Path) -> None:
        """Given a file naming a live process, a second claimant loses."""
        # Arrange
        claim_pid_file(pid_path)

        # Act
        claimed = claim_pid_file(pid_path, pid=os.getpid() + 100000)

        # Assert
        assert claimed is False
        assert read_pid(pid_path) == os.getpid()

    def test_stale_file_is_replaced(self, pid_path: Path, dead_pid: int) -> None:
        """Given a file naming a dead process, the claim takes over."""
        # Arrange
        pid_path.parent.mkdir(parents=True)
        pid_path.write_text(f"{dead_pid}\n")

        # Act
        claimed = claim_pid_file(pid_path)

        # Assert
        assert claimed is True
        assert read_pid(pid_path) == os.getpid()

    def test_old_garbage_file_is_replaced(self, pid_path: Path) -> None:
        """Given an unparsable file older than the grace period, the claim takes over."""
        # Arrange
        pid_path.parent.mkdir(parents=True)
        pid_path.write_text("not-a-pid")
        old = time.time() - STALE_GRACE_SECONDS - 10
        os.utime(pid_path, (old, old))

        # Act / Assert
        assert claim_pid_file(pid_path) is True

    def test_fresh_empty_file_is_not_taken_over(self, pid_path: Path) -> None:
        """Given a just-created empty file (its writer not done yet), the claim loses."""
        # Arrange
        pid_path.parent.mkdir(parents=True)
        os.close(os.open(pid_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600))

        # Act
        claimed = claim_pid_file(pid_path, pid=os.getpid() + 100000)

        # Assert
        assert claimed is False
        assert pid_path.read_text() == ""

    def test_concurrent_claimants_have_one_winner(self, pid_path: Path) -> None:
        """Given many threads claiming at once for live pids, exactly one wins."""
        # Arrange
        children = [subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"]) for _ in range(8)]
        barrier = threading.Barrier(len(children))
        results: dict[int, bool] = {}

        def claim(child_pid: int) -> None:
            barrier.wait()
            results[child_pid] = claim_pid_file(pid_path, pid=child_pid)

        threads = [threading.Thread(target=claim, args=(child.pid,)) for child in children]

        # Act
        try:
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=10)
        finally:
            for child in children:
                child.kill()
                child.wait()

        # Assert
        winners = [child_pid for child_pid, won in results.items() if won]
        assert len(results) == len(children)
        assert len(winners) == 1
        assert read_pid(pid_path) == winners[0]

    def test_reclaim_by_same_pid(self, pid_path: Path) -> None:
        """The current owner claiming again succeeds."""
        claim_pid_file(pid_path)

        assert claim_pid_file(pid_path) is True


class TestReleaseIfOwned:
    """Tests for release_if_owned()."""

    def test_removes_own_file(self, pid_path: Path) -> None:
        """The owner removes its PID file."""
        # Arrange
        claim_pid_file(pid_path)

        # Act / Assert
        assert release_if_owned(pid_path) is True
        assert not pid_path.exists()

    def test_keeps_foreign_file(self, pid_path: Path) -> None:
        """A file naming another process is left alone."""
        # Arrange
        claim_pid_file(pid_path, pid=os.getpid() + 1)

        # Act / Assert
        assert release_if_owned(pid_path) is False
        assert pid_path.exists()


class TestHasLiveDaemon:
    """Tests for has_live_daemon()."""

    def test_absent_file(self, pid_path: Path) -> None:
        """No file means no daemon."""
        assert has_live_daemon(pid_path) is False

    def test_dead_pid(self, pid_path: Path, dead_pid: int) -> None:
        """A file naming a dead process means no daemon."""
        pid_path.parent.mkdir(parents=True)
        pid_path.write_text(str(dead_pid))

        assert has_live_daemon(pid_path) is False

    def test_pid_one_is_rejected(self, pid_path: Path) -> None:
        """pid 1 and below are never treated as a daemon."""
        pid_path.parent.mkdir(parents=True)
        pid_path.write_text("1")

        assert read_pid(pid_path) is None
