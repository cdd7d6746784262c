"""Power package: singleton keep-awake daemon and its PID file claim."""

from .daemon import PowerDaemon, ensure_power_daemon_running, run_power_daemon, should_keep_host_awake
from .pidfile import claim_pid_file, has_live_daemon, read_pid, release_if_owned

__all__ = [
    "PowerDaemon",
    "claim_pid_file",
    "ensure_power_daemon_running",
    "has_live_daemon",
    "read_pid",
    "release_if_owned",
    "run_power_daemon",
    "should_keep_host_awake",
]
