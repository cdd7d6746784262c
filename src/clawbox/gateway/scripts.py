"""Shell scripts run inside an instance to manage the gateway.

Every script runs under `/bin/bash -lc` via ContainerRuntime.exec_shell.
Values that vary per call (ports, paths, tokens) are quoted with
shlex.quote; nothing from the operator is interpolated unquoted.

Health is "something answers on the port": curl succeeds on any HTTP
response (no --fail), and without curl a bash /dev/tcp connect is enough.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_LOG_TAIL_LINES",
    "TOKEN_MISSING_PATTERN",
    "WATCHER_ITERATIONS",
    "WATCHER_SLEEP_SECONDS",
    "binary_exists_script",
    "ensure_log_dir_script",
    "ensure_token_script",
    "health_probe_script",
    "is_gateway_token_missing_log",
    "log_tail_script",
    "process_running_script",
    "start_gateway_script",
    "stop_gateway_script",
    "watcher_script",
]

import re
import shlex

from clawbox.constants import (
    GATEWAY_BINARY,
    GATEWAY_LOG_DIR,
    GATEWAY_LOG_PATH,
    GATEWAY_PROCESS_NAME,
    GATEWAY_TOKEN_ENV_VAR,
    GATEWAY_TOKEN_PATH,
    GATEWAY_WATCHER_LOG_PATH,
    GATEWAY_WATCHER_PID_PATH,
    LOOPBACK_HOST,
)

# Bootstrap watcher: 360 x 5s = 30 minutes, then it gives up silently
WATCHER_ITERATIONS = 360
WATCHER_SLEEP_SECONDS = 5

DEFAULT_LOG_TAIL_LINES = 80

# Logged by the gateway when auth mode is token but none was provided
TOKEN_MISSING_PATTERN = re.compile(r"no\s+token\s+is\s+configured", re.IGNORECASE)

# Older gateway builds log here instead of GATEWAY_LOG_PATH
_FALLBACK_LOG_GLOB = "/tmp/openclaw/openclaw-*.log"

_q = shlex.quote


def is_gateway_token_missing_log(log_text: str) -> bool:
    """True if a gateway log shows the token-not-configured failure."""
    return bool(TOKEN_MISSING_PATTERN.search(log_text))


def binary_exists_script(binary: str = GATEWAY_BINARY) -> str:
    return f"command -v {_q(binary)} >/dev/null 2>&1"


def ensure_log_dir_script() -> str:
    return f"mkdir -p {_q(GATEWAY_LOG_DIR)}"


def _probe_lines(port: int) -> str:
    url = f"http://{LOOPBACK_HOST}:{port}"
    return (
        "if command -v curl >/dev/null 2>&1; then\n"
        f"  curl -sS --max-time 2 -o /dev/null {_q(url)} >/dev/null 2>&1\n"
        "else\n"
        f"  (exec 3<>/dev/tcp/{LOOPBACK_HOST}/{int(port)}) >/dev/null 2>&1\n"
        "fi"
    )


def health_probe_script(port: int) -> str:
    """Exit 0 if anything answers on the gateway port."""
    return _probe_lines(port)


def _gateway_pids_command() -> str:
    """Print the PID of every process whose argv[0] basename is the gateway.

    `comm` is cut to 15 characters on Linux, so the full argv is matched.
    """
    return (
        f"ps -eo pid=,args= | awk -v name={_q(GATEWAY_PROCESS_NAME)} "
        "'{ cmd = $2; sub(/.*\\//, \"\", cmd) } cmd == name { print $1 }'"
    )


def process_running_script() -> str:
    return f"{_gateway_pids_command()} | grep -q ."


def stop_gateway_script() -> str:
    """Kill every gateway process (no grace period)."""
    return (
        f"for pid in $({_gateway_pids_command()}); do\n"
        '  kill "$pid" >/dev/null 2>&1 || true\n'
        "done"
    )


def ensure_token_script() -> str:
    """Create the token file (mode 0600) unless a non-empty one exists."""
    token_dir = GATEWAY_TOKEN_PATH.rsplit("/", 1)[0]
    return (
        "umask 077\n"
        f"mkdir -p {_q(token_dir)}\n"
        f"if [ ! -s {_q(GATEWAY_TOKEN_PATH)} ]; then\n"
        f"  head -c 32 /dev/urandom | od -An -tx1 | tr -d ' \\n' > {_q(GATEWAY_TOKEN_PATH)}\n"
        "fi\n"
        f"chmod 600 {_q(GATEWAY_TOKEN_PATH)}"
    )


def start_gateway_script(port: int, *, with_token: bool = False) -> str:
    """Launch the gateway in the background, logging to GATEWAY_LOG_PATH.

    With a token, the token file is passed as both environment and argument.
    """
    command = f"{_q(GATEWAY_BINARY)} gateway --bind loopback --port {int(port)}"
    if not with_token:
        return f"nohup {command} >{_q(GATEWAY_LOG_PATH)} 2>&1 &"
    return (
        f'token="$(cat {_q(GATEWAY_TOKEN_PATH)})"\n'
        f'{GATEWAY_TOKEN_ENV_VAR}="$token" nohup {command} --token "$token" '
        f">{_q(GATEWAY_LOG_PATH)} 2>&1 &"
    )


def log_tail_script(lines: int = DEFAULT_LOG_TAIL_LINES) -> str:
    """Print the gateway log tail, falling back to the newest legacy log."""
    count = int(lines)
    return (
        f"tail -n {count} {_q(GATEWAY_LOG_PATH)} 2>/dev/null || "
        f"(latest=$(ls -1t {_FALLBACK_LOG_GLOB} 2>/dev/null | head -n 1); "
        f'[ -n "$latest" ] && tail -n {count} "$latest" 2>/dev/null) || '
        'echo "<no gateway log found>"'
    )


def _watcher_body(port: int) -> str:
    """Bounded loop: wait for the binary, then start (and token-recover) once."""
    return "\n".join(
        [
            "probe() {",
            _probe_lines(port),
            "}",
            "wait_healthy() {",
            '  for _ in $(seq 1 "$1"); do',
            "    probe && return 0",
            "    sleep 1",
            "  done",
            "  return 1",
            "}",
            "stop_gateway() {",
            stop_gateway_script(),
            "}",
            f"for _ in $(seq 1 {WATCHER_ITERATIONS}); do",
            f"  if {binary_exists_script()}; then",
            f"    {ensure_log_dir_script()}",
            "    probe && exit 0",
            f"    {process_running_script()} && stop_gateway",
            f"    {start_gateway_script(port)}",
            "    wait_healthy 10 && exit 0",
            f"    if grep -Eqi 'no[[:space:]]+token[[:space:]]+is[[:space:]]+configured' {_q(GATEWAY_LOG_PATH)}; then",
            "      stop_gateway",
            ensure_token_script(),
            start_gateway_script(port, with_token=True),
            "      wait_healthy 25 && exit 0",
            "    fi",
            "    exit 1",
            "  fi",
            f"  sleep {WATCHER_SLEEP_SECONDS}",
            "done",
            "exit 0",
        ]
    )


def watcher_script(port: int) -> str:
    """Arm the bootstrap watcher unless a live one is already recorded.

    The loop body is written to a file next to the PID file and run
    detached; its PID is recorded for the idempotence check.
    """
    body_path = GATEWAY_WATCHER_PID_PATH.removesuffix(".pid") + ".sh"
    return "\n".join(
        [
            f"pid_file={_q(GATEWAY_WATCHER_PID_PATH)}",
            'if [ -f "$pid_file" ]; then',
            '  pid=$(cat "$pid_file" 2>/dev/null || true)',
            '  if [ -n "$pid" ] && kill -0 "$pid" 2>/dev/null; then',
            "    exit 0",
            "  fi",
            "fi",
            f"cat > {_q(body_path)} <<'CLAWBOX_WATCHER'",
            _watcher_body(port),
            "CLAWBOX_WATCHER",
            f"nohup /bin/bash {_q(body_path)} >{_q(GATEWAY_WATCHER_LOG_PATH)} 2>&1 &",
            'echo $! > "$pid_file"',
        ]
    )
