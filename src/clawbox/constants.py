"""Application-wide constants for clawbox.

Constants that define application behavior.
For user-configurable settings, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    "INSTANCE_PREFIX",
    # Instance defaults
    "DEFAULT_IMAGE_TAG",
    "DEFAULT_TEMPLATE_MOUNT_PATH",
    "RAM_OPTIONS_GB",
    "DEFAULT_RAM_GB",
    "HOST_RAM_FLOOR_GB",
    # Runtime metadata labels
    "MANAGED_LABEL",
    "INSTANCE_NAME_LABEL",
    "INSTANCE_RAM_LABEL",
    "INSTANCE_MOUNT_LABEL",
    "INSTANCE_KEEP_AWAKE_LABEL",
    "INSTANCE_CREATED_AT_LABEL",
    # Runtime binary discovery
    "CONTAINER_BIN_ENV_VAR",
    "CONTAINER_BINARY_CANDIDATES",
    "MIN_SUPPORTED_DARWIN_MAJOR",
    # Command timeouts
    "DEFAULT_COMMAND_TIMEOUT_SECONDS",
    "COMMAND_KILL_GRACE_SECONDS",
    "LIST_TIMEOUT_SECONDS",
    "INSPECT_TIMEOUT_SECONDS",
    "CREATE_TIMEOUT_SECONDS",
    "LIFECYCLE_TIMEOUT_SECONDS",
    "PROBE_TIMEOUT_SECONDS",
    "BUILD_TIMEOUT_SECONDS",
    "WAIT_FOR_IP_TIMEOUT_SECONDS",
    # Gateway
    "GATEWAY_BINARY",
    "GATEWAY_PROCESS_NAME",
    "GATEWAY_PORT",
    "GATEWAY_LOG_DIR",
    "GATEWAY_LOG_PATH",
    "GATEWAY_TOKEN_PATH",
    "GATEWAY_TOKEN_ENV_VAR",
    "GATEWAY_WATCHER_PID_PATH",
    "GATEWAY_WATCHER_LOG_PATH",
    # Power daemon
    "RUNTIME_DIR",
    "POWERD_PID_PATH",
    "POWERD_COMMAND",
    "POWER_POLL_INTERVAL_SECONDS",
    "KEEP_AWAKE_COMMAND",
    # Local proxy bridge
    "LOOPBACK_HOST",
    "DEFAULT_UI_PORT",
]

from pathlib import Path

from platformdirs import user_runtime_dir

# ============================================================================
# Application Identity
# ============================================================================

# Application name used for directory names, loggers, etc.
APP_NAME: str = "clawbox"

# Internal runtime names are the public name behind this prefix
INSTANCE_PREFIX: str = "clawbox-"

# ============================================================================
# Instance Defaults
# ============================================================================

DEFAULT_IMAGE_TAG: str = "clawbox/default:latest"

# Host folders are always bound to this path inside the instance
DEFAULT_TEMPLATE_MOUNT_PATH: str = "/mnt/host"

# RAM choices offered at create time (GB); custom values must be >= the first
RAM_OPTIONS_GB: tuple[int, ...] = (4, 5, 6)

# Assumed allocation for instances whose RAM cannot be determined (GB)
DEFAULT_RAM_GB: int = 4

# Minimum RAM that must remain free on the host after any allocation (GB)
HOST_RAM_FLOOR_GB: int = 8

# ============================================================================
# Runtime Metadata Labels
# ============================================================================

MANAGED_LABEL: str = "com.clawbox.managed"
INSTANCE_NAME_LABEL: str = "com.clawbox.instance-name"
INSTANCE_RAM_LABEL: str = "com.clawbox.ram-gb"
INSTANCE_MOUNT_LABEL: str = "com.clawbox.mount-path"
INSTANCE_KEEP_AWAKE_LABEL: str = "com.clawbox.keep-awake"
INSTANCE_CREATED_AT_LABEL: str = "com.clawbox.created-at"

# ============================================================================
# Runtime Binary Discovery
# ============================================================================

# Overrides every other discovery mechanism when set
CONTAINER_BIN_ENV_VAR: str = "CLAWBOX_CONTAINER_BIN"

# Well-known install locations, checked before PATH
CONTAINER_BINARY_CANDIDATES: tuple[str, ...] = (
    "/usr/local/bin/container",
    "/opt/homebrew/bin/container",
)

# macOS 26 (Tahoe) reports Darwin 25.x
MIN_SUPPORTED_DARWIN_MAJOR: int = 25

# ============================================================================
# Command Timeouts (seconds)
# ============================================================================

DEFAULT_COMMAND_TIMEOUT_SECONDS: float = 60.0

# After a timeout, SIGTERM is sent; SIGKILL follows after this grace period
COMMAND_KILL_GRACE_SECONDS: float = 2.0

LIST_TIMEOUT_SECONDS: float = 30.0
INSPECT_TIMEOUT_SECONDS: float = 20.0
CREATE_TIMEOUT_SECONDS: float = 120.0
LIFECYCLE_TIMEOUT_SECONDS: float = 60.0
PROBE_TIMEOUT_SECONDS: float = 10.0
BUILD_TIMEOUT_SECONDS: float = 300.0
WAIT_FOR_IP_TIMEOUT_SECONDS: float = 30.0

# ============================================================================
# Gateway (in-instance service)
# ============================================================================

GATEWAY_BINARY: str = "openclaw"
GATEWAY_PROCESS_NAME: str = "openclaw-gateway"
GATEWAY_PORT: int = 18789
GATEWAY_LOG_DIR: str = "/home/agent/OpenClawProject/logs"
GATEWAY_LOG_PATH: str = f"{GATEWAY_LOG_DIR}/gateway.log"
GATEWAY_TOKEN_PATH: str = "/home/agent/.openclaw/gateway.token"
GATEWAY_TOKEN_ENV_VAR: str = "OPENCLAW_GATEWAY_TOKEN"
GATEWAY_WATCHER_PID_PATH: str = "/tmp/clawbox-gateway-bootstrap.pid"
GATEWAY_WATCHER_LOG_PATH: str = "/tmp/clawbox-gateway-bootstrap.log"

# ============================================================================
# Power Daemon
# ============================================================================

# Per-user runtime directory for ephemeral files (PID claim)
# Platform-specific:
#   - macOS: ~/Library/Caches/TemporaryItems/clawbox/
#   - Linux: $XDG_RUNTIME_DIR/clawbox/
RUNTIME_DIR: Path = Path(user_runtime_dir(APP_NAME))

POWERD_PID_PATH: Path = RUNTIME_DIR / "powerd.pid"

# Hidden CLI command that runs the daemon loop in the detached process
POWERD_COMMAND: str = "_powerd"

POWER_POLL_INTERVAL_SECONDS: float = 5.0

# -i idle sleep, -m disk sleep, -s system sleep (AC power)
KEEP_AWAKE_COMMAND: tuple[str, ...] = ("caffeinate", "-ims")

# ============================================================================
# Local Proxy Bridge
# ============================================================================

# The bridge never binds anything but loopback
LOOPBACK_HOST: str = "127.0.0.1"

DEFAULT_UI_PORT: int = GATEWAY_PORT
