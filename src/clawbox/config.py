"""Configuration for clawbox.

One JSON file, config.json in the click app dir, read by every command
and by the power daemon. Every field has a default, so a missing file is
a valid configuration; a broken one is logged and ignored rather than
blocking the operator.
"""

from __future__ import annotations

__all__ = [
    "ClawboxConfig",
    "DEFAULT_LOG_DIR",
    "GatewaySettings",
    "get_config_path",
    "get_log_dir",
    "get_powerd_log_path",
    "load_config",
    "save_config",
]

import json
import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from clawbox.constants import (
    APP_NAME,
    DEFAULT_IMAGE_TAG,
    DEFAULT_UI_PORT,
    GATEWAY_PORT,
    POWER_POLL_INTERVAL_SECONDS,
)
from clawbox.models import SystemEvent
from clawbox.utils.file_helpers import atomic_write_text, get_app_dir
from clawbox.utils.logging import get_logger, log_event

_logger = get_logger("config")

# macOS keeps user logs in ~/Library/Logs (visible in Console.app)
DEFAULT_LOG_DIR = "~/Library/Logs" if sys.platform == "darwin" else os.environ.get("XDG_STATE_HOME", "~/.local/state")


class GatewaySettings(BaseModel):
    """In-instance gateway management settings.

    Attributes:
        enabled: Ensure the gateway after start (False reports "skipped").
        port: Gateway port inside the instance.
        start_timeout_seconds: Health wait after a plain start.
        token_timeout_seconds: Health wait after a token-recovery restart.
    """

    enabled: bool = True
    port: int = Field(default=GATEWAY_PORT, ge=1, le=65535)
    start_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    token_timeout_seconds: float = Field(default=25.0, gt=0, le=300)

    model_config = {"extra": "ignore"}


class ClawboxConfig(BaseModel):
    """clawbox configuration.

    Attributes:
        container_bin: Explicit path to the runtime executable. The
            CLAWBOX_CONTAINER_BIN environment variable still wins.
        image_tag: Image used for new instances.
        template_dir: Build context used when the image is missing.
        log_dir: Base directory for logs (daemon log in <log_dir>/clawbox/).
        gateway: Gateway orchestration settings.
        power_poll_interval_seconds: Power daemon poll cadence.
        ui_port: Default local port for the Control UI proxy.
    """

    container_bin: str | None = Field(
        default=None,
        description="Path to the container runtime executable",
    )
    image_tag: str = Field(
        default=DEFAULT_IMAGE_TAG,
        min_length=1,
        description="Image used for new instances",
    )
    template_dir: str | None = Field(
        default=None,
        description="Build context for the default image",
    )
    log_dir: str = Field(
        default=DEFAULT_LOG_DIR,
        min_length=1,
        description="Base directory for logs",
    )
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    power_poll_interval_seconds: float = Field(
        default=POWER_POLL_INTERVAL_SECONDS,
        ge=1.0,
        le=300.0,
        description="Power daemon poll interval",
    )
    ui_port: int = Field(
        default=DEFAULT_UI_PORT,
        ge=1,
        le=65535,
        description="Local port for the Control UI proxy",
    )

    model_config = {"extra": "ignore"}


def get_config_path() -> Path:
    """Get the full path to the config file.

    Returns:
        Path to config.json in the app directory.
    """
    return get_app_dir() / "config.json"


def get_log_dir(config: ClawboxConfig) -> Path:
    """Get the clawbox log directory (<log_dir>/clawbox/)."""
    return Path(config.log_dir).expanduser() / APP_NAME


def get_powerd_log_path(config: ClawboxConfig) -> Path:
    """Get full path to the power daemon log file."""
    return get_log_dir(config) / "powerd.jsonl"


def load_config() -> ClawboxConfig:
    """Read config.json, falling back to defaults.

    A missing file is silent. Unreadable files, malformed JSON and invalid
    values log a WARNING event and also yield defaults.
    """
    config_path = get_config_path()
    if not config_path.exists():
        return ClawboxConfig()

    try:
        raw = config_path.read_text(encoding="utf-8")
        return ClawboxConfig.model_validate(json.loads(raw))
    except OSError as e:
        error: Exception = e
        event, problem = "config_read_failed", "Cannot read config file"
    except json.JSONDecodeError as e:
        error = e
        event, problem = "config_invalid_json", "Config file is not valid JSON"
    except ValidationError as e:
        error = e
        event, problem = "config_validation_failed", "Config file has invalid values"

    log_event(
        logging.WARNING,
        SystemEvent(
            event=event,
            message=f"{problem}, using defaults",
            error_type=type(error).__name__,
            error_message=str(error),
            details={"config_path": str(config_path)},
        ),
        _logger,
    )
    return ClawboxConfig()


def save_config(config: ClawboxConfig) -> None:
    """Write config.json atomically (mode 0600), omitting unset optionals.

    Raises:
        OSError: If the file cannot be written.
    """
    content = json.dumps(config.model_dump(mode="json", exclude_none=True), indent=2) + "\n"
    atomic_write_text(get_config_path(), content)
