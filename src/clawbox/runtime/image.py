"""Default image presence and build.

New instances are created from config.image_tag. When the runtime does not
have that image yet, it is built once from the template build context.
"""

from __future__ import annotations

__all__ = [
    "ensure_default_image",
    "image_exists",
    "resolve_template_dir",
]

import logging
from pathlib import Path

from clawbox.config import ClawboxConfig
from clawbox.constants import BUILD_TIMEOUT_SECONDS, PROBE_TIMEOUT_SECONDS
from clawbox.exceptions import ClawboxError
from clawbox.models import SystemEvent
from clawbox.utils.logging import get_logger, log_event

from .container import ContainerRuntime

_logger = get_logger("image")

# Build context checked when config.template_dir is not set
_FALLBACK_TEMPLATE_DIR = Path("templates") / "default"


def image_exists(runtime: ContainerRuntime, image_tag: str) -> bool:
    """Check whether the runtime already has an image.

    `image ls` prints NAME and TAG as the first two columns; they are
    joined as "name:tag" and compared with image_tag.
    """
    result = runtime.run(["image", "ls"], timeout_seconds=PROBE_TIMEOUT_SECONDS * 2)
    for line in result.stdout.splitlines():
        line = line.strip()
        if not line or line.startswith(("NAME", "ID")):
            continue
        columns = line.split()
        if len(columns) < 2:
            continue
        if f"{columns[0]}:{columns[1]}" == image_tag:
            return True
    return False


def resolve_template_dir(config: ClawboxConfig) -> Path:
    """Find the build context for the default image.

    Raises:
        ClawboxError: (dependency) If no directory with a Dockerfile exists.
    """
    candidates = [Path(config.template_dir).expanduser()] if config.template_dir else []
    candidates.append(Path.cwd() / _FALLBACK_TEMPLATE_DIR)

    for candidate in candidates:
        if (candidate / "Dockerfile").is_file():
            return candidate.resolve()

    raise ClawboxError(
        f"Image {config.image_tag} is missing and no template Dockerfile was found.",
        kind="dependency",
        hint="Set template_dir in config.json to a directory containing a Dockerfile.",
    )


def ensure_default_image(runtime: ContainerRuntime, config: ClawboxConfig) -> bool:
    """Build config.image_tag if the runtime does not have it.

    Returns:
        True if a build was performed, False if the image already existed.

    Raises:
        ClawboxError: (dependency) If the build context is missing.
        CommandError: If the build fails.
    """
    if image_exists(runtime, config.image_tag):
        return False

    context_dir = resolve_template_dir(config)
    log_event(
        logging.INFO,
        SystemEvent(
            event="image_build_started",
            message=f"Building image {config.image_tag}",
            details={"context_dir": str(context_dir)},
        ),
        _logger,
    )
    runtime.run(["build", "-t", config.image_tag, str(context_dir)], timeout_seconds=BUILD_TIMEOUT_SECONDS)
    return True
