"""Instance lifecycle: naming, lookup, create, start, pause, delete.

Public names map onto runtime ids by prefixing ("dev" -> "clawbox-dev").
Public names are unique among every container the runtime knows about,
not only managed ones, so uniqueness is checked against the raw listing.

Create pairs the runtime `create` with a preference write; delete pairs
`rm` with a preference purge, so the keep-awake map never outlives its
instance.
"""

from __future__ import annotations

__all__ = [
    "NAME_PATTERN",
    "create_instance",
    "delete_instance",
    "ensure_mount_path_safe",
    "ensure_unique_instance_name",
    "find_instance",
    "format_instance_not_found_message",
    "list_all_container_names",
    "pause_instance",
    "require_instance_by_name",
    "require_valid_instance_name",
    "set_keep_awake_policy",
    "start_instance",
    "to_internal_name",
    "to_user_name",
    "validate_instance_name",
    "wait_for_instance_ip",
]

import logging
import re
import time
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone

from clawbox.constants import (
    CREATE_TIMEOUT_SECONDS,
    DEFAULT_TEMPLATE_MOUNT_PATH,
    INSTANCE_CREATED_AT_LABEL,
    INSTANCE_KEEP_AWAKE_LABEL,
    INSTANCE_MOUNT_LABEL,
    INSTANCE_NAME_LABEL,
    INSTANCE_PREFIX,
    INSTANCE_RAM_LABEL,
    LIFECYCLE_TIMEOUT_SECONDS,
    LIST_TIMEOUT_SECONDS,
    MANAGED_LABEL,
    WAIT_FOR_IP_TIMEOUT_SECONDS,
)
from clawbox.exceptions import ClawboxError
from clawbox.models import ManagedInstance, SystemEvent
from clawbox.runtime.container import ContainerRuntime
from clawbox.utils.file_helpers import normalize_input_path, resolve_existing_directory
from clawbox.utils.logging import get_logger, log_event

from .preferences import PreferenceStore
from .reconciler import inspect_instance_ip, list_managed_instances, parse_tabular_listing

_logger = get_logger("lifecycle")

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")

# Poll interval while waiting for an address (seconds)
_IP_POLL_INTERVAL_SECONDS = 1.0


# =============================================================================
# Naming
# =============================================================================


def to_internal_name(name: str) -> str:
    """Public name -> runtime id."""
    return f"{INSTANCE_PREFIX}{name}"


def to_user_name(internal_name: str) -> str:
    """Runtime id -> public name (ids without the prefix pass through)."""
    return internal_name.removeprefix(INSTANCE_PREFIX)


def validate_instance_name(name: str) -> str | None:
    """Return an error message for an invalid name, or None if valid."""
    if not name.strip():
        return "Instance name is required."
    if not NAME_PATTERN.match(name):
        return "Name must contain only letters, numbers, and hyphens."
    return None


def require_valid_instance_name(name: str) -> str:
    """Validate a name or raise.

    Raises:
        ClawboxError: (validation) If the name is empty or has bad characters.
    """
    problem = validate_instance_name(name)
    if problem:
        raise ClawboxError(problem, kind="validation")
    return name


def list_all_container_names(runtime: ContainerRuntime) -> set[str]:
    """Return the ids of every container the runtime knows about."""
    result = runtime.run(["ls", "-a"], timeout_seconds=LIST_TIMEOUT_SECONDS)
    return set(parse_tabular_listing(result.stdout))


def ensure_unique_instance_name(name: str, existing: Iterable[str]) -> None:
    """Reject a name whose runtime id is already taken.

    Raises:
        ClawboxError: (validation) If the id exists.
    """
    if to_internal_name(name) in set(existing):
        raise ClawboxError(
            f"An instance named '{name}' already exists.",
            kind="validation",
            hint="Choose a different name or delete the existing instance.",
        )


def ensure_mount_path_safe(mount_path: str | None) -> str | None:
    """Resolve an optional host folder to an absolute existing directory.

    Raises:
        ClawboxError: (validation) If the path is missing or not a directory.
    """
    if not mount_path or not mount_path.strip():
        return None
    try:
        return resolve_existing_directory(normalize_input_path(mount_path))
    except ValueError as e:
        raise ClawboxError(str(e), kind="validation") from e


# =============================================================================
# Lookup
# =============================================================================


def format_instance_not_found_message(name: str, instances: Sequence[ManagedInstance]) -> str:
    """Build the not-found message listing the names that do exist."""
    if not instances:
        return f"Instance '{name}' not found. No clawbox instances exist yet."
    available = ", ".join(instance.name for instance in instances)
    return f"Instance '{name}' not found. Available instances: {available}"


def find_instance(name: str, instances: Iterable[ManagedInstance]) -> ManagedInstance | None:
    """Match by runtime id (public names are prefix-derived)."""
    target = to_internal_name(name)
    for instance in instances:
        if instance.internal_name == target:
            return instance
    return None


def require_instance_by_name(
    runtime: ContainerRuntime,
    name: str,
    preferences: PreferenceStore | None = None,
) -> tuple[ManagedInstance, list[ManagedInstance]]:
    """Look up one instance, returning it together with the full listing.

    The listing is returned as well because callers (RAM policy) need it.

    Raises:
        ClawboxError: (not_found) With every valid name in the message.
    """
    instances = list_managed_instances(runtime, preferences)
    instance = find_instance(name, instances)
    if instance is None:
        raise ClawboxError(
            format_instance_not_found_message(name, instances),
            kind="not_found",
            hint="Run `clawbox ls` to see instances.",
        )
    return instance, instances


# =============================================================================
# Lifecycle
# =============================================================================


def create_instance(
    runtime: ContainerRuntime,
    *,
    name: str,
    ram_gb: int,
    image_tag: str,
    mount_path: str | None = None,
    keep_awake: bool = True,
    preferences: PreferenceStore | None = None,
) -> str:
    """Create a stopped instance running `sleep infinity` as its init.

    Args:
        runtime: Runtime client.
        name: Public name (already validated and unique).
        ram_gb: Memory allocation in GB.
        image_tag: Image to create from.
        mount_path: Host folder bound at the well-known mount point.
        keep_awake: Initial keep-awake flag.
        preferences: Keep-awake store.

    Returns:
        The runtime id of the new instance.
    """
    internal_name = to_internal_name(name)
    resolved_mount = ensure_mount_path_safe(mount_path)

    args = ["create", "--name", internal_name, "-m", f"{ram_gb}G"]
    if resolved_mount:
        args += ["-v", f"{resolved_mount}:{DEFAULT_TEMPLATE_MOUNT_PATH}"]

    if runtime.supports_labels():
        labels = {
            MANAGED_LABEL: "true",
            INSTANCE_NAME_LABEL: name,
            INSTANCE_RAM_LABEL: str(ram_gb),
            INSTANCE_KEEP_AWAKE_LABEL: "true" if keep_awake else "false",
            INSTANCE_CREATED_AT_LABEL: datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        }
        if resolved_mount:
            labels[INSTANCE_MOUNT_LABEL] = resolved_mount
        for key, value in labels.items():
            args += ["--label", f"{key}={value}"]

    args += [image_tag, "sleep", "infinity"]
    runtime.run(args, timeout_seconds=CREATE_TIMEOUT_SECONDS)
    (preferences or PreferenceStore()).set_keep_awake(internal_name, keep_awake)

    log_event(
        logging.INFO,
        SystemEvent(
            event="instance_created",
            message=f"Created instance {name}",
            instance_name=name,
            internal_name=internal_name,
            details={"ram_gb": ram_gb, "mount_path": resolved_mount, "image": image_tag},
        ),
        _logger,
    )
    return internal_name


def start_instance(runtime: ContainerRuntime, internal_name: str) -> None:
    runtime.run(["start", internal_name], timeout_seconds=LIFECYCLE_TIMEOUT_SECONDS)


def pause_instance(runtime: ContainerRuntime, internal_name: str) -> None:
    runtime.run(["stop", internal_name], timeout_seconds=LIFECYCLE_TIMEOUT_SECONDS)


def delete_instance(
    runtime: ContainerRuntime,
    internal_name: str,
    preferences: PreferenceStore | None = None,
) -> None:
    """Remove the instance, then purge its preference entry."""
    runtime.run(["rm", internal_name], timeout_seconds=LIFECYCLE_TIMEOUT_SECONDS)
    (preferences or PreferenceStore()).remove(internal_name)
    log_event(
        logging.INFO,
        SystemEvent(
            event="instance_deleted",
            message=f"Deleted instance {to_user_name(internal_name)}",
            internal_name=internal_name,
        ),
        _logger,
    )


def set_keep_awake_policy(
    internal_name: str,
    keep_awake: bool,
    preferences: PreferenceStore | None = None,
) -> None:
    """Change the keep-awake flag (touches only the preference store)."""
    (preferences or PreferenceStore()).set_keep_awake(internal_name, keep_awake)


def wait_for_instance_ip(
    runtime: ContainerRuntime,
    internal_name: str,
    timeout_seconds: float = WAIT_FOR_IP_TIMEOUT_SECONDS,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> str | None:
    """Poll `inspect` of this one container until it reports an address.

    Returns:
        The IPv4 address, or None if none appeared within the timeout.
    """
    deadline = clock() + timeout_seconds
    while clock() < deadline:
        ip = inspect_instance_ip(runtime, internal_name)
        if ip:
            return ip
        sleep(_IP_POLL_INTERVAL_SECONDS)
    return inspect_instance_ip(runtime, internal_name)
