"""State reconciliation: the canonical list of managed instances.

The runtime is the source of truth for existence and status, but its
output shape drifts between versions and some fields only appear in
`inspect`. Reconciliation runs in three passes:

1. Bulk list (`ls --all --format json`, falling back to the tabular
   `ls -a` listing when JSON is unavailable)
2. Filter to managed instances (name prefix or managed label)
3. Per-instance `inspect`, merged over the bulk entry

Inspect values win for ip/ram/mount/timestamps/status; the bulk entry
fills gaps. An inspect that fails, times out, or prints garbage degrades
that instance to bulk-list data. Only a bulk-list failure is fatal.
"""

from __future__ import annotations

__all__ = [
    "extract_mount_path",
    "inspect_instance_ip",
    "list_managed_instances",
    "normalize_status",
    "parse_tabular_listing",
]

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from clawbox.constants import (
    DEFAULT_RAM_GB,
    DEFAULT_TEMPLATE_MOUNT_PATH,
    INSPECT_TIMEOUT_SECONDS,
    INSTANCE_CREATED_AT_LABEL,
    INSTANCE_KEEP_AWAKE_LABEL,
    INSTANCE_MOUNT_LABEL,
    INSTANCE_NAME_LABEL,
    INSTANCE_PREFIX,
    INSTANCE_RAM_LABEL,
    LIST_TIMEOUT_SECONDS,
    MANAGED_LABEL,
)
from clawbox.exceptions import CommandError, CommandTimeoutError
from clawbox.models import InstanceStatus, ManagedInstance, SystemEvent
from clawbox.runtime.container import ContainerRuntime
from clawbox.utils.logging import get_logger, log_event
from clawbox.utils.parsing import (
    as_string_dict,
    first_string,
    is_record,
    normalize_ipv4,
    parse_container_timestamp,
    parse_iso_datetime,
    parse_label_boolean,
    parse_maybe_number,
    round_to,
    string_field,
)

from .preferences import PreferenceStore

_logger = get_logger("reconciler")

_BYTES_PER_GB = 1024**3

_STOPPED_STATUSES = frozenset({"stopped", "paused", "created", "exited"})

_HEADER_LINE = re.compile(r"^id\s+", re.IGNORECASE)

_MOUNT_TARGET_KEYS = ("target", "containerPath", "destination")
_MOUNT_SOURCE_KEYS = ("source", "hostPath", "path")


@dataclass(frozen=True, slots=True)
class _ListEntry:
    """Fields recovered from one bulk-list entry."""

    internal_name: str
    status: InstanceStatus
    ip: str | None = None
    ram_gb: float | None = None
    started_at: datetime | None = None
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class _InspectDetails:
    """Fields recovered from `inspect` (all optional)."""

    labels: dict[str, str] = field(default_factory=dict)
    status: InstanceStatus | None = None
    ip: str | None = None
    ram_gb: float | None = None
    mount_path: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None


# =============================================================================
# Field extraction
# =============================================================================


def normalize_status(raw: str | None) -> InstanceStatus:
    """Map a runtime status string onto running/stopped/unknown (never raises)."""
    value = (raw or "").lower()
    if value == "running":
        return "running"
    if value in _STOPPED_STATUSES:
        return "stopped"
    return "unknown"


def _record(value: Any) -> Mapping[str, Any]:
    return value if is_record(value) else {}


def _first_ip(networks: Any) -> str | None:
    if not isinstance(networks, list):
        return None
    for network in networks:
        if not is_record(network):
            continue
        ip = normalize_ipv4(first_string(network, ("ipv4Address", "address")))
        if ip:
            return ip
    return None


def _memory_gb(configuration: Mapping[str, Any]) -> float | None:
    memory_bytes = parse_maybe_number(_record(configuration.get("resources")).get("memoryInBytes"))
    if memory_bytes is None:
        return None
    return round_to(memory_bytes / _BYTES_PER_GB, 2)


def extract_mount_path(root: Mapping[str, Any]) -> str | None:
    """Find the host folder bound at the well-known mount point.

    Scans configuration.mounts, then root.mounts. The first descriptor
    with a source whose target is the mount point wins.
    """
    configuration = _record(root.get("configuration"))
    for mounts in (configuration.get("mounts"), root.get("mounts")):
        if not isinstance(mounts, list):
            continue
        for mount in mounts:
            if not is_record(mount):
                continue
            source = first_string(mount, _MOUNT_SOURCE_KEYS)
            if not source:
                continue
            if first_string(mount, _MOUNT_TARGET_KEYS) == DEFAULT_TEMPLATE_MOUNT_PATH:
                return source
    return None


def _normalize_list_entry(raw: Any) -> _ListEntry | None:
    if not is_record(raw):
        return None
    configuration = _record(raw.get("configuration"))
    internal_name = string_field(configuration.get("id"))
    if not internal_name:
        return None

    return _ListEntry(
        internal_name=internal_name,
        status=normalize_status(string_field(raw.get("status"))),
        ip=_first_ip(raw.get("networks")),
        ram_gb=_memory_gb(configuration),
        started_at=parse_container_timestamp(raw.get("startedDate")),
        labels=as_string_dict(configuration.get("labels")),
    )


def _is_managed(entry: _ListEntry) -> bool:
    return entry.internal_name.startswith(INSTANCE_PREFIX) or entry.labels.get(MANAGED_LABEL) == "true"


def _parse_inspect_output(stdout: str) -> _InspectDetails | None:
    try:
        parsed = json.loads(stdout)
    except json.JSONDecodeError:
        return None

    root = parsed[0] if isinstance(parsed, list) and parsed else parsed
    if not is_record(root):
        return None

    configuration = _record(root.get("configuration"))
    labels = {**as_string_dict(root.get("labels")), **as_string_dict(configuration.get("labels"))}
    created_at = parse_iso_datetime(labels.get(INSTANCE_CREATED_AT_LABEL)) or parse_container_timestamp(
        root.get("createdDate")
    )

    raw_status = string_field(root.get("status"))
    return _InspectDetails(
        labels=labels,
        status=normalize_status(raw_status) if raw_status is not None else None,
        ip=_first_ip(root.get("networks")),
        ram_gb=_memory_gb(configuration),
        mount_path=extract_mount_path(root),
        created_at=created_at,
        started_at=parse_container_timestamp(root.get("startedDate")),
    )


# =============================================================================
# Runtime calls
# =============================================================================


def _table_rows(stdout: str) -> list[str]:
    return [line.strip() for line in stdout.splitlines() if line.strip() and not _HEADER_LINE.match(line.strip())]


def parse_tabular_listing(stdout: str) -> list[str]:
    """Extract container ids from the tabular `ls -a` listing.

    The id is the first whitespace-delimited token; header lines are skipped.
    """
    return [row.split()[0] for row in _table_rows(stdout)]


def _list_all_entries(runtime: ContainerRuntime) -> list[Any]:
    result = runtime.run(
        ["ls", "--all", "--format", "json"],
        timeout_seconds=LIST_TIMEOUT_SECONDS,
        allow_non_zero_exit=True,
    )
    if result.ok and result.stdout.startswith("["):
        try:
            parsed = json.loads(result.stdout)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return parsed

    fallback = runtime.run(["ls", "-a"], timeout_seconds=LIST_TIMEOUT_SECONDS)
    return [
        {
            "status": "running" if "running" in row.lower() else "stopped",
            "configuration": {"id": row.split()[0]},
        }
        for row in _table_rows(fallback.stdout)
    ]


def _inspect(runtime: ContainerRuntime, internal_name: str) -> _InspectDetails | None:
    try:
        result = runtime.run(
            ["inspect", internal_name],
            timeout_seconds=INSPECT_TIMEOUT_SECONDS,
            allow_non_zero_exit=True,
        )
    except (CommandError, CommandTimeoutError) as e:
        reason = f"{type(e).__name__}: {e}"
    else:
        if result.ok and result.stdout:
            details = _parse_inspect_output(result.stdout)
            if details is not None:
                return details
            reason = "unparsable inspect output"
        else:
            reason = f"inspect exited {result.exit_code}" if not result.ok else "empty inspect output"

    log_event(
        logging.WARNING,
        SystemEvent(
            event="inspect_degraded",
            message=f"Inspect failed for {internal_name}, using list data only",
            internal_name=internal_name,
            error_message=reason,
        ),
        _logger,
    )
    return None


def inspect_instance_ip(runtime: ContainerRuntime, internal_name: str) -> str | None:
    """Address reported by a single `inspect` of one container.

    Returns None while no address is attached or when inspect fails; callers
    polling for an address retry on their own schedule.
    """
    try:
        result = runtime.run(
            ["inspect", internal_name],
            timeout_seconds=INSPECT_TIMEOUT_SECONDS,
            allow_non_zero_exit=True,
        )
    except (CommandError, CommandTimeoutError):
        return None
    if not result.ok or not result.stdout:
        return None
    details = _parse_inspect_output(result.stdout)
    return details.ip if details else None


def _merge(entry: _ListEntry, inspected: _InspectDetails | None, preferences: Mapping[str, bool]) -> ManagedInstance:
    details = inspected or _InspectDetails()
    labels = {**entry.labels, **details.labels}

    internal_name = entry.internal_name
    name = labels.get(INSTANCE_NAME_LABEL) or internal_name.removeprefix(INSTANCE_PREFIX)

    keep_awake = preferences.get(internal_name)
    if keep_awake is None:
        keep_awake = parse_label_boolean(labels.get(INSTANCE_KEEP_AWAKE_LABEL))
    if keep_awake is None:
        keep_awake = True

    ram_gb = details.ram_gb
    if ram_gb is None:
        ram_gb = entry.ram_gb
    if ram_gb is None:
        ram_gb = parse_maybe_number(labels.get(INSTANCE_RAM_LABEL))
    if ram_gb is None:
        ram_gb = float(DEFAULT_RAM_GB)

    return ManagedInstance(
        name=name,
        internal_name=internal_name,
        status=details.status or entry.status,
        keep_awake=keep_awake,
        ip=details.ip or entry.ip,
        ram_gb=ram_gb,
        mount_path=details.mount_path or labels.get(INSTANCE_MOUNT_LABEL),
        created_at=details.created_at,
        started_at=details.started_at or entry.started_at,
    )


def list_managed_instances(
    runtime: ContainerRuntime,
    preferences: PreferenceStore | None = None,
) -> list[ManagedInstance]:
    """Return every managed instance, sorted by public name.

    Args:
        runtime: Runtime client.
        preferences: Keep-awake store (default location if None).

    Returns:
        Reconciled instances.

    Raises:
        CommandError: If both bulk-list forms fail.
        CommandTimeoutError: If the bulk list times out.
    """
    store = preferences if preferences is not None else PreferenceStore()
    keep_awake_map = store.read()

    managed = [
        entry
        for entry in (_normalize_list_entry(raw) for raw in _list_all_entries(runtime))
        if entry is not None and _is_managed(entry)
    ]

    instances = [_merge(entry, _inspect(runtime, entry.internal_name), keep_awake_map) for entry in managed]
    return sorted(instances, key=lambda instance: instance.name)
