"""Pydantic models for clawbox.

Domain models are frozen (FrozenModel):
- ManagedInstance: Reconciled view of one managed instance
- RamPolicyComputation: Full arithmetic of one RAM admission decision
- GatewayEnsureResult: Outcome of one gateway ensure call

SystemEvent is the payload every log_event() call carries.
"""

from __future__ import annotations

__all__ = [
    "FrozenModel",
    "GatewayEnsureResult",
    "GatewayStatus",
    "InstanceStatus",
    "ManagedInstance",
    "RamPolicyComputation",
    "SystemEvent",
]

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

InstanceStatus = Literal["running", "stopped", "unknown"]

GatewayStatus = Literal["ready", "pending", "skipped", "error"]


# =============================================================================
# Domain Models
# =============================================================================


class FrozenModel(BaseModel):
    """Immutable base: results are passed around, never patched."""

    model_config = ConfigDict(frozen=True)


class ManagedInstance(FrozenModel):
    """One instance created and tracked by clawbox.

    Identity is internal_name; name is the operator-facing public name.

    Attributes:
        name: Public name (e.g., "dev").
        internal_name: Runtime container id (e.g., "clawbox-dev").
        status: Normalized status.
        keep_awake: Whether the host stays awake while this instance runs.
        ip: IPv4 address without prefix length, if attached.
        ram_gb: Memory allocation in GB.
        mount_path: Host folder bound at the well-known mount point.
        created_at: Creation time (UTC).
        started_at: Last start time (UTC).
    """

    name: str
    internal_name: str
    status: InstanceStatus = "unknown"
    keep_awake: bool = True
    ip: str | None = None
    ram_gb: float | None = None
    mount_path: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        """True if the runtime reports the instance as running."""
        return self.status == "running"


class RamPolicyComputation(FrozenModel):
    """Result of a RAM admission decision, with the arithmetic behind it.

    Attributes:
        total_gb: Host physical memory.
        allocated_gb: Memory already committed to instances.
        requested_gb: Memory the operation would add.
        remaining_gb: total - allocated - requested.
        reserve_floor_gb: Minimum that must remain free.
        allowed: remaining_gb >= reserve_floor_gb.
    """

    total_gb: float
    allocated_gb: float
    requested_gb: float
    remaining_gb: float
    reserve_floor_gb: float
    allowed: bool


class GatewayEnsureResult(FrozenModel):
    """Outcome of a single gateway ensure call.

    Attributes:
        status: ready, pending (watcher armed), skipped, or error.
        message: Human-readable summary.
        detail: Diagnostic payload (gateway log tail) for errors.
    """

    status: GatewayStatus
    message: str
    detail: str | None = None


# =============================================================================
# Log events
# =============================================================================


class SystemEvent(BaseModel):
    """One structured log record.

    log_event() dumps it with exclude_none, so only the fields a call site
    sets reach the JSONL line; ISO8601Formatter prepends time/level/logger.
    Extra keyword fields (e.g. status, kind) are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    event: str = Field(description="Snake-case event name, e.g. 'hold_acquired'")
    message: str = Field(description="Human-readable summary")

    instance_name: str | None = Field(None, description="Public instance name, e.g. 'dev'")
    internal_name: str | None = Field(None, description="Runtime container id, e.g. 'clawbox-dev'")
    pid: int | None = Field(None, description="Process the event is about (daemon, hold child)")

    error_type: str | None = Field(None, description="Exception class name")
    error_message: str | None = Field(None, description="str() of the exception")
    details: dict[str, Any] | None = None
