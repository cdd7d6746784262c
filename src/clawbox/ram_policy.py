"""RAM admission policy.

Pure computation over host total RAM, currently allocated RAM, and a
requested allocation. An operation is admitted only if at least
HOST_RAM_FLOOR_GB would remain free afterwards.

Allocation modes:
- "all": every managed instance counts (create time; future starts will
  also need room)
- "running": only running instances count (start time; paused instances
  consume no RAM right now)
"""

from __future__ import annotations

__all__ = [
    "AllocationMode",
    "evaluate_ram_policy",
    "host_total_ram_gb",
    "ram_policy_error",
    "require_ram_admission",
    "sum_allocated_ram_gb",
]

import os
from collections.abc import Iterable
from typing import Literal

from clawbox.constants import DEFAULT_RAM_GB, HOST_RAM_FLOOR_GB
from clawbox.exceptions import ClawboxError
from clawbox.models import ManagedInstance, RamPolicyComputation
from clawbox.utils.parsing import round_to

AllocationMode = Literal["all", "running"]

_BYTES_PER_GB = 1024**3


def host_total_ram_gb() -> float:
    """Host physical memory in GB."""
    total_bytes = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    return round_to(total_bytes / _BYTES_PER_GB, 2)


def sum_allocated_ram_gb(
    instances: Iterable[ManagedInstance],
    mode: AllocationMode,
    exclude_internal_name: str | None = None,
) -> float:
    """Sum RAM allocations across instances.

    Args:
        instances: Reconciled instances.
        mode: "all" or "running".
        exclude_internal_name: Instance to leave out (the one being started,
            so its own allocation is not counted against itself).

    Returns:
        Total in GB; unknown allocations count as DEFAULT_RAM_GB.
    """
    total = 0.0
    for instance in instances:
        if exclude_internal_name and instance.internal_name == exclude_internal_name:
            continue
        if mode == "running" and instance.status != "running":
            continue
        total += instance.ram_gb if instance.ram_gb is not None else DEFAULT_RAM_GB
    return round_to(total, 2)


def evaluate_ram_policy(total_gb: float, allocated_gb: float, requested_gb: float) -> RamPolicyComputation:
    """Decide whether a requested allocation is admitted.

    Args:
        total_gb: Host physical memory.
        allocated_gb: Memory already committed.
        requested_gb: Memory the operation adds.

    Returns:
        The full computation. allowed compares the exact remainder with
        the floor (boundary inclusive); the gb fields are rounded to two
        decimals for display only.
    """
    exact_remaining_gb = total_gb - allocated_gb - requested_gb
    return RamPolicyComputation(
        total_gb=round_to(total_gb, 2),
        allocated_gb=round_to(allocated_gb, 2),
        requested_gb=round_to(requested_gb, 2),
        remaining_gb=round_to(exact_remaining_gb, 2),
        reserve_floor_gb=HOST_RAM_FLOOR_GB,
        allowed=exact_remaining_gb >= HOST_RAM_FLOOR_GB,
    )


def ram_policy_error(computation: RamPolicyComputation) -> str:
    """Render a denial with the complete arithmetic."""
    return "\n".join(
        [
            "RAM policy violation:",
            f"  total RAM: {computation.total_gb:g} GB",
            f"  currently allocated: {computation.allocated_gb:g} GB",
            f"  requested: {computation.requested_gb:g} GB",
            f"  remaining after operation: {computation.remaining_gb:g} GB",
            f"  required minimum remaining: {computation.reserve_floor_gb:g} GB",
            "Operation rejected because host free RAM would fall below "
            f"the {computation.reserve_floor_gb:g} GB floor.",
        ]
    )


def require_ram_admission(total_gb: float, allocated_gb: float, requested_gb: float) -> RamPolicyComputation:
    """Evaluate the policy and raise on denial.

    Raises:
        ClawboxError: (validation) With the full arithmetic as message.
    """
    computation = evaluate_ram_policy(total_gb, allocated_gb, requested_gb)
    if not computation.allowed:
        raise ClawboxError(ram_policy_error(computation), kind="validation")
    return computation
