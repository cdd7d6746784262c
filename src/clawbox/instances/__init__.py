"""Instance package: preference store, state reconciler, lifecycle operations."""

from .lifecycle import (
    create_instance,
    delete_instance,
    pause_instance,
    require_instance_by_name,
    set_keep_awake_policy,
    start_instance,
    to_internal_name,
    to_user_name,
    wait_for_instance_ip,
)
from .preferences import PreferenceStore
from .reconciler import list_managed_instances, normalize_status

__all__ = [
    "PreferenceStore",
    "create_instance",
    "delete_instance",
    "list_managed_instances",
    "normalize_status",
    "pause_instance",
    "require_instance_by_name",
    "set_keep_awake_policy",
    "start_instance",
    "to_internal_name",
    "to_user_name",
    "wait_for_instance_ip",
]
