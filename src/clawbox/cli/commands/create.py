"""Create command for clawbox CLI.

Creates a stopped instance after checking the RAM policy against every
managed instance (stopped ones will need their RAM when started).
"""

from __future__ import annotations

__all__ = ["create"]

import click

from clawbox.constants import DEFAULT_RAM_GB, DEFAULT_TEMPLATE_MOUNT_PATH, RAM_OPTIONS_GB
from clawbox.exceptions import ClawboxError
from clawbox.instances.lifecycle import (
    create_instance,
    ensure_mount_path_safe,
    ensure_unique_instance_name,
    list_all_container_names,
    require_valid_instance_name,
    validate_instance_name,
)
from clawbox.instances.reconciler import list_managed_instances
from clawbox.models import RamPolicyComputation
from clawbox.ram_policy import evaluate_ram_policy, host_total_ram_gb, ram_policy_error, sum_allocated_ram_gb
from clawbox.runtime.image import ensure_default_image

from ..context import get_command_context, is_interactive
from ..styling import style_label, style_success

_MIN_RAM_GB = RAM_OPTIONS_GB[0]


def _require_allowed(computation: RamPolicyComputation) -> RamPolicyComputation:
    if not computation.allowed:
        raise ClawboxError(ram_policy_error(computation), kind="validation")
    return computation


def _prompt_ram(allowed_options: list[int], total_gb: float, allocated_gb: float) -> int:
    default = DEFAULT_RAM_GB if DEFAULT_RAM_GB in allowed_options else allowed_options[0]
    choice = click.prompt(
        "Select RAM allocation (GB)",
        type=click.Choice([*(str(ram) for ram in allowed_options), "custom"]),
        default=str(default),
    )
    if choice != "custom":
        return int(choice)

    while True:
        ram = click.prompt(f"Custom RAM in GB (integer, >={_MIN_RAM_GB})", type=click.IntRange(min=_MIN_RAM_GB))
        computation = evaluate_ram_policy(total_gb, allocated_gb, ram)
        if computation.allowed:
            return ram
        click.echo(
            f"Rejected by RAM policy: {computation.remaining_gb:g} GB would remain "
            f"(< {computation.reserve_floor_gb:g} GB)."
        )


def _prompt_mount() -> str | None:
    if not click.confirm(f"Mount a host folder at {DEFAULT_TEMPLATE_MOUNT_PATH}?", default=False):
        return None
    while True:
        raw = click.prompt("Host folder path")
        try:
            return ensure_mount_path_safe(raw)
        except ClawboxError as e:
            click.echo(e.message)


def _prompt_name(existing: set[str]) -> str:
    while True:
        name = click.prompt("Instance name")
        problem = validate_instance_name(name)
        if problem is None:
            try:
                ensure_unique_instance_name(name, existing)
                return name
            except ClawboxError as e:
                problem = e.message
        click.echo(problem)


@click.command()
@click.argument("name", required=False)
@click.option(
    "--ram",
    type=click.IntRange(min=_MIN_RAM_GB),
    default=None,
    help=f"RAM allocation in GB ({', '.join(map(str, RAM_OPTIONS_GB))}, or custom >={_MIN_RAM_GB})",
)
@click.option("--mount", "mount_path", default=None, help=f"Host folder to mount at {DEFAULT_TEMPLATE_MOUNT_PATH}")
@click.option("--allow-sleep", is_flag=True, help="Let the host sleep while this instance runs")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def create(name: str | None, ram: int | None, mount_path: str | None, allow_sleep: bool, yes: bool) -> None:
    """Create a new instance.

    RAM is checked against every existing instance: at least 8 GB of host
    RAM must remain free after all instances are running.
    """
    ctx = get_command_context()
    interactive = is_interactive()

    instances = list_managed_instances(ctx.runtime, ctx.preferences)
    existing_names = list_all_container_names(ctx.runtime)

    total_gb = host_total_ram_gb()
    allocated_gb = sum_allocated_ram_gb(instances, "all")
    _require_allowed(evaluate_ram_policy(total_gb, allocated_gb, _MIN_RAM_GB))
    allowed_options = [
        option for option in RAM_OPTIONS_GB if evaluate_ram_policy(total_gb, allocated_gb, option).allowed
    ]

    if ram is None:
        if interactive:
            ram = _prompt_ram(allowed_options, total_gb, allocated_gb)
        else:
            ram = DEFAULT_RAM_GB if DEFAULT_RAM_GB in allowed_options else allowed_options[0]
    policy = _require_allowed(evaluate_ram_policy(total_gb, allocated_gb, ram))

    resolved_mount = ensure_mount_path_safe(mount_path)
    if mount_path is None and interactive:
        resolved_mount = _prompt_mount()

    if not name:
        if not interactive:
            raise ClawboxError(
                "Instance name is required.",
                kind="validation",
                hint="Provide `clawbox create <name>` or run in an interactive terminal.",
            )
        name = _prompt_name(existing_names)
    require_valid_instance_name(name)
    ensure_unique_instance_name(name, existing_names)

    click.echo(style_label("Create summary"))
    click.echo(f"  Name: {name}")
    click.echo(f"  RAM: {ram} GB")
    click.echo(f"  Mount: {resolved_mount or 'none'}")
    click.echo(f"  Host sleep: {'normal' if allow_sleep else 'keep-awake'}")
    click.echo(f"  Host total RAM: {policy.total_gb:g} GB")
    click.echo(f"  Currently allocated: {policy.allocated_gb:g} GB")
    click.echo(f"  Remaining after create: {policy.remaining_gb:g} GB")

    if not yes:
        if not interactive:
            raise ClawboxError(
                "Confirmation required. Re-run with --yes in non-interactive mode.",
                kind="validation",
            )
        if not click.confirm("Create this instance?", default=True):
            click.echo("Cancelled.")
            return

    if ensure_default_image(ctx.runtime, ctx.config):
        click.echo(style_success(f"Built image {ctx.config.image_tag}."))

    create_instance(
        ctx.runtime,
        name=name,
        ram_gb=ram,
        image_tag=ctx.config.image_tag,
        mount_path=resolved_mount,
        keep_awake=not allow_sleep,
        preferences=ctx.preferences,
    )
    click.echo(style_success(f"Created instance '{name}'."))
    click.echo(f"Next: run `clawbox start {name}` then `clawbox shell {name}`.")
