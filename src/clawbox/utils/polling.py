"""Polling utilities.

The runtime exposes no push interface, so readiness (gateway health, an
instance IP appearing) is observed by polling under a deadline.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "wait_for_condition",
]

import time
from collections.abc import Callable

DEFAULT_POLL_INTERVAL_SECONDS = 0.2


def wait_for_condition(
    condition_fn: Callable[[], bool],
    timeout_seconds: float,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll condition_fn until it holds or the deadline passes.

    The condition is checked once more at the deadline, and the last sleep
    is clamped so the wait never overshoots timeout_seconds.

    Args:
        condition_fn: Probe returning True once ready.
        timeout_seconds: Overall budget.
        poll_interval: Pause between probes.
        sleep: Sleep function (tests pass a fake clock's).
        clock: Monotonic clock.

    Returns:
        True if the condition held before the deadline.
    """
    deadline = clock() + timeout_seconds
    while True:
        if condition_fn():
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        sleep(min(poll_interval, remaining))
