"""Bounded fixed-interval polling shared by the delivery strategies."""

import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def poll(
    check: Callable[[], Optional[T]],
    interval: float = 0.5,
    attempts: int = 20,
    sleep: Callable[[float], None] = time.sleep,
    wait_first: bool = True,
) -> Optional[T]:
    """
    Call ``check`` up to ``attempts`` times, ``interval`` seconds apart.

    Returns the first non-None value, or None once the attempts are exhausted.
    With ``wait_first`` the interval also elapses before the first check, which
    suits results that cannot be ready immediately (e.g. an in-flight request).
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(attempts):
        if wait_first or attempt > 0:
            sleep(interval)
        value = check()
        if value is not None:
            return value
    return None
