"""Bounded fixed-delay retry for fallible async operations.

Wraps every remote registry call and every plugin module load.
Discovery scans and interaction routing are never retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between.

    Attributes:
        attempts: Total number of attempts, including the first one.
        delay: Seconds to wait between attempts. Fixed, no growth or jitter.
    """

    attempts: int = 3
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            msg = f"attempts must be at least 1, got {self.attempts}"
            raise ValueError(msg)
        if self.delay < 0:
            msg = f"delay must not be negative, got {self.delay}"
            raise ValueError(msg)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    sleep: SleepFn = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run *operation* until it succeeds or the policy is exhausted.

    The last exception is re-raised unchanged once no attempts remain.
    Each retry is logged as a warning before the delay.
    """
    remaining = policy.attempts
    while True:
        try:
            return await operation()
        except Exception as exc:
            remaining -= 1
            if remaining <= 0:
                raise
            logger.warning(
                "Retrying %s after error: %s (%d attempts remaining)",
                label,
                exc,
                remaining,
            )
            await sleep(policy.delay)
