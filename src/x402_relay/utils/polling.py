"""
Bounded polling for idempotent reads (receipts, statuses).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollPolicy:
    """Fixed-interval, fixed-attempt polling policy.

    Each attempt waits ``interval`` seconds before calling the fetcher, so the
    ceiling is ``max_attempts * interval``.
    """

    max_attempts: int = 30
    interval: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")

    @property
    def ceiling(self) -> float:
        return self.max_attempts * self.interval


@dataclass
class PollOutcome(Generic[T]):
    """Result of a poll loop; ``result`` is None when the budget ran out."""

    result: Optional[T]
    attempts: int
    stopped: bool = False

    @property
    def found(self) -> bool:
        return self.result is not None


async def poll_until(
    fetch: Callable[[], Awaitable[Optional[T]]],
    policy: PollPolicy,
    *,
    stop: asyncio.Event | None = None,
    sleep: Sleep = asyncio.sleep,
    label: str = "poll",
) -> PollOutcome[T]:
    """Call *fetch* until it returns a non-None value or the policy is exhausted.

    The loop ends early when *stop* is set. Cancelling the surrounding task
    cancels the loop at its next await.
    """
    attempts = 0
    for attempt in range(1, policy.max_attempts + 1):
        if stop is not None and stop.is_set():
            logger.info("%s stopped after %d attempts", label, attempts)
            return PollOutcome(result=None, attempts=attempts, stopped=True)

        await sleep(policy.interval)
        attempts = attempt
        result = await fetch()
        if result is not None:
            logger.debug("%s succeeded on attempt %d", label, attempt)
            return PollOutcome(result=result, attempts=attempts)

    logger.info("%s exhausted %d attempts", label, attempts)
    return PollOutcome(result=None, attempts=attempts)
