"""Retry helper with linear backoff for best-effort async calls."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[T]):
    succeeded: bool
    attempts: int
    result: T | None = None
    last_error: BaseException | None = None


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    label: str = "operation",
) -> RetryOutcome[T]:
    """Run `operation` until it succeeds or attempts run out.

    The n-th retry waits `base_delay * n` seconds. Errors listed in
    `exceptions` are reported in the outcome instead of being raised.

    Example:
        outcome = await retry_with_backoff(lambda: notifier.send(intent), label="notify")
        if not outcome.succeeded:
            logger.error("gave up: %s", outcome.last_error)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: BaseException | None = None
    for attempt in range(max_attempts):
        if attempt > 0:
            await sleep(base_delay * attempt)
        try:
            result = await operation()
        except exceptions as e:
            last_error = e
            logger.warning(f"{label} attempt {attempt + 1}/{max_attempts} failed: {e}")
            continue
        return RetryOutcome(succeeded=True, attempts=attempt + 1, result=result)

    return RetryOutcome(succeeded=False, attempts=max_attempts, last_error=last_error)
