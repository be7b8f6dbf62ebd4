"""Backoff, politeness delay and cancellation primitives shared by every
network-facing step of a crawl.

All waiting goes through ``CancellationToken.sleep`` so that a run-level
cancel interrupts a pending delay immediately instead of after it elapses.
"""
import asyncio
import random
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from loguru import logger

from probate_monitor.core.errors import CrawlCancelled

T = TypeVar("T")


class CancellationToken:
    """Run-scoped cancel signal with a cancellable sleep"""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CrawlCancelled("Crawl cancelled")

    async def sleep(self, seconds: float) -> None:
        """Suspend for ``seconds`` or until cancelled, whichever comes first"""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise CrawlCancelled("Crawl cancelled during delay")


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 2.0,
    token: Optional[CancellationToken] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Run ``operation`` up to ``max_attempts`` times with linear backoff.

    After failure number ``n`` (not the last) the call waits ``base_delay * n``
    seconds. The last error is re-raised once attempts are exhausted.
    Cancellation is never retried.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    token = token or CancellationToken()
    last_error = None
    for attempt in range(1, max_attempts + 1):
        token.raise_if_cancelled()
        try:
            return await operation()
        except CrawlCancelled:
            raise
        except retry_on as e:
            last_error = e
            logger.warning(f"{description} failed (attempt {attempt}/{max_attempts}): {e}")
            if attempt < max_attempts:
                await token.sleep(base_delay * attempt)
    raise last_error


async def polite_delay(
    min_ms: int,
    max_ms: int,
    token: Optional[CancellationToken] = None,
    rng: Optional[random.Random] = None,
) -> float:
    """Wait a uniformly sampled duration in [min_ms, max_ms]; returns the seconds waited"""
    if max_ms < min_ms:
        raise ValueError("max_ms must be >= min_ms")
    rng = rng or random
    delay_ms = rng.uniform(min_ms, max_ms)
    logger.debug(f"Polite delay {delay_ms / 1000:.1f}s")
    await (token or CancellationToken()).sleep(delay_ms / 1000)
    return delay_ms / 1000
