"""Bounded worker slots with polite request spacing."""

import asyncio
from contextlib import asynccontextmanager
from time import monotonic
from typing import AsyncIterator


class RateLimiter:
    """Rate limiter with semaphore-based concurrency and staggered delays.

    Ensures at most ``max_concurrent`` workers run at once and that new
    workers start at least ``delay_seconds`` apart.
    """

    _MAX_DELAY = 5.0  # Upper bound for adaptive back-off
    _BACKOFF_FLOOR = 0.25  # Starting delay when backing off from zero

    def __init__(self, delay_seconds: float = 0.0, max_concurrent: int = 8):
        self.delay_seconds = delay_seconds
        self.max_concurrent = max_concurrent
        self._original_delay = delay_seconds
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._last_start_time: float = 0.0
        self._lock = asyncio.Lock()
        self.backoff_count: int = 0
        self.peak_delay: float = delay_seconds

    async def acquire(self) -> None:
        """Acquire a worker slot, then enforce minimum delay between starts."""
        await self._semaphore.acquire()
        try:
            async with self._lock:
                wait_time = self.delay_seconds - (monotonic() - self._last_start_time)
                if wait_time > 0:
                    await asyncio.sleep(wait_time)
                self._last_start_time = monotonic()
        except BaseException:
            self._semaphore.release()
            raise

    def release(self) -> None:
        """Release a worker slot."""
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def back_off(self) -> None:
        """Double the delay between worker starts (capped at _MAX_DELAY).

        Called when the site answers 429 so all subsequent fetches slow down.
        """
        self.delay_seconds = min(max(self.delay_seconds * 2, self._BACKOFF_FLOOR), self._MAX_DELAY)
        self.backoff_count += 1
        self.peak_delay = max(self.peak_delay, self.delay_seconds)

    @property
    def is_throttled(self) -> bool:
        """Whether the current delay exceeds the originally configured value."""
        return self.delay_seconds > self._original_delay

    def ease_off(self) -> None:
        """Halve the delay back toward the original configured value."""
        if not self.is_throttled:
            return
        halved = self.delay_seconds / 2
        self.delay_seconds = halved if halved > self._BACKOFF_FLOOR else self._original_delay
        self.delay_seconds = max(self.delay_seconds, self._original_delay)
