"""In-memory sliding window rate limiter for document-conversion uploads."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger()

ClockFunc = Callable[[], float]
SleepFunc = Callable[[float], Awaitable[None]]

# Extra wait after the oldest call leaves the window.
WAIT_MARGIN_SECONDS = 0.1


class SlidingWindowRateLimiter:
    """At most ``limit`` calls in any trailing ``window_seconds``.

    One instance is shared by every upload of a run. Callers over
    capacity suspend in :meth:`acquire` until the oldest timestamp
    exits the window. Single-process only.

    Args:
        limit: Max calls per window.
        window_seconds: Window length.
        clock: Monotonic clock; injectable for tests.
        sleep: Async sleep; injectable for tests.
    """

    def __init__(
        self,
        limit: int = 20,
        window_seconds: float = 60.0,
        *,
        clock: ClockFunc = time.monotonic,
        sleep: SleepFunc | None = None,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def in_window(self) -> int:
        """Calls currently counted against the window."""
        self._evict(self._clock())
        return len(self._timestamps)

    def check(self) -> tuple[bool, float]:
        """Record a call if allowed.

        Returns:
            (allowed, retry_after_seconds).
            If allowed: (True, 0.0).
            If denied: (False, seconds_until_oldest_expires).
        """
        now = self._clock()
        self._evict(now)
        if len(self._timestamps) >= self._limit:
            retry_after = self._timestamps[0] + self._window - now
            return False, max(retry_after, 0.0)
        self._timestamps.append(now)
        return True, 0.0

    async def acquire(self) -> None:
        """Wait until a slot is free, then record the call."""
        async with self._lock:
            while True:
                allowed, retry_after = self.check()
                if allowed:
                    return
                wait = retry_after + WAIT_MARGIN_SECONDS
                logger.info(
                    "conversion_rate_limited",
                    wait_seconds=round(wait, 2),
                    limit=self._limit,
                    window_seconds=self._window,
                )
                await self._sleep(wait)

    def _evict(self, now: float) -> None:
        cutoff = now - self._window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()
