"""
Sliding-window Rate Limiter

Advisory throttle for outbound calls: at most max_requests per window.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Counter + window-start limiter.

    acquire() grants immediately while the window has quota left. Once the
    quota is spent it sleeps for the remainder of the window, then starts a
    new window. The whole check-then-act runs under a lock, so waiters are
    served in FIFO order and never act on a stale counter.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max_requests
        self._window = window_seconds
        self._name = name
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._count = 0
        self._window_start = clock()

    @property
    def count(self) -> int:
        """Requests granted in the current window."""
        return self._count

    async def acquire(self) -> None:
        async with self._lock:
            now = self._clock()
            if now - self._window_start > self._window:
                self._count = 0
                self._window_start = now

            if self._count >= self._max_requests:
                wait = self._window - (now - self._window_start)
                if wait > 0:
                    logger.debug(
                        "Rate limit reached, waiting",
                        extra={"limiter": self._name, "wait_seconds": round(wait, 3)},
                    )
                    await self._sleep(wait)
                self._count = 0
                self._window_start = self._clock()

            self._count += 1

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *_: object) -> None:
        return None
