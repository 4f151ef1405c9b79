"""
In-memory sliding window limiter for chat commands.

Tracks exact request timestamps per key. If limit is 5 per 60s and a sender used
all 5 at 10:00:00, the next command is allowed from 10:01:00 onwards.
"""

import asyncio
import math
import time
from collections import deque
from collections.abc import Callable

from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SWEEP_INTERVAL_SECONDS = 300


class CommandRateLimiter:
    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def _trim(self, hits: deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def allow(self, key: str) -> tuple[bool, int]:
        """
        Record one request for `key`.

        Returns:
            (allowed, retry_in_seconds); retry is 0 when allowed and at least 1 otherwise
        """
        now = self._clock()
        hits = self._hits.setdefault(key, deque())
        self._trim(hits, now)

        if len(hits) >= self.limit:
            retry_in = max(1, math.ceil(hits[0] + self.window_seconds - now))
            logger.info("Command rate limit reached", key=key, retry_in=retry_in)
            return False, retry_in

        hits.append(now)
        return True, 0

    def cleanup(self) -> int:
        """Drop keys with no requests inside the window. Returns how many were removed."""
        now = self._clock()
        stale = []
        for key, hits in self._hits.items():
            self._trim(hits, now)
            if not hits:
                stale.append(key)
        for key in stale:
            del self._hits[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._hits)

    async def run_sweeper(
        self, stop: asyncio.Event, interval: float = SWEEP_INTERVAL_SECONDS
    ) -> None:
        """Periodically call `cleanup` until `stop` is set."""
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                removed = self.cleanup()
                if removed:
                    logger.debug("Rate limiter sweep", removed=removed, remaining=len(self))
