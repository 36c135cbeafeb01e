"""Async request limiter: bounded concurrency plus a minimum start interval."""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class RequestLimiter:
    """Throttle outbound calls to a rate-limited API.

    At most ``max_concurrent`` calls run at once, and consecutive call starts
    are spaced at least ``min_interval_seconds`` apart.  Waiting is done with
    ``asyncio.sleep`` so unrelated tasks keep running.

    Args:
        max_concurrent: Concurrent calls allowed.
        min_interval_seconds: Minimum gap between call starts.
    """

    def __init__(self, max_concurrent: int = 5, min_interval_seconds: float = 0.1) -> None:
        if max_concurrent <= 0:
            raise ValueError(f"max_concurrent must be positive, got {max_concurrent}")
        if min_interval_seconds < 0:
            raise ValueError(
                f"min_interval_seconds must be >= 0, got {min_interval_seconds}"
            )
        self.max_concurrent = max_concurrent
        self.min_interval_seconds = min_interval_seconds
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._start_lock = asyncio.Lock()
        self._last_start = float("-inf")

    async def _wait_for_slot(self) -> None:
        async with self._start_lock:
            delay = self._last_start + self.min_interval_seconds - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            self._last_start = time.monotonic()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one concurrency slot for the duration of the block."""
        async with self._semaphore:
            await self._wait_for_slot()
            yield
