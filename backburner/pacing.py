"""
Rate Limiting and Pacing for MEXC REST Requests

Both limits are global across all symbols so that every request shares one
upstream budget:
1. At most `max_concurrent` requests in flight
2. At least `min_delay_ms` between the starts of consecutive requests

Requests beyond the concurrency cap wait in arrival order.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RateLimiter:
    """
    Bounds concurrency and spaces out request dispatches.

    Admission goes through an asyncio.Semaphore (FIFO wake-up), then through
    a dispatch lock that enforces the minimum spacing measured from the
    previous dispatch start.
    """

    def __init__(
        self,
        max_concurrent: int = 10,
        min_delay_ms: float = 100,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize rate limiter.

        Args:
            max_concurrent: Max requests in flight at once (default: 10)
            min_delay_ms: Min milliseconds between dispatches (default: 100)
            clock: Monotonic clock in seconds
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        if min_delay_ms < 0:
            raise ValueError(f"min_delay_ms must be >= 0, got {min_delay_ms}")

        self.max_concurrent = max_concurrent
        self.min_delay = min_delay_ms / 1000.0
        self._clock = clock

        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._dispatch_lock = asyncio.Lock()
        self._last_request_time: Optional[float] = None

        # Statistics
        self.in_flight = 0
        self.max_in_flight = 0
        self.total_requests = 0
        self.total_delays = 0
        self.total_delay_time = 0.0

    async def execute(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Run `func(*args, **kwargs)` once capacity and spacing allow.

        Exceptions raised by func propagate to the caller; the slot is
        released either way.
        """
        async with self._semaphore:
            await self._wait_for_dispatch_slot()

            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                return await func(*args, **kwargs)
            finally:
                self.in_flight -= 1

    async def _wait_for_dispatch_slot(self) -> float:
        """Sleep until min_delay has passed since the last dispatch, then claim it"""
        waited = 0.0

        async with self._dispatch_lock:
            if self._last_request_time is not None:
                while True:
                    remaining = self.min_delay - (self._clock() - self._last_request_time)
                    if remaining <= 0:
                        break
                    await asyncio.sleep(remaining)
                    waited += remaining

            self._last_request_time = self._clock()
            self.total_requests += 1

        if waited > 0:
            self.total_delays += 1
            self.total_delay_time += waited
            logger.debug(f"Pacing: waited {waited * 1000:.0f}ms before request")

        return waited

    def get_statistics(self) -> Dict[str, Any]:
        """Get pacing statistics"""
        return {
            'total_requests': self.total_requests,
            'total_delays': self.total_delays,
            'total_delay_time_seconds': self.total_delay_time,
            'average_delay_seconds': (
                self.total_delay_time / self.total_delays
                if self.total_delays > 0 else 0
            ),
            'in_flight': self.in_flight,
            'max_in_flight': self.max_in_flight,
            'max_concurrent': self.max_concurrent,
        }

    def reset_statistics(self):
        """Reset statistics counters"""
        self.total_requests = 0
        self.total_delays = 0
        self.total_delay_time = 0.0
        self.max_in_flight = self.in_flight
