"""
Rate Gate Module
================

Throttles calls to quota-limited external services: a hard daily quota
for the price API and a minimum-interval gate for the search agent.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date
from typing import Callable

logger = logging.getLogger(__name__)


class DailyQuotaGate:
    """
    Hard daily call quota, reset at the local-day boundary.

    Callers check ``try_acquire()`` before each call and fall back
    immediately when it returns False instead of waiting for tomorrow.
    """

    def __init__(
        self,
        daily_limit: int,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.daily_limit = daily_limit
        self._today = today
        self._day = today()
        self._count = 0

    def _roll_over(self) -> None:
        current = self._today()
        if current != self._day:
            self._day = current
            self._count = 0

    def try_acquire(self) -> bool:
        """
        Consume one call from today's quota.

        Returns:
            True if the call may proceed, False if the quota is exhausted
        """
        self._roll_over()
        if self._count >= self.daily_limit:
            return False
        self._count += 1
        return True

    def remaining(self) -> int:
        """Calls left today."""
        self._roll_over()
        return max(0, self.daily_limit - self._count)


class IntervalGate:
    """
    Minimum spacing between calls.

    Unlike the daily quota this never refuses a call; it delays the
    caller until the interval since the previous slot has elapsed.
    """

    def __init__(
        self,
        requests_per_second: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive, got {requests_per_second}")
        self.min_interval = 1.0 / requests_per_second
        self._clock = clock
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    async def wait_for_slot(self) -> None:
        """
        Wait until the next call is allowed.

        Slots are handed out in order, so concurrent callers are spaced
        by ``min_interval`` from each other.
        """
        async with self._lock:
            now = self._clock()
            wait_time = self._next_slot - now
            if wait_time > 0:
                logger.debug(f"Rate gate waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)
                now = self._clock()
            self._next_slot = now + self.min_interval
