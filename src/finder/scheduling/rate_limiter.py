"""Outbound call throttle for the marketplace API.

acquire() never rejects a call, it only delays it:
  1. Minimum spacing since the last granted call (default 3s).
  2. Rolling hourly quota (default 80 calls): wait for the oldest in-hour
     call to leave the window.
  3. Rolling daily quota (default 4000 calls), same rule over 24h.

Callers are admitted through an asyncio.Lock, which wakes waiters in
arrival order, so grants are strictly FIFO. The call instant is recorded
only after every wait has resolved.
"""

import asyncio
from collections import deque

from finder.clock import Clock, SystemClock
from finder.config import RateLimitSettings
from finder.logging import get_logger
from finder.models import RateLimitStats

logger = get_logger(__name__)

_HOUR = 60 * 60
_DAY = 24 * _HOUR


class RateLimiter:
    """Spacing plus hourly/daily quota gate shared by every remote call.

    Args:
        settings: Spacing and quota configuration.
        clock: Time source (injected in tests).
    """

    def __init__(
        self,
        settings: RateLimitSettings,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings
        self._clock = clock or SystemClock()
        self._calls: deque[float] = deque()  # granted instants, oldest first
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Suspend until the next remote call may be issued, then record it."""
        async with self._lock:
            await self._wait_for_spacing()
            await self._wait_for_window(_HOUR, self._settings.max_calls_per_hour, "hourly")
            await self._wait_for_window(_DAY, self._settings.max_calls_per_day, "daily")

            now = self._clock.now()
            self._calls.append(now)
            self._last_call = now

    async def _wait_for_spacing(self) -> None:
        if self._last_call is None:
            return
        elapsed = self._clock.now() - self._last_call
        remaining = self._settings.min_interval_seconds - elapsed
        if remaining > 0:
            log = logger.info if remaining > 1 else logger.debug
            log("rate_limit_spacing_wait", wait_seconds=round(remaining, 2))
            await self._clock.sleep(remaining)

    async def _wait_for_window(self, window: float, limit: int, label: str) -> None:
        """Block while the trailing window already holds `limit` calls."""
        while True:
            now = self._clock.now()
            self._prune(now)
            in_window = [t for t in self._calls if t > now - window]
            if len(in_window) < limit:
                return
            wait = in_window[0] + window - now
            logger.info(
                f"{label}_quota_wait",
                calls_in_window=len(in_window),
                limit=limit,
                wait_minutes=round(wait / 60, 1),
            )
            await self._clock.sleep(wait)

    def _prune(self, now: float) -> None:
        # The daily window is the widest one anything reads.
        while self._calls and self._calls[0] <= now - _DAY:
            self._calls.popleft()

    def stats(self) -> RateLimitStats:
        """Return call counts for the trailing hour and day. No side effects."""
        now = self._clock.now()
        hourly = sum(1 for t in self._calls if t > now - _HOUR)
        daily = sum(1 for t in self._calls if t > now - _DAY)
        return RateLimitStats(
            calls_last_hour=hourly,
            calls_last_day=daily,
            max_per_hour=self._settings.max_calls_per_hour,
            max_per_day=self._settings.max_calls_per_day,
        )
