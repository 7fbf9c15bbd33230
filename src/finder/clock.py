"""Injectable time source for every component that does duration math.

Rate limiting, cache expiry, history retention and category cooldowns all
read time through a Clock so tests can advance it deterministically instead
of sleeping.
"""

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Abstract wall clock: epoch-seconds reads plus an awaitable sleep."""

    @abstractmethod
    def now(self) -> float:
        """Return the current instant as Unix epoch seconds."""
        ...

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for the given number of seconds."""
        ...


class SystemClock(Clock):
    """Real clock backed by time.time() and asyncio.sleep()."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
