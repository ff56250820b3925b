"""
Pacing primitives shared by the HubSpot pipelines.

Every timed pause (retry backoff, rate-limit spacing, campaign spacing) goes
through a ``Clock`` so tests can swap in a fake one and assert on the delays
without waiting.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional


class Clock:
    """Monotonic wall clock backed by asyncio.sleep."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


@dataclass(frozen=True)
class Backoff:
    """Capped exponential backoff: ``min(base * 2**(attempt-1), cap)``."""

    base: float
    cap: float

    def delay(self, attempt: int) -> float:
        if attempt < 1:
            return 0.0
        return min(self.base * (2 ** (attempt - 1)), self.cap)


class Throttle:
    """
    Enforce a minimum spacing between successive starts.

    The first ``wait()`` returns immediately; each later call sleeps for
    whatever is left of ``interval`` since the previous start, so time spent
    doing the work itself counts towards the spacing.
    """

    def __init__(self, interval: float, clock: Optional[Clock] = None):
        self.interval = max(0.0, float(interval))
        self.clock = clock or Clock()
        self._last_start: Optional[float] = None

    def remaining(self) -> float:
        if self._last_start is None:
            return 0.0
        elapsed = self.clock.monotonic() - self._last_start
        return max(0.0, self.interval - elapsed)

    async def wait(self) -> float:
        """Sleep until the next start is allowed; return the time slept."""
        delay = self.remaining()
        if delay > 0:
            await self.clock.sleep(delay)
        self._last_start = self.clock.monotonic()
        return delay
