"""
Cooldown Gate

Enforces a minimum idle interval between whole extraction runs to stay
inside the upstream free-tier quota.
"""

import asyncio
import logging
import math
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from ..config import COOLDOWN_SECONDS
from ..models import ExtractionProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ExtractionProgress], None]


class CooldownGate:
    """
    Holds the end time of the last run and delays the next one if needed.

    Args:
        cooldown: Minimum seconds between the end of one run and the start of the next
        clock: Monotonic clock returning seconds
        sleep: Coroutine function used to wait
    """

    def __init__(
        self,
        cooldown: float = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cooldown = cooldown
        self._clock = clock
        self._sleep = sleep
        self.last_end: Optional[float] = None

    def remaining(self) -> float:
        """Seconds left before a new run may start (0 when allowed now)."""
        if self.last_end is None:
            return 0.0
        elapsed = self._clock() - self.last_end
        return max(0.0, self.cooldown - elapsed)

    async def acquire(self, on_progress: Optional[ProgressCallback] = None) -> float:
        """
        Wait until a new run is allowed.

        Returns:
            The number of seconds waited
        """
        wait = self.remaining()
        if wait <= 0:
            return 0.0

        seconds = math.ceil(wait)
        logger.info("Cooldown active, waiting %.2fs before starting", wait)
        if on_progress is not None:
            on_progress(ExtractionProgress(
                0,
                f"To help the environment and keep this app free, please wait {seconds} "
                f"second{'s' if seconds != 1 else ''} before starting a new search.",
            ))
        await self._sleep(wait)
        return wait

    def release(self):
        """Mark the current run as finished."""
        self.last_end = self._clock()

    @asynccontextmanager
    async def hold(self, on_progress: Optional[ProgressCallback] = None):
        """Acquire the gate for the duration of a run; release exactly once on exit."""
        try:
            await self.acquire(on_progress)
            yield self
        finally:
            self.release()
