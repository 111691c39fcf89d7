"""Time source used for backoff, settle delays and rate limiting."""

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Injectable time source."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """Clock backed by the event loop and the monotonic clock."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
