"""Sliding-window rate limiting for fill-generation requests."""

import asyncio
import logging

from autofill.clock import Clock, SystemClock
from autofill.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """Per-key sliding-window rate limiter.

    Keeps request timestamps per operation key. A background task owned
    by the limiter sweeps entries older than ``max_age_ms`` so the ledger
    does not grow without bound. Construct one per orchestrator (or per
    test); there is no module-level state.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        max_age_ms: int | None = None,
        sweep_interval_ms: int | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            clock: Time source
            max_age_ms: Age after which timestamps are swept
            sweep_interval_ms: Interval of the sweep task
        """
        self.clock = clock or SystemClock()
        self._max_age = (max_age_ms or settings.rate_limit_max_age_ms) / 1000
        self._sweep_interval = (sweep_interval_ms or settings.rate_limit_cleanup_interval_ms) / 1000
        self._requests: dict[str, list[float]] = {}
        self._sweep_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweep_task is not None:
            return
        logger.info("Starting rate limiter sweep task")
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the sweep task and clear the ledger."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        self._requests.clear()

    def check_limit(self, key: str, max_requests: int, window_ms: int) -> bool:
        """Record a request for ``key`` if the window allows it.

        Args:
            key: Operation key
            max_requests: Requests allowed per window
            window_ms: Window length in ms

        Returns:
            True if the request is allowed, False if the limit is reached
        """
        now = self.clock.now()
        window = window_ms / 1000
        recent = [t for t in self._requests.get(key, []) if now - t < window]

        if len(recent) >= max_requests:
            self._requests[key] = recent
            return False

        recent.append(now)
        self._requests[key] = recent
        return True

    def remaining_time(self, key: str, window_ms: int) -> float:
        """Seconds until the oldest request for ``key`` leaves the window."""
        requests = self._requests.get(key)
        if not requests:
            return 0.0
        return max(0.0, window_ms / 1000 - (self.clock.now() - min(requests)))

    def sweep(self, max_age_ms: int | None = None) -> int:
        """Drop timestamps older than the maximum age.

        Returns:
            Number of keys removed entirely
        """
        max_age = max_age_ms / 1000 if max_age_ms is not None else self._max_age
        now = self.clock.now()
        expired = []

        for key, timestamps in self._requests.items():
            valid = [t for t in timestamps if now - t < max_age]
            if valid:
                self._requests[key] = valid
            else:
                expired.append(key)

        for key in expired:
            del self._requests[key]

        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired keys")
        return len(expired)

    def get_stats(self) -> dict[str, int]:
        """Get ledger statistics for monitoring."""
        return {
            "total_keys": len(self._requests),
            "total_requests": sum(len(t) for t in self._requests.values()),
        }

    async def _sweep_loop(self) -> None:
        """Background task that sweeps the ledger periodically."""
        while True:
            try:
                await asyncio.sleep(self._sweep_interval)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in rate limiter sweep loop: {e}")
