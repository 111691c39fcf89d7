"""Best-effort progress notifications for long-running operations.

Listeners are fire-and-forget: a channel without listeners is valid, and
a failing listener is logged and never interrupts the caller.
"""

import logging
from collections.abc import Callable, Coroutine
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

API_RETRY_PROGRESS = "API_RETRY_PROGRESS"


class ProgressStage(str, Enum):
    """Point of the retry loop an event was emitted from."""

    ATTEMPT = "attempt"
    WAITING = "waiting"


class ProgressEvent(BaseModel):
    """Progress notification for one generate-fills call."""

    type: str = API_RETRY_PROGRESS
    stage: ProgressStage
    attempt: int
    max_attempts: int
    wait_ms: int = 0
    reason: str | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


ProgressListener = Callable[[ProgressEvent], Coroutine[Any, Any, None]]


class ProgressChannel:
    """Fan-out of progress events to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[ProgressListener] = []

    def register(self, listener: ProgressListener) -> None:
        """Register a listener.

        Args:
            listener: Async function called with every event
        """
        self._listeners.append(listener)

    def unregister(self, listener: ProgressListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def has_listeners(self) -> bool:
        return bool(self._listeners)

    async def publish(self, event: ProgressEvent) -> None:
        """Deliver an event to every listener, ignoring delivery failures."""
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.debug(f"Progress listener failed: {e}")
