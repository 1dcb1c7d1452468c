from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..domain.models import GestureEvent

logger = logging.getLogger(__name__)


class GestureBus:
    """Bounded FIFO of gesture events. A full bus drops the newest event."""

    def __init__(self, maxsize: int = 5) -> None:
        self._queue: asyncio.Queue[GestureEvent] = asyncio.Queue(maxsize=maxsize)
        self.published = 0
        self.dropped = 0
        self.last_event: Optional[GestureEvent] = None

    def publish(self, event: GestureEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Gesture bus full (%d), dropping %s", self._queue.maxsize, event.gesture.value
            )
            return False
        self.published += 1
        self.last_event = event
        return True

    async def get(self) -> GestureEvent:
        return await self._queue.get()

    def get_nowait(self) -> GestureEvent:
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
