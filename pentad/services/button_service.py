from __future__ import annotations
import asyncio
import logging
from typing import Optional

from ..core.timeutil import now_utc
from ..domain.gestures import GestureClassifier
from ..domain.interfaces import ButtonInput
from ..domain.models import Gesture, GestureEvent
from .event_bus import GestureBus


logger = logging.getLogger(__name__)


class ButtonService:
    """Samples the button every tick and publishes classified gestures."""

    def __init__(
        self,
        button: ButtonInput,
        classifier: GestureClassifier,
        bus: GestureBus,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._button = button
        self._classifier = classifier
        self._bus = bus
        self.tick_seconds = classifier.tick_seconds

        self._task: Optional[asyncio.Task] = None
        self._stop = stop_event if stop_event is not None else asyncio.Event()

        self.samples = 0
        self.read_errors = 0

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def start(self) -> None:
        """Open the input line and start sampling. ``ButtonInitError`` propagates."""
        self._button.start()
        self._classifier.reset()
        self._task = asyncio.create_task(self._run(), name="button_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    def sample(self) -> Optional[Gesture]:
        """Read one level, feed the classifier and publish a finished gesture."""
        try:
            level = self._button.read()
        except Exception as e:
            self.read_errors += 1
            logger.warning("Button read failed on %s: %s", self._button.input_id, e)
            return None
        self.samples += 1

        gesture = self._classifier.feed(level)
        if gesture is None:
            return None

        logger.info("Button event detected: %s", gesture.value)
        self._bus.publish(GestureEvent(gesture=gesture, ts_utc=now_utc()))
        return gesture

    async def _run(self) -> None:
        logger.info(
            "Button loop started (input=%s tick=%ss double=%d long=%d samples)",
            self._button.input_id,
            self.tick_seconds,
            self._classifier.double_click_samples,
            self._classifier.long_press_samples,
        )
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        try:
            while not self._stop.is_set():
                try:
                    self.sample()
                except Exception as e:
                    logger.exception("Button loop error: %s", e)

                # fixed cadence; if we fell behind, restart the schedule from now
                next_tick += self.tick_seconds
                delay = next_tick - loop.time()
                if delay < 0:
                    next_tick = loop.time()
                    delay = 0
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            try:
                self._button.close()
            except Exception as e:
                logger.warning("Failed to release button input: %s", e)
            logger.info("Button loop stopped")
