from __future__ import annotations
import asyncio
import logging
from typing import Callable, Optional

from ..domain.interfaces import Repository
from ..domain.models import GestureEvent, GestureRecord
from .event_bus import GestureBus


logger = logging.getLogger(__name__)

ActionHandler = Callable[[], None]


class ActionDispatcher:
    """
    Turns gestures from the bus into named actions ("slider", "switch", ...)
    and runs whichever handler is registered for that name.
    """

    def __init__(
        self,
        bus: GestureBus,
        key_actions: dict[str, str],
        repo: Optional[Repository] = None,
        stop_event: Optional[asyncio.Event] = None,
        poll_seconds: float = 0.25,
    ) -> None:
        self._bus = bus
        self._key_actions = dict(key_actions)
        self.repo = repo
        self._handlers: dict[str, ActionHandler] = {}
        self.poll_seconds = poll_seconds

        self._task: Optional[asyncio.Task] = None
        self._stop = stop_event if stop_event is not None else asyncio.Event()

        self.last_action: Optional[str] = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def register(self, action: str, handler: ActionHandler) -> None:
        self._handlers[action] = handler

    def action_for(self, event: GestureEvent) -> str:
        return self._key_actions.get(event.gesture.value, "none")

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="dispatcher_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def dispatch(self, event: GestureEvent) -> str:
        action = self.action_for(event)
        self.last_action = action
        logger.info("Button event: %s -> action: %s", event.gesture.value, action)

        if action != "none":
            handler = self._handlers.get(action)
            if handler is None:
                logger.info("No handler registered for action '%s'", action)
            else:
                try:
                    handler()
                except Exception as e:
                    logger.exception("Action '%s' failed: %s", action, e)

        if self.repo is not None:
            try:
                await self.repo.insert_gesture(
                    GestureRecord(ts_utc=event.ts_utc, gesture=event.gesture.value, action=action)
                )
            except Exception as e:
                logger.warning("Failed to record gesture: %s", e)
        return action

    async def _run(self) -> None:
        logger.info("Dispatcher started (actions=%s)", self._key_actions)
        while not self._stop.is_set():
            try:
                event = await asyncio.wait_for(self._bus.get(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                continue
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.exception("Dispatcher error: %s", e)
        logger.info("Dispatcher stopped")
