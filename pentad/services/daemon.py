from __future__ import annotations
import asyncio
import logging
from typing import Optional

from ..domain.errors import ButtonInitError
from .button_service import ButtonService
from .dispatcher import ActionDispatcher
from .fan_service import FanService


logger = logging.getLogger(__name__)


class Daemon:
    """
    Owns the shared shutdown signal and the lifetime of the fan loop, the
    button loop and the dispatcher.

    The fan is required: a backend that fails to start aborts ``start()``.
    The button is optional: if its line cannot be opened the daemon keeps
    running without gesture detection.
    """

    def __init__(
        self,
        fan: FanService,
        button: Optional[ButtonService],
        dispatcher: Optional[ActionDispatcher],
        shutdown_event: asyncio.Event,
        shutdown_timeout_seconds: float = 5.0,
    ) -> None:
        self.fan = fan
        self.button = button
        self.dispatcher = dispatcher
        self.shutdown_event = shutdown_event
        self.shutdown_timeout_seconds = shutdown_timeout_seconds
        self.button_enabled = False

    def disable_history(self) -> None:
        """Detach the repository; the loops keep running without recording."""
        self.fan.repo = None
        if self.dispatcher is not None:
            self.dispatcher.repo = None

    async def start(self) -> None:
        await self.fan.start()
        logger.info("Fan control started")

        if self.button is not None:
            try:
                await self.button.start()
                self.button_enabled = True
                logger.info("Button watcher started")
            except ButtonInitError as e:
                logger.warning("Button disabled: %s", e)
        else:
            logger.info("Top board not present, skipping button watcher")

        if self.dispatcher is not None and self.button_enabled:
            await self.dispatcher.start()

    def _tasks(self) -> list[asyncio.Task]:
        tasks = [self.fan.task]
        if self.button_enabled and self.button is not None:
            tasks.append(self.button.task)
        if self.dispatcher is not None:
            tasks.append(self.dispatcher.task)
        return [t for t in tasks if t is not None and not t.done()]

    async def stop(self) -> bool:
        """Signal shutdown and wait for every loop; False if the timeout hit."""
        logger.info("Initiating graceful shutdown...")
        self.shutdown_event.set()

        tasks = self._tasks()
        if not tasks:
            return True

        _, pending = await asyncio.wait(tasks, timeout=self.shutdown_timeout_seconds)
        if pending:
            names = ", ".join(t.get_name() for t in pending)
            logger.error(
                "Shutdown timed out after %ss waiting for: %s",
                self.shutdown_timeout_seconds, names,
            )
            for t in pending:
                t.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            return False

        logger.info("Shutdown complete")
        return True
