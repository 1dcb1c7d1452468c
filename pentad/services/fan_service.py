from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..core.timeutil import monotonic, now_utc
from ..domain.controller import FanController
from ..domain.errors import PwmBackendError, ThermalUnavailableError
from ..domain.interfaces import PwmBackend, Repository
from ..domain.models import DutyChange
from ..domain.policy import FAN_OFF_DUTY, fan_speed
from .thermal_cache import ThermalCache


logger = logging.getLogger(__name__)

# Duty bounds reported as "full speed" / "off" in the logs
LOW_DUTY_LOG = 0.01
HIGH_DUTY_LOG = 0.99


@dataclass
class FanLiveState:
    celsius: Optional[float] = None
    sensor_id: Optional[str] = None
    target_duty: Optional[float] = None
    duty: Optional[float] = None
    running: bool = True
    last_error: Optional[str] = None
    writes: int = 0
    write_failures: int = 0


class FanService:
    def __init__(
        self,
        backend: PwmBackend,
        cache: ThermalCache,
        controller: FanController,
        repo: Optional[Repository] = None,
        interval_seconds: float = 1.0,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._controller = controller
        self.repo = repo
        self.interval_seconds = interval_seconds

        self._task: Optional[asyncio.Task] = None
        self._stop = stop_event if stop_event is not None else asyncio.Event()

        self.live = FanLiveState(running=controller.running)

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def backend_id(self) -> str:
        return self._backend.backend_id

    async def start(self) -> None:
        """Initialize the backend and start the loop. Backend failures propagate."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._backend.start)
        self._task = asyncio.create_task(self._run(), name="fan_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def tick(self) -> None:
        loop = asyncio.get_running_loop()

        # 1) Temperature (cached)
        try:
            reading = await self._cache.get()
        except ThermalUnavailableError as e:
            self.live.last_error = str(e)
            logger.warning("Skipping fan update: %s", e)
            return
        self.live.celsius = reading.celsius
        self.live.sensor_id = reading.sensor_id

        # 2) Target duty
        target = self._controller.target_duty(reading.celsius)
        self.live.target_duty = target
        self.live.running = self._controller.running

        # 3) Debounce
        if not self._controller.needs_write(target):
            return
        now = monotonic()
        if not self._controller.retry_due(target, now):
            return

        # 4) Write
        try:
            await loop.run_in_executor(None, self._backend.set_duty, target)
        except PwmBackendError as e:
            self.live.write_failures += 1
            self.live.last_error = str(e)
            if self._controller.mark_failed(target, now):
                logger.warning("Failed to set fan duty %.3f: %s", target, e)
            else:
                logger.debug(
                    "Fan duty %.3f still failing (attempt %d): %s",
                    target, self._controller.state.failures, e,
                )
            return

        self._controller.mark_written(target)
        self.live.duty = target
        self.live.writes += 1
        self.live.last_error = None

        if target <= LOW_DUTY_LOG:
            logger.info("Fan set to full speed (%.1fC, duty %.3f)", reading.celsius, target)
        elif target >= HIGH_DUTY_LOG:
            logger.info("Fan turned off (%.1fC, duty %.3f)", reading.celsius, target)
        else:
            logger.info("Fan duty set to %.3f (%.1fC)", target, reading.celsius)

        if self.repo is not None:
            try:
                await self.repo.insert_duty_change(
                    DutyChange(
                        ts_utc=now_utc(),
                        celsius=reading.celsius,
                        duty=target,
                        fan_speed=fan_speed(target),
                        running=self._controller.running,
                        backend_id=self._backend.backend_id,
                    )
                )
            except Exception as e:
                logger.warning("Failed to record duty change: %s", e)

    async def _shutdown_backend(self) -> None:
        # blocking: joins the software PWM thread or writes sysfs
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._backend.shutdown)
        except Exception as e:
            logger.exception("Fan backend shutdown failed: %s", e)
        self.live.duty = FAN_OFF_DUTY

    async def _run(self) -> None:
        logger.info(
            "Fan loop started (backend=%s interval=%ss)",
            self._backend.backend_id,
            self.interval_seconds,
        )

        try:
            while not self._stop.is_set():
                try:
                    await self.tick()
                except Exception as e:
                    logger.exception("Fan loop error: %s", e)

                # sleep with cancellation awareness
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self._shutdown_backend()
            logger.info("Fan loop stopped")
