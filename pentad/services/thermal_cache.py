from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..core.timeutil import monotonic, now_utc
from ..domain.errors import ThermalUnavailableError
from ..domain.models import ThermalReading
from ..sensors.base import ThermalSensor

logger = logging.getLogger(__name__)


class ThermalCache:
    """
    Caches the last temperature so the 1 s fan loop does not hit the sensor
    every tick.

    A reading younger than ``refresh_seconds`` is returned as is. Older ones
    trigger a refresh; if the sensor fails the cached reading is still used
    while it is younger than ``ttl_seconds``. Past the TTL a failed refresh
    raises ``ThermalUnavailableError``.
    """

    def __init__(
        self,
        sensor: ThermalSensor,
        ttl_seconds: float = 60.0,
        refresh_seconds: Optional[float] = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._sensor = sensor
        self.ttl_seconds = ttl_seconds
        self.refresh_seconds = min(refresh_seconds or ttl_seconds, ttl_seconds)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._reading: Optional[ThermalReading] = None
        self.last_error: Optional[str] = None

    @property
    def reading(self) -> Optional[ThermalReading]:
        return self._reading

    def age(self, reading: ThermalReading) -> float:
        return self._clock() - reading.captured_mono

    def _usable(self, reading: Optional[ThermalReading]) -> bool:
        return reading is not None and self.age(reading) < self.ttl_seconds

    def invalidate(self) -> None:
        self._reading = None

    async def get(self) -> ThermalReading:
        cached = self._reading
        if cached is not None and self.age(cached) < self.refresh_seconds:
            return cached

        # Someone else is refreshing: don't queue behind them if we have a value
        if self._lock.locked() and self._usable(cached):
            return cached

        async with self._lock:
            cached = self._reading
            if cached is not None and self.age(cached) < self.refresh_seconds:
                return cached
            return await self._refresh(cached)

    async def _refresh(self, cached: Optional[ThermalReading]) -> ThermalReading:
        loop = asyncio.get_running_loop()
        try:
            celsius = await loop.run_in_executor(None, self._sensor.read)
        except Exception as e:
            self.last_error = str(e)
            if self._usable(cached):
                logger.debug(
                    "Temperature refresh failed, reusing %.1fC from %.0fs ago: %s",
                    cached.celsius, self.age(cached), e,
                )
                return cached
            raise ThermalUnavailableError(
                f"Temperature unavailable from {self._sensor.sensor_id}: {e}"
            ) from e

        self.last_error = None
        reading = ThermalReading(
            celsius=float(celsius),
            captured_at=now_utc(),
            sensor_id=self._sensor.sensor_id,
            captured_mono=self._clock(),
        )
        self._reading = reading
        logger.debug("Temperature refreshed: %.1fC (sensor=%s)", reading.celsius, reading.sensor_id)
        return reading
