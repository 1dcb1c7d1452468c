"""
Stand-in temperature source for ``mode=sim``.

Holds a fixed temperature, or heats/cools linearly toward a target so the fan
walks through its levels. Reads can be made to fail for a number of reads or
until ``recover()``, which drives the thermal cache's stale-reading and TTL
paths without hardware.
"""
from __future__ import annotations

from threading import Lock
from typing import Callable, Optional

from ..core.timeutil import monotonic
from .base import ThermalSensor


class SimulatedThermalSensor(ThermalSensor):
    def __init__(
        self,
        sensor_id: str = "temp_sim",
        celsius: float = 38.0,
        clock: Callable[[], float] = monotonic,
    ):
        self._sensor_id = sensor_id
        self._lock = Lock()
        self._clock = clock

        self._celsius = float(celsius)
        self._target: Optional[float] = None
        self._rate = 0.0  # C per second
        self._since = clock()

        # None = fail until recover()
        self._failures_left: Optional[int] = 0

        self.reads = 0
        self.failed_reads = 0

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def _current(self, now: float) -> float:
        if self._target is None:
            return self._celsius
        step = self._rate * max(0.0, now - self._since)
        if self._celsius < self._target:
            return min(self._celsius + step, self._target)
        return max(self._celsius - step, self._target)

    def set_manual(self, celsius: float) -> None:
        with self._lock:
            self._celsius = float(celsius)
            self._target = None

    def ramp_to(self, target: float, rate_c_per_s: float) -> None:
        if rate_c_per_s <= 0:
            raise ValueError(f"rate must be positive, got {rate_c_per_s}")
        with self._lock:
            now = self._clock()
            self._celsius = self._current(now)
            self._since = now
            self._target = float(target)
            self._rate = float(rate_c_per_s)

    def fail_reads(self, count: Optional[int] = None) -> None:
        if count is not None and count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        with self._lock:
            self._failures_left = count

    def recover(self) -> None:
        with self._lock:
            self._failures_left = 0

    def status(self) -> dict:
        with self._lock:
            return {
                "celsius": round(self._current(self._clock()), 2),
                "target": self._target,
                "rate_c_per_s": self._rate if self._target is not None else None,
                "failing": self._failures_left is None or self._failures_left > 0,
                "failures_left": self._failures_left,
                "reads": self.reads,
                "failed_reads": self.failed_reads,
            }

    def read(self) -> float:
        with self._lock:
            self.reads += 1
            if self._failures_left is None or self._failures_left > 0:
                if self._failures_left is not None:
                    self._failures_left -= 1
                self.failed_reads += 1
                raise OSError(f"Simulated read failure on {self._sensor_id}")
            return self._current(self._clock())
