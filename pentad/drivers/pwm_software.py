from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

from ..domain.errors import PwmBackendError
from ..domain.policy import clamp_duty
from .gpio import parse_line, pin_factory_for

logger = logging.getLogger(__name__)

# Fractions at or beyond these hold the line steady instead of toggling
LOW_CUTOFF = 0.01
HIGH_CUTOFF = 0.99
RESOLUTION = 100


class OutputLine(Protocol):
    def on(self) -> None:
        ...

    def off(self) -> None:
        ...

    def close(self) -> None:
        ...


class DutySlot:
    """Single-slot latest-value handoff; a newer value replaces an unread one."""

    def __init__(self, initial: float = 0.0) -> None:
        self._lock = threading.Lock()
        self._value = initial

    def put(self, value: float) -> None:
        with self._lock:
            self._value = value

    def get(self) -> float:
        with self._lock:
            return self._value


def cycle_plan(period_s: float, fraction: float, resolution: int = RESOLUTION) -> tuple[float, float]:
    """Return (high_s, low_s) for one cycle, quantized to period/resolution steps."""
    fraction = clamp_duty(fraction)
    if fraction <= LOW_CUTOFF:
        return 0.0, period_s
    if fraction >= HIGH_CUTOFF:
        return period_s, 0.0
    steps = int(round(fraction * resolution))
    high = period_s * steps / resolution
    return high, period_s - high


class SoftwarePwmBackend:
    """Bit-banged PWM on a GPIO output line, driven by its own thread."""

    def __init__(
        self,
        line: str | int,
        chip: str | None = None,
        period_s: float = 0.025,
        pin_factory=None,
        device: Optional[OutputLine] = None,
        resolution: int = RESOLUTION,
    ) -> None:
        self.line = line
        self.chip = chip
        self.period_s = float(period_s)
        self.resolution = resolution
        self.backend_id = f"{chip or 'gpio'}/{line}"
        self._pin_factory = pin_factory
        self._device = device
        self._slot = DutySlot(0.0)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._level = False
        self.cycles = 0

    @property
    def duty(self) -> float:
        return self._slot.get()

    def start(self) -> None:
        if self._device is None:
            try:
                from gpiozero import DigitalOutputDevice

                self._device = DigitalOutputDevice(
                    parse_line(self.line),
                    initial_value=False,
                    pin_factory=pin_factory_for(self.chip, self._pin_factory),
                )
            except Exception as e:
                raise PwmBackendError(f"Failed to open fan line {self.backend_id}: {e}") from e
        self._drive(False)

        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="software_pwm", daemon=True)
        self._thread.start()
        logger.info(
            "Software PWM started on %s (period=%.3fs)", self.backend_id, self.period_s
        )

    def set_duty(self, fraction: float) -> None:
        if self._thread is None or not self._thread.is_alive():
            raise PwmBackendError(f"Software PWM on {self.backend_id} is not running")
        self._slot.put(clamp_duty(fraction))
        logger.debug("Software PWM duty queued: %.3f", fraction)

    def _drive(self, high: bool) -> None:
        if high == self._level:
            return
        if high:
            self._device.on()
        else:
            self._device.off()
        self._level = high

    def _run(self) -> None:
        while not self._stop.is_set():
            high_s, low_s = cycle_plan(self.period_s, self._slot.get(), self.resolution)
            self.cycles += 1
            try:
                if high_s > 0:
                    self._drive(True)
                    if self._stop.wait(high_s):
                        break
                if low_s > 0:
                    self._drive(False)
                    if self._stop.wait(low_s):
                        break
            except Exception as e:
                logger.exception("Software PWM write failed on %s: %s", self.backend_id, e)
                if self._stop.wait(self.period_s):
                    break

    def shutdown(self) -> None:
        logger.info("Stopping software PWM on %s", self.backend_id)
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.period_s + 0.5)
            if self._thread.is_alive():
                logger.warning("Software PWM thread on %s did not exit", self.backend_id)
            self._thread = None
        if self._device is None:
            return
        try:
            self._device.off()
            self._level = False
        except Exception as e:
            logger.warning("Failed to drive %s low: %s", self.backend_id, e)
        try:
            self._device.close()
        except Exception as e:
            logger.warning("Failed to release %s: %s", self.backend_id, e)
