from __future__ import annotations

import logging

from ..domain.errors import ButtonInitError
from .gpio import parse_line, pin_factory_for

logger = logging.getLogger(__name__)


class GpioButtonInput:
    """Raw level of the top-board button line (pull-up, pressed = low)."""

    def __init__(self, line: str | int, chip: str | None = None, pin_factory=None) -> None:
        self.line = line
        self.chip = chip
        self.input_id = f"{chip or 'gpio'}/{line}"
        self._pin_factory = pin_factory
        self._device = None

    def start(self) -> None:
        try:
            from gpiozero import DigitalInputDevice

            self._device = DigitalInputDevice(
                parse_line(self.line),
                pull_up=True,
                pin_factory=pin_factory_for(self.chip, self._pin_factory),
            )
        except Exception as e:
            raise ButtonInitError(f"Failed to open button line {self.input_id}: {e}") from e
        logger.info("Button input ready on %s", self.input_id)

    def read(self) -> bool:
        if self._device is None:
            raise RuntimeError(f"Button input {self.input_id} not started")
        # pin.state is the electrical level, independent of active_state
        return bool(self._device.pin.state)

    def close(self) -> None:
        if self._device is not None:
            self._device.close()
            self._device = None
