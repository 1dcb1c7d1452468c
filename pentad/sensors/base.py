from __future__ import annotations

from abc import ABC, abstractmethod


class ThermalSensor(ABC):
    """Source of a temperature in Celsius for the fan loop."""

    @property
    @abstractmethod
    def sensor_id(self) -> str:
        ...

    @property
    def unit(self) -> str:
        return "C"

    @abstractmethod
    def read(self) -> float:
        """Return degrees Celsius. Raise on failure."""
        ...
