from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .base import ThermalSensor

logger = logging.getLogger(__name__)

CPU_THERMAL_ZONE = "/sys/class/thermal/thermal_zone0/temp"
HWMON_ROOT = "/sys/class/hwmon"


def _read_millidegrees(path: Path) -> float:
    raw = path.read_text().strip()
    if not raw:
        raise ValueError(f"Empty temperature in {path}")
    return int(raw) / 1000.0


class CpuThermalSensor(ThermalSensor):
    def __init__(self, path: str | Path = CPU_THERMAL_ZONE, sensor_id: str = "cpu"):
        self._path = Path(path)
        self._sensor_id = sensor_id

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def read(self) -> float:
        return _read_millidegrees(self._path)


class DriveTempSensor(ThermalSensor):
    """Hottest SATA disk as reported by the kernel ``drivetemp`` hwmon driver."""

    def __init__(self, root: str | Path = HWMON_ROOT, sensor_id: str = "drives"):
        self._root = Path(root)
        self._sensor_id = sensor_id

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def _inputs(self) -> list[Path]:
        found: list[Path] = []
        for hwmon in sorted(self._root.glob("hwmon*")):
            name_file = hwmon / "name"
            try:
                if name_file.read_text().strip() != "drivetemp":
                    continue
            except OSError:
                continue
            found.extend(sorted(hwmon.glob("temp*_input")))
        return found

    def read(self) -> float:
        temps: list[float] = []
        for path in self._inputs():
            try:
                temps.append(_read_millidegrees(path))
            except (OSError, ValueError) as e:
                logger.debug("drivetemp read failed for %s: %s", path, e)
        if not temps:
            raise RuntimeError(f"No drivetemp readings under {self._root}")
        hottest = max(temps)
        logger.debug("drivetemp: %d disk(s), hottest=%.1f", len(temps), hottest)
        return hottest


class FallbackThermalSensor(ThermalSensor):
    """Try sensors in order and return the first successful reading."""

    def __init__(self, sensors: Sequence[ThermalSensor]):
        if not sensors:
            raise ValueError("FallbackThermalSensor needs at least one sensor")
        self._sensors = list(sensors)
        self.last_source: str | None = None

    @property
    def sensor_id(self) -> str:
        return "+".join(s.sensor_id for s in self._sensors)

    def read(self) -> float:
        errors: list[str] = []
        for sensor in self._sensors:
            try:
                value = sensor.read()
            except Exception as e:
                errors.append(f"{sensor.sensor_id}: {e}")
                continue
            if self.last_source != sensor.sensor_id:
                logger.info("Using %s temperature for fan control", sensor.sensor_id)
                self.last_source = sensor.sensor_id
            return value
        raise RuntimeError("All temperature sources failed: " + "; ".join(errors))
