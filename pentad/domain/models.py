from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class ThermalReading:
    celsius: float
    captured_at: datetime
    sensor_id: str = "unknown"
    # time.monotonic() at capture, used for cache age checks
    captured_mono: float = 0.0


@dataclass(frozen=True)
class FanThresholds:
    lv0: float
    lv1: float
    lv2: float
    lv3: float

    @property
    def ascending(self) -> bool:
        return self.lv0 < self.lv1 < self.lv2 < self.lv3


class Gesture(str, Enum):
    NONE = "none"
    CLICK = "click"
    DOUBLE_CLICK = "twice"
    LONG_PRESS = "press"


@dataclass(frozen=True)
class GestureEvent:
    gesture: Gesture
    ts_utc: datetime


@dataclass(frozen=True)
class DutyChange:
    ts_utc: datetime
    celsius: float
    duty: float
    fan_speed: float
    running: bool
    backend_id: str


@dataclass(frozen=True)
class GestureRecord:
    ts_utc: datetime
    gesture: str
    action: str
