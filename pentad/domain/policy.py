"""
Temperature -> duty fraction mapping.

Duty fractions use the board's inverted polarity: 0.0 drives the fan at full
speed and values near 1.0 switch it off. The raw fraction is what the PWM
backends receive. ``fan_speed()`` is the only place that converts it to the
normalized 0 (off) .. 1 (full) scale shown on public surfaces.
"""
from __future__ import annotations

import math

from .models import FanThresholds

FAN_OFF_DUTY = 0.999
FULL_SPEED_DUTY = 0.0
DUTY_EPSILON = 0.01

# lv3, lv2, lv1, lv0
_LEVEL_DUTIES = (0.0, 0.25, 0.50, 0.75)


def clamp_duty(value: float) -> float:
    if math.isnan(value):
        return FULL_SPEED_DUTY
    return max(0.0, min(1.0, float(value)))


def duty(temp: float, running: bool, thresholds: FanThresholds) -> float:
    if not running:
        return FAN_OFF_DUTY

    # Unordered thresholds or a garbage reading: run at full speed
    if not thresholds.ascending or not math.isfinite(temp):
        return FULL_SPEED_DUTY

    levels = (thresholds.lv3, thresholds.lv2, thresholds.lv1, thresholds.lv0)
    for level, value in zip(levels, _LEVEL_DUTIES):
        if temp >= level:
            return value
    return FAN_OFF_DUTY


def fan_speed(duty_fraction: float) -> float:
    d = clamp_duty(duty_fraction)
    if d >= FAN_OFF_DUTY:
        return 0.0
    return round(1.0 - d, 3)


def is_significant_change(target: float, last: float | None, epsilon: float = DUTY_EPSILON) -> bool:
    if last is None:
        return True
    return abs(target - last) >= epsilon
