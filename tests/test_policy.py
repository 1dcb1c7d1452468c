"""Temperature to duty mapping and the normalized fan speed."""

import math

import pytest

from pentad.domain.models import FanThresholds
from pentad.domain.policy import (
    FAN_OFF_DUTY,
    FULL_SPEED_DUTY,
    clamp_duty,
    duty,
    fan_speed,
    is_significant_change,
)


class TestDuty:
    @pytest.mark.parametrize("temp", [-10.0, 20.0, 40.0, 55.0, 90.0])
    def test_stopped_fan_is_off_at_any_temperature(self, thresholds, temp):
        assert duty(temp, False, thresholds) == FAN_OFF_DUTY

    @pytest.mark.parametrize(
        "temp,expected",
        [
            (20.0, FAN_OFF_DUTY),
            (34.99, FAN_OFF_DUTY),
            (35.0, 0.75),
            (39.9, 0.75),
            (40.0, 0.5),
            (45.0, 0.25),
            (49.9, 0.25),
            (50.0, 0.0),
            (80.0, 0.0),
        ],
    )
    def test_threshold_cascade(self, thresholds, temp, expected):
        assert duty(temp, True, thresholds) == expected

    def test_hotter_never_means_slower(self, thresholds):
        temps = [t / 2 for t in range(40, 140)]
        duties = [duty(t, True, thresholds) for t in temps]
        assert all(a >= b for a, b in zip(duties, duties[1:]))

    def test_unordered_thresholds_run_full_speed(self):
        bad = FanThresholds(lv0=50.0, lv1=40.0, lv2=45.0, lv3=35.0)
        assert duty(20.0, True, bad) == FULL_SPEED_DUTY

    def test_equal_thresholds_are_not_ascending(self):
        flat = FanThresholds(lv0=40.0, lv1=40.0, lv2=45.0, lv3=50.0)
        assert not flat.ascending
        assert duty(20.0, True, flat) == FULL_SPEED_DUTY

    def test_nan_temperature_runs_full_speed(self, thresholds):
        assert duty(math.nan, True, thresholds) == FULL_SPEED_DUTY
        assert duty(math.nan, False, thresholds) == FAN_OFF_DUTY


class TestFanSpeed:
    def test_inverted_polarity(self):
        assert fan_speed(0.0) == 1.0
        assert fan_speed(0.25) == 0.75
        assert fan_speed(0.75) == 0.25
        assert fan_speed(FAN_OFF_DUTY) == 0.0
        assert fan_speed(1.0) == 0.0

    def test_clamp(self):
        assert clamp_duty(-0.5) == 0.0
        assert clamp_duty(1.5) == 1.0
        assert clamp_duty(math.nan) == FULL_SPEED_DUTY


class TestSignificantChange:
    def test_first_write_always_significant(self):
        assert is_significant_change(0.5, None)

    def test_epsilon(self):
        assert not is_significant_change(0.5, 0.5)
        assert not is_significant_change(0.505, 0.5, 0.01)
        assert is_significant_change(0.75, 0.5, 0.01)
