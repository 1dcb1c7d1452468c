import pytest

from pentad.domain.controller import FanController
from pentad.domain.models import FanThresholds
from pentad.domain.state import RunState
from pentad.drivers.pwm_sim import SimulatedPwmBackend
from pentad.sensors.simulated_thermal import SimulatedThermalSensor


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class RecordingLine:
    """Output line that records every call instead of touching a GPIO."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def on(self) -> None:
        self.events.append("on")

    def off(self) -> None:
        self.events.append("off")

    def close(self) -> None:
        self.events.append("close")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def thresholds() -> FanThresholds:
    return FanThresholds(lv0=35.0, lv1=40.0, lv2=45.0, lv3=50.0)


@pytest.fixture
def run_state() -> RunState:
    return RunState(True)


@pytest.fixture
def controller(thresholds, run_state) -> FanController:
    return FanController(thresholds, run_state, retry_backoff_s=0.0)


@pytest.fixture
def sim_sensor() -> SimulatedThermalSensor:
    return SimulatedThermalSensor(celsius=60.0)


@pytest.fixture
def sim_backend() -> SimulatedPwmBackend:
    return SimulatedPwmBackend()


@pytest.fixture
def recording_line() -> RecordingLine:
    return RecordingLine()
