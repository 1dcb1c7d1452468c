from __future__ import annotations
import logging

from ..domain.errors import PwmBackendError
from ..domain.policy import FAN_OFF_DUTY, clamp_duty

logger = logging.getLogger(__name__)


class SimulatedPwmBackend:
    backend_id = "pwm_sim_01"

    def __init__(self) -> None:
        self.duty: float = FAN_OFF_DUTY
        self.writes: list[float] = []
        self.started = False
        self.shutdown_calls = 0
        self.fail_start = False
        self.fail_writes = False

    def start(self) -> None:
        if self.fail_start:
            raise PwmBackendError("Simulated PWM start failure")
        self.started = True
        logger.info("PWM sim started")

    def set_duty(self, fraction: float) -> None:
        if self.fail_writes:
            raise PwmBackendError("Simulated PWM write failure")
        self.duty = clamp_duty(fraction)
        self.writes.append(self.duty)
        logger.info("PWM sim set_duty=%.3f", self.duty)

    def shutdown(self) -> None:
        self.shutdown_calls += 1
        self.started = False
        self.duty = FAN_OFF_DUTY
        logger.info("PWM sim shutdown")
