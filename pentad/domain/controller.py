from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional
from .models import FanThresholds
from .policy import DUTY_EPSILON, clamp_duty, duty, is_significant_change
from .state import RunState

logger = logging.getLogger(__name__)


@dataclass
class ControllerState:
    last_written: Optional[float] = None
    last_target: Optional[float] = None
    last_celsius: Optional[float] = None
    failed_target: Optional[float] = None
    failures: int = 0
    retry_at: float = 0.0


class FanController:
    """Duty decisions for the fan loop: policy, debounce and write retry backoff."""

    def __init__(
        self,
        thresholds: FanThresholds,
        run_state: RunState,
        epsilon: float = DUTY_EPSILON,
        retry_backoff_s: float = 1.0,
        max_retry_backoff_s: float = 30.0,
    ) -> None:
        self.thresholds = thresholds
        self.run_state = run_state
        self.epsilon = epsilon
        self.retry_backoff_s = retry_backoff_s
        self.max_retry_backoff_s = max_retry_backoff_s
        self.state = ControllerState()

        if not thresholds.ascending:
            logger.warning(
                "Fan thresholds are not ascending (%s); fan will run at full speed",
                thresholds,
            )

    @property
    def running(self) -> bool:
        return self.run_state.running

    def enable(self) -> None:
        self.run_state.set(True)

    def disable(self) -> None:
        self.run_state.set(False)

    def toggle(self) -> bool:
        return self.run_state.toggle()

    def target_duty(self, celsius: float) -> float:
        target = clamp_duty(duty(celsius, self.run_state.running, self.thresholds))
        self.state.last_celsius = celsius
        self.state.last_target = target
        return target

    def needs_write(self, target: float) -> bool:
        return is_significant_change(target, self.state.last_written, self.epsilon)

    def retry_due(self, target: float, now: float) -> bool:
        if self.state.failed_target is None or self.state.failed_target != target:
            return True
        return now >= self.state.retry_at

    def mark_written(self, target: float) -> None:
        self.state.last_written = target
        self.state.failed_target = None
        self.state.failures = 0
        self.state.retry_at = 0.0

    def mark_failed(self, target: float, now: float) -> bool:
        """Record a failed write; True when this is the first failure for ``target``."""
        first = self.state.failed_target != target
        if first:
            self.state.failed_target = target
            self.state.failures = 0
        self.state.failures += 1
        backoff = min(
            self.retry_backoff_s * (2 ** min(self.state.failures - 1, 16)),
            self.max_retry_backoff_s,
        )
        self.state.retry_at = now + backoff
        return first
