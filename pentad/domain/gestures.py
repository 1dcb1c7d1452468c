"""
Push-button gesture classification.

The classifier is fed one raw line level per sampler tick (``True`` = high =
released, ``False`` = low = pressed; the button pulls the line to ground).
Durations are measured by counting ticks, so the sampler must deliver every
tick, including unchanged levels.

    IDLE --press--> PRESSED --release--> PENDING --press--> SECOND_PRESS
     ^                 |                    |                   |
     |            held >= long         gap >= window         release
     |                 v                    v                   v
     +------------ LONG_PRESS            CLICK             DOUBLE_CLICK

A long press fires while the button is still held; the classifier then ignores
samples until the button is released again. A click is only reported once the
double-click window after the release has elapsed.
"""
from __future__ import annotations

import logging
import math
from collections import deque
from enum import Enum
from typing import Optional

from .models import Gesture

logger = logging.getLogger(__name__)


class _State(Enum):
    IDLE = "idle"
    PRESSED = "pressed"
    PENDING = "released_pending_double"
    SECOND_PRESS = "second_press"


def window_samples(seconds: float, tick_seconds: float) -> int:
    """
    Convert a configured window to a tick count, rounding half up (0.25 s at
    0.1 s ticks is 3). Non-positive or non-finite windows yield 0.
    """
    if tick_seconds <= 0 or not math.isfinite(tick_seconds):
        raise ValueError(f"tick_seconds must be positive, got {tick_seconds}")
    if not math.isfinite(seconds) or seconds <= 0:
        return 0
    # tolerance keeps 0.25 / 0.1 = 2.4999999999999996 on the upper side
    return int(math.floor(seconds / tick_seconds + 0.5 + 1e-9))


class GestureClassifier:
    def __init__(
        self,
        double_click_seconds: float = 0.7,
        long_press_seconds: float = 1.8,
        tick_seconds: float = 0.1,
    ) -> None:
        self.tick_seconds = tick_seconds
        self.double_click_samples = window_samples(double_click_seconds, tick_seconds)
        self.long_press_samples = window_samples(long_press_seconds, tick_seconds)

        # Diagnostic history of raw levels, cleared on every emission
        self.window: deque[bool] = deque(
            maxlen=max(self.long_press_samples, self.double_click_samples) * 2 + 5
        )

        self._state = _State.IDLE
        self._count = 0
        self._await_release = False

    @property
    def state(self) -> str:
        return self._state.value

    def reset(self) -> None:
        self._state = _State.IDLE
        self._count = 0
        self._await_release = False
        self.window.clear()

    def _long_press_reached(self) -> bool:
        return self.long_press_samples > 0 and self._count >= self.long_press_samples

    def _emit(self, gesture: Gesture) -> Gesture:
        logger.debug(
            "Gesture %s from levels %s",
            gesture.value,
            "".join("1" if lvl else "0" for lvl in self.window),
        )
        self.reset()
        return gesture

    def _emit_long_press(self) -> Gesture:
        gesture = self._emit(Gesture.LONG_PRESS)
        # set after _emit, which resets the latch
        self._await_release = True
        return gesture

    def feed(self, level: bool) -> Optional[Gesture]:
        """Consume one sample; return a gesture when one completes."""
        pressed = not level

        if self._await_release:
            if pressed:
                return None
            self._await_release = False

        self.window.append(bool(level))

        if self._state is _State.IDLE:
            if pressed:
                self._state = _State.PRESSED
                self._count = 1
                if self._long_press_reached():
                    return self._emit_long_press()
            else:
                self.window.clear()
            return None

        if self._state is _State.PRESSED:
            if pressed:
                self._count += 1
                if self._long_press_reached():
                    return self._emit_long_press()
                return None
            # released: the release sample is the first sample of the gap
            if self.double_click_samples <= 1:
                return self._emit(Gesture.CLICK)
            self._state = _State.PENDING
            self._count = 1
            return None

        if self._state is _State.PENDING:
            if pressed:
                self._state = _State.SECOND_PRESS
                self._count = 1
                if self._long_press_reached():
                    return self._emit_long_press()
                return None
            self._count += 1
            if self._count >= self.double_click_samples:
                return self._emit(Gesture.CLICK)
            return None

        # SECOND_PRESS
        if pressed:
            self._count += 1
            if self._long_press_reached():
                return self._emit_long_press()
            return None
        return self._emit(Gesture.DOUBLE_CLICK)
