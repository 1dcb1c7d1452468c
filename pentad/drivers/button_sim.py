from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Iterable

from ..domain.errors import ButtonInitError


class SimulatedButtonInput:
    input_id = "button_sim_01"

    def __init__(self) -> None:
        self._lock = Lock()
        self._pressed = False
        self._script: deque[bool] = deque()
        self.started = False
        self.fail_start = False

    def start(self) -> None:
        if self.fail_start:
            raise ButtonInitError("Simulated button start failure")
        self.started = True

    def press(self) -> None:
        with self._lock:
            self._pressed = True

    def release(self) -> None:
        with self._lock:
            self._pressed = False

    def play(self, levels: Iterable[bool]) -> None:
        """Queue raw levels to be returned one per read, before the steady state."""
        with self._lock:
            self._script.extend(bool(v) for v in levels)

    def click(self, press_samples: int = 2) -> None:
        self.play([False] * press_samples)

    def double_click(self, press_samples: int = 2, gap_samples: int = 2) -> None:
        self.play([False] * press_samples + [True] * gap_samples + [False] * press_samples)

    def hold(self, samples: int) -> None:
        self.play([False] * samples)

    def status(self) -> dict:
        with self._lock:
            return {"pressed": self._pressed, "queued": len(self._script)}

    def read(self) -> bool:
        with self._lock:
            if self._script:
                return self._script.popleft()
            return not self._pressed

    def close(self) -> None:
        self.started = False
