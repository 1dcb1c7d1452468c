from __future__ import annotations

from threading import Lock


class RunState:
    """Fan enable flag shared between the fan loop, the dispatcher and the API."""

    def __init__(self, running: bool = True) -> None:
        self._lock = Lock()
        self._running = bool(running)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def set(self, running: bool) -> None:
        with self._lock:
            self._running = bool(running)

    def toggle(self) -> bool:
        with self._lock:
            self._running = not self._running
            return self._running
