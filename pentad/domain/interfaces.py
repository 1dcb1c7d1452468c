from __future__ import annotations
from datetime import datetime
from typing import Protocol, runtime_checkable
from .models import DutyChange, GestureRecord


@runtime_checkable
class PwmBackend(Protocol):
    backend_id: str

    def start(self) -> None:
        ...

    def set_duty(self, fraction: float) -> None:
        ...

    def shutdown(self) -> None:
        ...


@runtime_checkable
class ButtonInput(Protocol):
    input_id: str

    def start(self) -> None:
        ...

    def read(self) -> bool:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Repository(Protocol):
    async def init(self) -> None:
        ...

    async def insert_duty_change(self, change: DutyChange) -> None:
        ...

    async def insert_gesture(self, record: GestureRecord) -> None:
        ...

    async def query_duty_changes(self, start: datetime, end: datetime, limit: int) -> list[DutyChange]:
        ...

    async def query_gestures(self, start: datetime, end: datetime, limit: int) -> list[GestureRecord]:
        ...
