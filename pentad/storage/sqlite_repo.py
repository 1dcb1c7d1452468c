from __future__ import annotations
import aiosqlite
from datetime import datetime
from typing import List
from ..domain.models import DutyChange, GestureRecord


class SQLiteRepository:
    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS duty_changes (
                    ts_utc TEXT NOT NULL,
                    celsius REAL NOT NULL,
                    duty REAL NOT NULL,
                    fan_speed REAL NOT NULL,
                    running INTEGER NOT NULL,
                    backend_id TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS gestures (
                    ts_utc TEXT NOT NULL,
                    gesture TEXT NOT NULL,
                    action TEXT NOT NULL
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_duty_ts ON duty_changes(ts_utc)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_gestures_ts ON gestures(ts_utc)")
            await db.commit()

    async def insert_duty_change(self, c: DutyChange) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO duty_changes(ts_utc,celsius,duty,fan_speed,running,backend_id) VALUES (?,?,?,?,?,?)",
                (c.ts_utc.isoformat(), c.celsius, c.duty, c.fan_speed, 1 if c.running else 0, c.backend_id),
            )
            await db.commit()

    async def insert_gesture(self, g: GestureRecord) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO gestures(ts_utc,gesture,action) VALUES (?,?,?)",
                (g.ts_utc.isoformat(), g.gesture, g.action),
            )
            await db.commit()

    async def query_duty_changes(self, start: datetime, end: datetime, limit: int) -> List[DutyChange]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,celsius,duty,fan_speed,running,backend_id
                FROM duty_changes
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start.isoformat(), end.isoformat(), limit),
            )
            rows = await cur.fetchall()
        out: list[DutyChange] = []
        for ts, celsius, duty, speed, running, backend_id in rows:
            out.append(
                DutyChange(
                    ts_utc=datetime.fromisoformat(ts),
                    celsius=float(celsius),
                    duty=float(duty),
                    fan_speed=float(speed),
                    running=bool(running),
                    backend_id=backend_id,
                )
            )
        return list(reversed(out))

    async def query_gestures(self, start: datetime, end: datetime, limit: int) -> List[GestureRecord]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,gesture,action
                FROM gestures
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start.isoformat(), end.isoformat(), limit),
            )
            rows = await cur.fetchall()
        return list(reversed([
            GestureRecord(ts_utc=datetime.fromisoformat(ts), gesture=gesture, action=action)
            for ts, gesture, action in rows
        ]))
