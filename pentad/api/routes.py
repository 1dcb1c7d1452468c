from __future__ import annotations

import logging
import math
from datetime import timedelta

from fastapi import APIRouter, Depends

from ..core.config import settings
from ..core.timeutil import now_utc
from ..domain.controller import FanController
from ..domain.policy import fan_speed
from ..drivers.button_sim import SimulatedButtonInput
from ..sensors.simulated_thermal import SimulatedThermalSensor
from ..services.daemon import Daemon
from ..services.event_bus import GestureBus
from ..storage.sqlite_repo import SQLiteRepository
from .schemas import SimButtonRequest, SimFailRequest, SimRampRequest, SimTemperatureRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters ---
# main.py points these at the real instances via app.dependency_overrides.
def get_daemon() -> Daemon:  # overridden in main
    raise RuntimeError("Daemon dependency not configured")

def get_controller() -> FanController:  # overridden in main
    raise RuntimeError("Controller dependency not configured")

def get_bus() -> GestureBus:  # overridden in main
    raise RuntimeError("Bus dependency not configured")

def get_repo() -> SQLiteRepository:  # overridden in main
    raise RuntimeError("Repo dependency not configured")

def get_sim_sensor() -> SimulatedThermalSensor:  # overridden in main
    raise RuntimeError("Simulated sensor dependency not configured")

def get_sim_button() -> SimulatedButtonInput:  # overridden in main
    raise RuntimeError("Simulated button dependency not configured")


def _window(minutes: int) -> tuple:
    end = now_utc()
    return end - timedelta(minutes=max(1, minutes)), end


@router.get("/live")
async def get_live(
    daemon: Daemon = Depends(get_daemon),
    bus: GestureBus = Depends(get_bus),
):
    live = daemon.fan.live
    ev = bus.last_event
    return {
        "app": settings.app_name,
        "mode": settings.mode,
        "temperature": {
            "celsius": live.celsius,
            "sensor_id": live.sensor_id,
        },
        "fan": {
            "backend": daemon.fan.backend_id,
            "running": live.running,
            "target_duty": live.target_duty,
            "duty": live.duty,
            "speed": fan_speed(live.duty) if live.duty is not None else None,
            "writes": live.writes,
            "write_failures": live.write_failures,
            "last_error": live.last_error,
        },
        "button": {
            "enabled": daemon.button_enabled,
            "last_gesture": ev.gesture.value if ev else None,
            "last_gesture_utc": ev.ts_utc.isoformat() if ev else None,
            "last_action": daemon.dispatcher.last_action if daemon.dispatcher else None,
            "dropped_events": bus.dropped,
        },
    }


@router.post("/fan/enable")
async def fan_enable(ctrl: FanController = Depends(get_controller)):
    ctrl.enable()
    return {"ok": True, "running": ctrl.running}


@router.post("/fan/disable")
async def fan_disable(ctrl: FanController = Depends(get_controller)):
    ctrl.disable()
    return {"ok": True, "running": ctrl.running}


@router.post("/fan/toggle")
async def fan_toggle(ctrl: FanController = Depends(get_controller)):
    running = ctrl.toggle()
    logger.info("Fan %s via API", "enabled" if running else "disabled")
    return {"ok": True, "running": running}


@router.get("/history/duty")
async def history_duty(
    minutes: int = 60,
    limit: int = 5000,
    repo: SQLiteRepository = Depends(get_repo),
):
    start, end = _window(minutes)
    rows = await repo.query_duty_changes(start, end, limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {
                "ts_utc": r.ts_utc.isoformat(),
                "celsius": r.celsius,
                "duty": r.duty,
                "fan_speed": r.fan_speed,
                "running": r.running,
                "backend_id": r.backend_id,
            }
            for r in rows
        ],
    }


@router.get("/history/gestures")
async def history_gestures(
    minutes: int = 240,
    limit: int = 2000,
    repo: SQLiteRepository = Depends(get_repo),
):
    start, end = _window(minutes)
    rows = await repo.query_gestures(start, end, limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {"ts_utc": g.ts_utc.isoformat(), "gesture": g.gesture, "action": g.action}
            for g in rows
        ],
    }


# --- Simulation endpoints ---
@router.get("/sim/status")
async def sim_status(
    sensor: SimulatedThermalSensor = Depends(get_sim_sensor),
    button: SimulatedButtonInput = Depends(get_sim_button),
):
    return {"sensor": sensor.status(), "button": button.status()}


@router.post("/sim/temperature")
async def sim_temperature(req: SimTemperatureRequest, sensor: SimulatedThermalSensor = Depends(get_sim_sensor)):
    sensor.set_manual(req.celsius)
    return {"ok": True, **sensor.status()}


@router.post("/sim/temperature/ramp")
async def sim_temperature_ramp(req: SimRampRequest, sensor: SimulatedThermalSensor = Depends(get_sim_sensor)):
    sensor.ramp_to(req.target, req.rate_c_per_s)
    return {"ok": True, **sensor.status()}


@router.post("/sim/temperature/fail")
async def sim_temperature_fail(req: SimFailRequest, sensor: SimulatedThermalSensor = Depends(get_sim_sensor)):
    sensor.fail_reads(req.count)
    return {"ok": True, **sensor.status()}


@router.post("/sim/temperature/recover")
async def sim_temperature_recover(sensor: SimulatedThermalSensor = Depends(get_sim_sensor)):
    sensor.recover()
    return {"ok": True, **sensor.status()}


@router.post("/sim/button")
async def sim_button(req: SimButtonRequest, button: SimulatedButtonInput = Depends(get_sim_button)):
    if req.action == "press":
        button.press()
    elif req.action == "release":
        button.release()
    elif req.action == "click":
        button.click()
    elif req.action == "twice":
        button.double_click()
    else:
        button.hold(math.ceil(req.hold_seconds / settings.button_tick_seconds))
    return {"ok": True, "action": req.action, **button.status()}
