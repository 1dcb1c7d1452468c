from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, HTTPException

from .core.config import Settings, settings
from .core.log import configure_logging

from .api.routes import router as api_router
import pentad.api.routes as routes_module

from .domain.controller import FanController
from .domain.gestures import GestureClassifier
from .domain.interfaces import ButtonInput, PwmBackend, Repository
from .domain.state import RunState
from .drivers.button_gpio import GpioButtonInput
from .drivers.button_sim import SimulatedButtonInput
from .drivers.pwm_sim import SimulatedPwmBackend
from .drivers.pwm_software import SoftwarePwmBackend
from .drivers.pwm_sysfs import SysfsPwmBackend
from .sensors.base import ThermalSensor
from .sensors.simulated_thermal import SimulatedThermalSensor
from .sensors.sysfs_thermal import CpuThermalSensor, DriveTempSensor, FallbackThermalSensor
from .services.button_service import ButtonService
from .services.daemon import Daemon
from .services.dispatcher import ActionDispatcher
from .services.event_bus import GestureBus
from .services.fan_service import FanService
from .services.thermal_cache import ThermalCache
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)


@dataclass
class Components:
    daemon: Daemon
    controller: FanController
    run_state: RunState
    bus: GestureBus
    sim_sensor: Optional[SimulatedThermalSensor] = None
    sim_button: Optional[SimulatedButtonInput] = None


def _is_sim(cfg: Settings) -> bool:
    return cfg.mode.lower() == "sim"


def build_sensor(cfg: Settings) -> ThermalSensor:
    if _is_sim(cfg):
        return SimulatedThermalSensor()

    source = cfg.temp_source.lower()
    if source == "cpu":
        return CpuThermalSensor()
    if source == "drive":
        return DriveTempSensor()
    # auto: hottest disk, CPU when no drivetemp is available
    return FallbackThermalSensor([DriveTempSensor(), CpuThermalSensor()])


def build_backend(cfg: Settings) -> PwmBackend:
    if _is_sim(cfg):
        return SimulatedPwmBackend()
    if cfg.hardware_pwm:
        return SysfsPwmBackend(
            chip=cfg.pwmchip,
            channel=cfg.pwm_channel,
            period_ns=cfg.pwm_period_ns,
        )
    # an empty FAN_LINE fails in start(), which aborts the daemon
    return SoftwarePwmBackend(
        line=cfg.fan_line,
        chip=cfg.fan_chip,
        period_s=cfg.software_pwm_period_seconds,
    )


def build_button(cfg: Settings) -> Optional[ButtonInput]:
    if not cfg.top_board:
        return None
    if _is_sim(cfg):
        return SimulatedButtonInput()
    return GpioButtonInput(line=cfg.button_line, chip=cfg.button_chip)


def build_daemon(
    cfg: Settings,
    repo: Optional[Repository] = None,
    shutdown_event: Optional[asyncio.Event] = None,
) -> Components:
    """Wire every component from settings; nothing touches hardware until start()."""
    stop = shutdown_event if shutdown_event is not None else asyncio.Event()
    run_state = RunState(True)

    sensor = build_sensor(cfg)
    cache = ThermalCache(
        sensor,
        ttl_seconds=cfg.temp_cache_ttl_seconds,
        refresh_seconds=cfg.temp_refresh_seconds,
    )
    controller = FanController(cfg.thresholds(), run_state, epsilon=cfg.duty_epsilon)
    fan = FanService(
        backend=build_backend(cfg),
        cache=cache,
        controller=controller,
        repo=repo,
        interval_seconds=cfg.fan_interval_seconds,
        stop_event=stop,
    )

    bus = GestureBus(maxsize=cfg.event_bus_size)
    button_input = build_button(cfg)
    button: Optional[ButtonService] = None
    dispatcher: Optional[ActionDispatcher] = None
    if button_input is not None:
        classifier = GestureClassifier(
            double_click_seconds=cfg.time_twice,
            long_press_seconds=cfg.time_press,
            tick_seconds=cfg.button_tick_seconds,
        )
        button = ButtonService(button_input, classifier, bus, stop_event=stop)
        dispatcher = ActionDispatcher(bus, cfg.key_actions(), repo=repo, stop_event=stop)

        def _switch() -> None:
            running = run_state.toggle()
            logger.info("Fan %s by button", "enabled" if running else "disabled")

        dispatcher.register("switch", _switch)

    daemon = Daemon(
        fan=fan,
        button=button,
        dispatcher=dispatcher,
        shutdown_event=stop,
        shutdown_timeout_seconds=cfg.shutdown_timeout_seconds,
    )
    return Components(
        daemon=daemon,
        controller=controller,
        run_state=run_state,
        bus=bus,
        sim_sensor=sensor if isinstance(sensor, SimulatedThermalSensor) else None,
        sim_button=button_input if isinstance(button_input, SimulatedButtonInput) else None,
    )


# --- Singletons ---
repo = SQLiteRepository(settings.sqlite_path)
components = build_daemon(settings, repo=repo)
history_enabled = True


async def init_history(repository: Repository, daemon: Daemon) -> bool:
    """Open the history store; on failure the daemon runs without recording."""
    try:
        await repository.init()
    except Exception as e:
        logger.warning("History disabled, repository init failed: %s", e)
        daemon.disable_history()
        return False
    return True


def get_daemon() -> Daemon:
    return components.daemon


def get_controller() -> FanController:
    return components.controller


def get_bus() -> GestureBus:
    return components.bus


def get_repo() -> SQLiteRepository:
    if not history_enabled:
        raise HTTPException(status_code=503, detail="History storage unavailable")
    return repo


def get_sim_sensor() -> SimulatedThermalSensor:
    if components.sim_sensor is None:
        raise HTTPException(status_code=404, detail="Simulated sensor not available (mode is not 'sim')")
    return components.sim_sensor


def get_sim_button() -> SimulatedButtonInput:
    if components.sim_button is None:
        raise HTTPException(status_code=404, detail="Simulated button not available")
    return components.sim_button


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_file)
    logger.info("Starting %s (mode=%s)", settings.app_name, settings.mode)

    global history_enabled
    history_enabled = await init_history(repo, components.daemon)
    await components.daemon.start()

    try:
        yield
    finally:
        await components.daemon.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_daemon] = get_daemon
app.dependency_overrides[routes_module.get_controller] = get_controller
app.dependency_overrides[routes_module.get_bus] = get_bus
app.dependency_overrides[routes_module.get_repo] = get_repo
app.dependency_overrides[routes_module.get_sim_sensor] = get_sim_sensor
app.dependency_overrides[routes_module.get_sim_button] = get_sim_button

app.include_router(api_router, prefix="/api")


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
