"""Component wiring from settings."""

import asyncio
import time

import pydantic
import pytest
from fastapi.testclient import TestClient

import pentad.main as main
from pentad.core.config import Settings
from pentad.drivers.button_sim import SimulatedButtonInput
from pentad.main import build_backend, build_button, build_daemon, build_sensor, init_history
from pentad.sensors.sysfs_thermal import CpuThermalSensor, FallbackThermalSensor
from pentad.storage.sqlite_repo import SQLiteRepository


def cfg(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSettings:
    def test_defaults(self):
        s = cfg()
        assert s.thresholds().ascending
        assert s.key_actions() == {"click": "slider", "twice": "switch", "press": "none"}

    def test_unordered_thresholds_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            cfg(fan_lv0=50, fan_lv3=35)

    def test_environment_names(self, monkeypatch):
        monkeypatch.setenv("HARDWARE_PWM", "1")
        monkeypatch.setenv("PWMCHIP", "2")
        monkeypatch.setenv("FAN_LINE", "27")
        s = cfg()
        assert s.hardware_pwm is True
        assert s.pwmchip == "2"
        assert s.fan_line == "27"


class TestBuild:
    def test_hardware_pwm_backend(self):
        backend = build_backend(cfg(mode="hw", hardware_pwm=True, pwmchip="2"))
        assert backend.backend_id == "pwmchip2/pwm0"

    def test_software_pwm_backend(self):
        backend = build_backend(cfg(mode="hw", fan_chip="gpiochip0", fan_line="27"))
        assert backend.backend_id == "gpiochip0/27"

    def test_sensor_selection(self):
        assert isinstance(build_sensor(cfg(mode="hw")), FallbackThermalSensor)
        assert isinstance(build_sensor(cfg(mode="hw", temp_source="cpu")), CpuThermalSensor)

    def test_button_only_with_top_board(self):
        assert build_button(cfg(top_board=False)) is None
        assert isinstance(build_button(cfg(mode="sim")), SimulatedButtonInput)

    def test_sim_daemon_wiring(self):
        c = build_daemon(cfg(mode="sim"))
        assert c.daemon.button is not None
        assert c.sim_sensor is not None
        assert c.sim_button is not None
        assert c.controller.run_state is c.run_state

    def test_no_top_board_daemon(self):
        c = build_daemon(cfg(mode="sim", top_board=False))
        assert c.daemon.button is None
        assert c.daemon.dispatcher is None
        assert c.sim_button is None


@pytest.fixture
def unwritable_repo(tmp_path) -> SQLiteRepository:
    return SQLiteRepository(str(tmp_path / "missing_dir" / "history.db"))


class TestHistoryUnavailable:
    @pytest.mark.asyncio
    async def test_fan_runs_without_history(self, unwritable_repo):
        c = build_daemon(cfg(mode="sim", fan_interval_seconds=0.01), repo=unwritable_repo)

        assert await init_history(unwritable_repo, c.daemon) is False
        assert c.daemon.fan.repo is None
        assert c.daemon.dispatcher.repo is None

        await c.daemon.start()
        await asyncio.sleep(0.05)
        assert await c.daemon.stop() is True
        assert c.daemon.fan.live.writes >= 1

    @pytest.mark.asyncio
    async def test_working_store_is_kept(self, tmp_path):
        good = SQLiteRepository(str(tmp_path / "history.db"))
        c = build_daemon(cfg(mode="sim"), repo=good)
        assert await init_history(good, c.daemon) is True
        assert c.daemon.fan.repo is good

    def test_app_starts_with_unwritable_sqlite_path(self, monkeypatch, unwritable_repo):
        c = build_daemon(cfg(mode="sim", fan_interval_seconds=0.05), repo=unwritable_repo)
        monkeypatch.setattr(main, "repo", unwritable_repo)
        monkeypatch.setattr(main, "components", c)
        monkeypatch.setattr(main, "history_enabled", True)
        monkeypatch.setattr(main, "configure_logging", lambda *args, **kwargs: None)

        with TestClient(main.app) as client:
            time.sleep(0.2)
            live = client.get("/api/live").json()
            assert live["fan"]["writes"] >= 1
            assert client.get("/api/history/duty").status_code == 503

        assert c.daemon.fan.task.done()
