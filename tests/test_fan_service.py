"""Fan loop: debounced writes, failure handling and backend shutdown."""

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from pentad.domain.errors import PwmBackendError
from pentad.domain.models import DutyChange
from pentad.domain.policy import FAN_OFF_DUTY
from pentad.drivers.pwm_sim import SimulatedPwmBackend
from pentad.services.fan_service import FanService
from pentad.services.thermal_cache import ThermalCache


@pytest.fixture
def cache(sim_sensor) -> ThermalCache:
    return ThermalCache(sim_sensor, ttl_seconds=60.0, refresh_seconds=30.0)


@pytest.fixture
def service(sim_backend, cache, controller) -> FanService:
    return FanService(sim_backend, cache, controller, interval_seconds=0.01)


class TestTick:
    @pytest.mark.asyncio
    async def test_same_duty_is_written_once(self, service, sim_backend):
        await service.tick()
        await service.tick()
        await service.tick()
        assert sim_backend.writes == [0.0]
        assert service.live.duty == 0.0
        assert service.live.writes == 1

    @pytest.mark.asyncio
    async def test_new_level_is_written(self, service, sim_backend, sim_sensor, cache):
        await service.tick()
        sim_sensor.set_manual(46.0)
        cache.invalidate()
        await service.tick()
        assert sim_backend.writes == [0.0, 0.25]

    @pytest.mark.asyncio
    async def test_disable_writes_off_duty(self, service, sim_backend, controller):
        await service.tick()
        controller.disable()
        await service.tick()
        assert sim_backend.writes == [0.0, FAN_OFF_DUTY]
        assert service.live.running is False

    @pytest.mark.asyncio
    async def test_failed_write_is_retried(self, service, sim_backend):
        sim_backend.fail_writes = True
        await service.tick()
        await service.tick()
        assert sim_backend.writes == []
        assert service.live.write_failures == 2
        assert service.live.duty is None

        sim_backend.fail_writes = False
        await service.tick()
        assert sim_backend.writes == [0.0]
        assert service.live.last_error is None

    @pytest.mark.asyncio
    async def test_unavailable_temperature_skips_tick(self, service, sim_backend, sim_sensor):
        sim_sensor.fail_reads()
        await service.tick()
        assert sim_backend.writes == []
        assert "unavailable" in service.live.last_error

    @pytest.mark.asyncio
    async def test_duty_change_is_recorded(self, sim_backend, cache, controller):
        repo = MagicMock()
        repo.insert_duty_change = AsyncMock()
        svc = FanService(sim_backend, cache, controller, repo=repo)

        await svc.tick()
        await svc.tick()

        repo.insert_duty_change.assert_awaited_once()
        change = repo.insert_duty_change.await_args.args[0]
        assert isinstance(change, DutyChange)
        assert change.duty == 0.0
        assert change.fan_speed == 1.0
        assert change.backend_id == "pwm_sim_01"

    @pytest.mark.asyncio
    async def test_repository_failure_does_not_block_actuation(self, sim_backend, cache, controller):
        repo = MagicMock()
        repo.insert_duty_change = AsyncMock(side_effect=RuntimeError("disk full"))
        svc = FanService(sim_backend, cache, controller, repo=repo)

        await svc.tick()
        assert sim_backend.writes == [0.0]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, service, sim_backend):
        await service.start()
        await asyncio.sleep(0.05)
        await service.stop()

        assert sim_backend.writes[0] == 0.0
        assert sim_backend.shutdown_calls == 1
        assert service.live.duty == FAN_OFF_DUTY
        assert service.task is None

    @pytest.mark.asyncio
    async def test_shutdown_after_failed_writes(self, service, sim_backend):
        sim_backend.fail_writes = True
        await service.start()
        await asyncio.sleep(0.05)
        await service.stop()
        assert sim_backend.shutdown_calls == 1

    @pytest.mark.asyncio
    async def test_backend_start_failure_propagates(self, service, sim_backend):
        sim_backend.fail_start = True
        with pytest.raises(PwmBackendError):
            await service.start()
        assert service.task is None

    @pytest.mark.asyncio
    async def test_backend_shutdown_runs_off_the_event_loop(self, cache, controller):
        class ThreadRecordingBackend(SimulatedPwmBackend):
            shutdown_thread = None

            def shutdown(self) -> None:
                self.shutdown_thread = threading.get_ident()
                super().shutdown()

        backend = ThreadRecordingBackend()
        svc = FanService(backend, cache, controller, interval_seconds=0.01)
        await svc.start()
        await asyncio.sleep(0.03)
        await svc.stop()

        assert backend.shutdown_calls == 1
        assert backend.shutdown_thread is not None
        assert backend.shutdown_thread != threading.get_ident()
