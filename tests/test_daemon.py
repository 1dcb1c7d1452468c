"""Daemon start order and bounded shutdown."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pentad.domain.errors import PwmBackendError
from pentad.domain.gestures import GestureClassifier
from pentad.drivers.button_sim import SimulatedButtonInput
from pentad.services.button_service import ButtonService
from pentad.services.daemon import Daemon
from pentad.services.dispatcher import ActionDispatcher
from pentad.services.event_bus import GestureBus
from pentad.services.fan_service import FanService
from pentad.services.thermal_cache import ThermalCache


def build(sim_backend, sim_sensor, controller, button_input=None):
    stop = asyncio.Event()
    fan = FanService(
        sim_backend,
        ThermalCache(sim_sensor),
        controller,
        interval_seconds=0.01,
        stop_event=stop,
    )
    bus = GestureBus()
    button = dispatcher = None
    if button_input is not None:
        classifier = GestureClassifier(tick_seconds=0.01)
        button = ButtonService(button_input, classifier, bus, stop_event=stop)
        dispatcher = ActionDispatcher(bus, {"twice": "switch"}, stop_event=stop, poll_seconds=0.02)
    return Daemon(fan, button, dispatcher, stop, shutdown_timeout_seconds=1.0)


class TestDaemon:
    @pytest.mark.asyncio
    async def test_full_start_and_stop(self, sim_backend, sim_sensor, controller):
        button = SimulatedButtonInput()
        daemon = build(sim_backend, sim_sensor, controller, button)

        await daemon.start()
        assert daemon.button_enabled
        await asyncio.sleep(0.05)
        assert await daemon.stop() is True

        assert daemon.shutdown_event.is_set()
        assert sim_backend.shutdown_calls == 1
        assert not button.started
        assert daemon.fan.task.done()
        assert daemon.dispatcher.task.done()

    @pytest.mark.asyncio
    async def test_button_failure_is_not_fatal(self, sim_backend, sim_sensor, controller):
        button = SimulatedButtonInput()
        button.fail_start = True
        daemon = build(sim_backend, sim_sensor, controller, button)

        await daemon.start()
        assert not daemon.button_enabled
        assert daemon.dispatcher.task is None
        await asyncio.sleep(0.03)
        assert await daemon.stop() is True
        assert sim_backend.writes[0] == 0.0

    @pytest.mark.asyncio
    async def test_no_top_board(self, sim_backend, sim_sensor, controller):
        daemon = build(sim_backend, sim_sensor, controller)
        await daemon.start()
        assert await daemon.stop() is True
        assert sim_backend.shutdown_calls == 1

    @pytest.mark.asyncio
    async def test_fan_failure_is_fatal(self, sim_backend, sim_sensor, controller):
        sim_backend.fail_start = True
        daemon = build(sim_backend, sim_sensor, controller, SimulatedButtonInput())
        with pytest.raises(PwmBackendError):
            await daemon.start()

    @pytest.mark.asyncio
    async def test_stop_times_out_on_stuck_task(self):
        stuck = asyncio.create_task(asyncio.sleep(30), name="stuck")
        fan = MagicMock()
        fan.start = AsyncMock()
        fan.task = stuck
        daemon = Daemon(fan, None, None, asyncio.Event(), shutdown_timeout_seconds=0.05)

        await daemon.start()
        assert await daemon.stop() is False
        assert stuck.cancelled()
