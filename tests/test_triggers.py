"""Trigger controller: manual runs, schedule arming, fire-and-skip and abort."""

import asyncio
from datetime import datetime, timedelta

import pytest_asyncio

from nodeflow.constants import ActionType, DAY_MS
from nodeflow.models import ScheduleTriggerConfig
from nodeflow.services.triggers import TriggerController, TriggerState


def schedule_config(unit="min", between=5, time_to_trigger="00:00"):
    return ScheduleTriggerConfig.model_validate({
        "type": "schedule_trigger",
        "TRIGGER_ON": unit,
        "INTERVAL_BETWEEN_TRIGGER": between,
        "TIME_TO_TRIGGER": time_to_trigger,
    })


class PassRecorder:
    """Run pass stub that records calls and can be held open."""

    def __init__(self):
        self.calls = []
        self.release = asyncio.Event()
        self.release.set()
        self.started = asyncio.Event()

    async def __call__(self, kind, config):
        self.calls.append(kind)
        self.started.set()
        await self.release.wait()
        return f"run-{len(self.calls)}"


@pytest_asyncio.fixture
async def immediate_controller():
    controller = TriggerController(immediate_threshold_ms=DAY_MS)
    yield controller
    controller.shutdown()


async def test_initial_state(controller):
    assert controller.state == TriggerState.IDLE
    assert not controller.is_trigger_armed
    assert not controller.is_running


async def test_run_once_runs_manual_pass(controller):
    run_pass = PassRecorder()
    assert await controller.run_once(run_pass) == "run-1"
    assert run_pass.calls == [ActionType.MANUAL_TRIGGER]
    assert controller.state == TriggerState.IDLE


async def test_overlapping_run_is_skipped(controller):
    run_pass = PassRecorder()
    run_pass.release.clear()

    first = asyncio.create_task(controller.run_once(run_pass))
    await run_pass.started.wait()
    assert controller.state == TriggerState.RUNNING

    assert await controller.run_once(run_pass) is None
    assert len(run_pass.calls) == 1

    run_pass.release.set()
    assert await first == "run-1"
    assert controller.state == TriggerState.IDLE


async def test_immediate_schedule_runs_now_and_arms_interval(immediate_controller):
    run_pass = PassRecorder()
    info = await immediate_controller.arm_schedule(schedule_config("min", 5), run_pass)

    assert info["interval_ms"] == 300_000
    assert run_pass.calls == [ActionType.SCHEDULE_TRIGGER]
    assert immediate_controller.is_trigger_armed
    assert immediate_controller.state == TriggerState.SCHEDULED
    assert immediate_controller.get_status()["next_fire_time"] is not None


async def test_tick_during_run_is_dropped(immediate_controller):
    ticks = PassRecorder()
    await immediate_controller.arm_schedule(schedule_config("sec", 30), ticks)
    assert len(ticks.calls) == 1

    manual = PassRecorder()
    manual.release.clear()
    running = asyncio.create_task(immediate_controller.run_once(manual))
    await manual.started.wait()

    await immediate_controller._tick()
    assert len(ticks.calls) == 1

    manual.release.set()
    await running
    await immediate_controller._tick()
    assert len(ticks.calls) == 2


async def test_delayed_schedule_arms_one_shot(controller):
    later = (datetime.now() + timedelta(hours=2)).strftime("%H:%M")
    run_pass = PassRecorder()
    info = await controller.arm_schedule(schedule_config("hour", 1, later), run_pass)

    assert info["first_delay_ms"] > 1000
    assert run_pass.calls == []
    assert controller.is_trigger_armed
    assert controller.state == TriggerState.SCHEDULED


async def test_first_fire_runs_once_then_arms_interval(controller):
    later = (datetime.now() + timedelta(hours=2)).strftime("%H:%M")
    run_pass = PassRecorder()
    await controller.arm_schedule(schedule_config("hour", 1, later), run_pass)
    assert controller._interval_job_id is None

    await controller._on_first_fire()

    assert run_pass.calls == [ActionType.SCHEDULE_TRIGGER]
    assert controller._delay_job_id is None
    assert controller._scheduler.get_job(controller._interval_job_id) is not None
    assert controller.is_trigger_armed
    assert controller.state == TriggerState.SCHEDULED


async def test_rearm_replaces_timers(immediate_controller):
    run_pass = PassRecorder()
    await immediate_controller.arm_schedule(schedule_config("min", 1), run_pass)
    await immediate_controller.arm_schedule(schedule_config("hour", 1), run_pass)

    assert immediate_controller.interval_ms == 3_600_000
    assert len(immediate_controller._scheduler.get_jobs()) == 1


async def test_abort_cancels_timers(immediate_controller):
    run_pass = PassRecorder()
    await immediate_controller.arm_schedule(schedule_config(), run_pass)

    assert immediate_controller.abort() is True
    assert not immediate_controller.is_trigger_armed
    assert immediate_controller.state == TriggerState.IDLE
    assert immediate_controller._scheduler.get_jobs() == []

    assert immediate_controller.abort() is False


async def test_abort_does_not_interrupt_running_pass(immediate_controller):
    run_pass = PassRecorder()
    await immediate_controller.arm_schedule(schedule_config(), run_pass)

    run_pass.release.clear()
    running = asyncio.create_task(immediate_controller._tick())
    await asyncio.sleep(0)
    immediate_controller.abort()
    assert immediate_controller.state == TriggerState.RUNNING

    run_pass.release.set()
    await running
    assert len(run_pass.calls) == 2
    assert immediate_controller.state == TriggerState.IDLE
