"""Trigger Controller - decides how and when a full-graph run is invoked.

Manual triggers run once, immediately. Schedule triggers arm timers on a
per-controller APScheduler instance: an optional one-shot delay until the
configured time of day, then a repeating interval. Ticks that arrive while a
run is still in progress are dropped (fire-and-skip).
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from nodeflow.constants import ActionType
from nodeflow.core.logging import get_logger
from nodeflow.models.nodes import ScheduleTriggerConfig
from nodeflow.services.schedule import get_schedule_interval_ms, ms_until_time

logger = get_logger(__name__)

RunPass = Callable[[ActionType, Optional[ScheduleTriggerConfig]], Awaitable[Any]]


class TriggerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


class TriggerController:
    """Per-session trigger state machine.

    Timer handles live on the instance, so several controllers (one per
    workflow session) can coexist without sharing timers.
    """

    def __init__(self, immediate_threshold_ms: int = 1000,
                 timezone: Optional[str] = None,
                 name: Optional[str] = None):
        self.immediate_threshold_ms = immediate_threshold_ms
        self.name = name or f"workflow_{uuid.uuid4().hex[:8]}"
        self._timezone = timezone
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._delay_job_id: Optional[str] = None
        self._interval_job_id: Optional[str] = None
        self._running = False
        self._run_pass: Optional[RunPass] = None
        self._schedule_config: Optional[ScheduleTriggerConfig] = None
        self.interval_ms: Optional[int] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_trigger_armed(self) -> bool:
        return self._delay_job_id is not None or self._interval_job_id is not None

    @property
    def state(self) -> TriggerState:
        if self._running:
            return TriggerState.RUNNING
        if self.is_trigger_armed:
            return TriggerState.SCHEDULED
        return TriggerState.IDLE

    def get_status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {
            "state": self.state.value,
            "is_running": self._running,
            "is_trigger_armed": self.is_trigger_armed,
            "interval_ms": self.interval_ms,
            "next_fire_time": None,
        }
        job = self._next_job()
        if job is not None and job.next_run_time:
            status["next_fire_time"] = job.next_run_time.isoformat()
        return status

    def _next_job(self):
        if self._scheduler is None:
            return None
        for job_id in (self._delay_job_id, self._interval_job_id):
            if job_id:
                job = self._scheduler.get_job(job_id)
                if job is not None:
                    return job
        return None

    # =========================================================================
    # RUNS
    # =========================================================================

    async def run_once(self, run_pass: RunPass) -> Optional[Any]:
        """Run a manual-trigger pass now. Returns None if a run is already in progress."""
        return await self._guarded(run_pass, ActionType.MANUAL_TRIGGER, None)

    async def _guarded(self, run_pass: RunPass, kind: ActionType,
                       config: Optional[ScheduleTriggerConfig]) -> Optional[Any]:
        # Check-and-set with no await in between
        if self._running:
            logger.warning("Run already in progress, skipping", controller=self.name,
                           trigger=kind.value)
            return None
        self._running = True
        try:
            return await run_pass(kind, config)
        finally:
            self._running = False

    async def _tick(self) -> None:
        if self._run_pass is None:
            return
        await self._guarded(self._run_pass, ActionType.SCHEDULE_TRIGGER, self._schedule_config)

    # =========================================================================
    # SCHEDULE
    # =========================================================================

    def _ensure_scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            kwargs = {"timezone": self._timezone} if self._timezone else {}
            self._scheduler = AsyncIOScheduler(**kwargs)
        if not self._scheduler.running:
            self._scheduler.start()
            logger.debug("Scheduler started", controller=self.name)
        return self._scheduler

    def _now(self) -> datetime:
        return datetime.now(self._ensure_scheduler().timezone)

    async def arm_schedule(self, config: ScheduleTriggerConfig, run_pass: RunPass) -> Dict[str, Any]:
        """Arm timers for a schedule trigger, replacing any existing ones.

        If the first fire is due within the immediate threshold, the repeating
        interval is armed and one pass runs right away. Otherwise a one-shot
        timer fires at the configured time, runs once and arms the interval.
        """
        self.cancel_timers()
        self._run_pass = run_pass
        self._schedule_config = config
        self.interval_ms = get_schedule_interval_ms(config.trigger_on, config.interval_between_trigger)

        now = self._now()
        first_delay_ms = ms_until_time(config.time_to_trigger, now=now)

        logger.info("Arming schedule trigger", controller=self.name,
                    interval_ms=self.interval_ms, first_delay_ms=first_delay_ms)

        if first_delay_ms <= self.immediate_threshold_ms:
            self._arm_interval()
            await self._tick()
        else:
            self._delay_job_id = f"{self.name}_delay"
            self._ensure_scheduler().add_job(
                self._on_first_fire,
                trigger=DateTrigger(run_date=now + timedelta(milliseconds=first_delay_ms)),
                id=self._delay_job_id,
                replace_existing=True,
                misfire_grace_time=None,
            )

        return {"interval_ms": self.interval_ms, "first_delay_ms": first_delay_ms}

    def _arm_interval(self) -> None:
        scheduler = self._ensure_scheduler()
        self._interval_job_id = f"{self.name}_interval"
        scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(
                seconds=self.interval_ms / 1000,
                start_date=self._now() + timedelta(milliseconds=self.interval_ms),
            ),
            id=self._interval_job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def _on_first_fire(self) -> None:
        self._delay_job_id = None
        self._arm_interval()
        await self._tick()

    # =========================================================================
    # CANCELLATION
    # =========================================================================

    def _remove_job(self, job_id: Optional[str]) -> None:
        if job_id is None or self._scheduler is None:
            return
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            logger.debug("Job already gone", job_id=job_id)

    def cancel_timers(self) -> bool:
        """Remove any armed one-shot and repeating timers."""
        was_armed = self.is_trigger_armed
        self._remove_job(self._delay_job_id)
        self._remove_job(self._interval_job_id)
        self._delay_job_id = None
        self._interval_job_id = None
        return was_armed

    def abort(self) -> bool:
        """Stop future ticks. A pass already running completes normally."""
        was_armed = self.cancel_timers()
        self._run_pass = None
        self._schedule_config = None
        self.interval_ms = None
        logger.info("Trigger aborted", controller=self.name, was_armed=was_armed,
                    run_in_progress=self._running)
        return was_armed

    def shutdown(self) -> None:
        self.abort()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.debug("Scheduler shutdown", controller=self.name)
        self._scheduler = None
