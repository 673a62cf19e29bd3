"""Schedule trigger arithmetic and human-readable run descriptions."""

from datetime import datetime, timedelta
from typing import Optional

from nodeflow.constants import (
    ActionType,
    DAY_MS,
    DEFAULT_TIME_TO_TRIGGER,
    MINUTE_MS,
    SCHEDULE_UNIT_MS,
)
from nodeflow.models.nodes import ScheduleTriggerConfig


def get_schedule_interval_ms(trigger_on: str, between: int) -> int:
    """Repeat interval for a schedule trigger.

    Unknown units fall back to minutes; multipliers below 1 are treated as 1.
    """
    unit_ms = SCHEDULE_UNIT_MS.get(trigger_on, MINUTE_MS)
    return max(1, int(between)) * unit_ms


def _parse_time(time_str: Optional[str]):
    parts = (time_str or DEFAULT_TIME_TO_TRIGGER).split(":")
    try:
        hour = int(parts[0]) if parts[0].strip() else 0
        minute = int(parts[1]) if len(parts) > 1 and parts[1].strip() else 0
    except ValueError:
        hour, minute = 0, 0
    return min(max(hour, 0), 23), min(max(minute, 0), 59)


def ms_until_time(time_str: Optional[str], now: Optional[datetime] = None) -> int:
    """Milliseconds from ``now`` until the next occurrence of "HH:MM".

    Today if the time has not passed yet, otherwise tomorrow.
    """
    now = now or datetime.now()
    hour, minute = _parse_time(time_str)
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    delta_ms = int((target - now) / timedelta(milliseconds=1))
    if delta_ms < 0:
        delta_ms += DAY_MS
    return delta_ms


def format_executed_time(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%H:%M:%S")


def describe_schedule(config: ScheduleTriggerConfig) -> str:
    return (f"every {max(1, config.interval_between_trigger)} {config.trigger_on}"
            f" from {config.time_to_trigger or DEFAULT_TIME_TO_TRIGGER}")


def describe_trigger(kind: ActionType, started_at: int,
                     config: Optional[ScheduleTriggerConfig] = None) -> str:
    """Trigger description shown on an execution, e.g. "Manual trigger at 10:04:12"."""
    executed = format_executed_time(started_at)
    if kind == ActionType.SCHEDULE_TRIGGER and config is not None:
        return f"Schedule trigger ({describe_schedule(config)}) at {executed}"
    if kind == ActionType.SCHEDULE_TRIGGER:
        return f"Schedule trigger at {executed}"
    return f"Manual trigger at {executed}"
