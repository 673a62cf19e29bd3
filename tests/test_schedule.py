"""Schedule interval and first-fire arithmetic."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from nodeflow.constants import ActionType, MAX_INTERVAL_BETWEEN_TRIGGER
from nodeflow.models import ScheduleTriggerConfig, validate_action_config
from nodeflow.services.schedule import describe_trigger, get_schedule_interval_ms, ms_until_time


@pytest.mark.parametrize("unit,between,expected", [
    ("sec", 1, 1_000),
    ("min", 5, 300_000),
    ("hour", 2, 7_200_000),
    ("day", 1, 86_400_000),
    ("week", 1, 604_800_000),
    ("month", 1, 2_592_000_000),
])
def test_interval_ms(unit, between, expected):
    assert get_schedule_interval_ms(unit, between) == expected


def test_unknown_unit_falls_back_to_minutes():
    assert get_schedule_interval_ms("fortnight", 2) == 120_000


def test_multiplier_below_one_is_one():
    assert get_schedule_interval_ms("sec", 0) == 1_000
    assert get_schedule_interval_ms("sec", -3) == 1_000


def test_config_parses_string_multiplier():
    config = ScheduleTriggerConfig.model_validate({
        "type": "schedule_trigger", "TRIGGER_ON": "min", "INTERVAL_BETWEEN_TRIGGER": "5",
    })
    assert get_schedule_interval_ms(config.trigger_on, config.interval_between_trigger) == 300_000


def schedule_config(between):
    return ScheduleTriggerConfig.model_validate({"type": "schedule_trigger", "INTERVAL_BETWEEN_TRIGGER": between})


@pytest.mark.parametrize("between", ["2.5", 2.5, " 2 ", 2])
def test_fractional_multiplier_truncates_for_strings_and_numbers(between):
    assert schedule_config(between).interval_between_trigger == 2


@pytest.mark.parametrize("between", [None, ""])
def test_empty_multiplier_uses_default(between):
    assert schedule_config(between).interval_between_trigger == 1


def test_empty_form_fields_fall_back_to_defaults():
    config = validate_action_config("schedule_trigger", {"TRIGGER_ON": None, "TIME_TO_TRIGGER": None})
    assert isinstance(config, ScheduleTriggerConfig)
    assert config.trigger_on == "min"
    assert config.time_to_trigger == "00:00"


@pytest.mark.parametrize("between", ["1e400", float("inf"), "nan", "abc", MAX_INTERVAL_BETWEEN_TRIGGER + 1])
def test_invalid_or_huge_multiplier_is_rejected(between):
    with pytest.raises(ValidationError):
        schedule_config(between)


def test_largest_multiplier_stays_schedulable():
    config = ScheduleTriggerConfig.model_validate({
        "type": "schedule_trigger", "TRIGGER_ON": "month",
        "INTERVAL_BETWEEN_TRIGGER": MAX_INTERVAL_BETWEEN_TRIGGER,
    })
    interval_ms = get_schedule_interval_ms(config.trigger_on, config.interval_between_trigger)
    assert datetime.now() + timedelta(milliseconds=interval_ms) > datetime.now()


def test_ms_until_later_today():
    now = datetime(2024, 3, 1, 10, 0, 0)
    assert ms_until_time("10:30", now=now) == 30 * 60 * 1000


def test_ms_until_passed_time_is_tomorrow():
    now = datetime(2024, 3, 1, 10, 0, 30)
    assert ms_until_time("10:00", now=now) == 24 * 3600 * 1000 - 30_000


def test_ms_until_now_is_zero():
    now = datetime(2024, 3, 1, 8, 15, 0)
    assert ms_until_time("08:15", now=now) == 0


def test_ms_until_defaults_to_midnight():
    now = datetime(2024, 3, 1, 23, 0, 0)
    assert ms_until_time("", now=now) == 3600 * 1000
    assert ms_until_time(None, now=now) == 3600 * 1000


def test_describe_trigger():
    started = int(datetime(2024, 3, 1, 9, 5, 7).timestamp() * 1000)
    assert describe_trigger(ActionType.MANUAL_TRIGGER, started) == "Manual trigger at 09:05:07"

    config = ScheduleTriggerConfig.model_validate({
        "type": "schedule_trigger", "TRIGGER_ON": "hour", "INTERVAL_BETWEEN_TRIGGER": 2,
        "TIME_TO_TRIGGER": "09:00",
    })
    assert describe_trigger(ActionType.SCHEDULE_TRIGGER, started, config) == (
        "Schedule trigger (every 2 hour from 09:00) at 09:05:07"
    )
