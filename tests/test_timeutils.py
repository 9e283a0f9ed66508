from datetime import date

import pytest

from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import TimeOfDay
from tutoring_scheduler.timeutils import (
    format_duration,
    format_time,
    is_valid_time,
    js_weekday,
    minutes_to_time,
    parse_time,
    time_to_minutes,
)


def test_parse_time():
    assert parse_time("09:30") == TimeOfDay(hour=9, minute=30)
    assert parse_time("9:05") == TimeOfDay(hour=9, minute=5)
    assert parse_time(" 23:59 ") == TimeOfDay(hour=23, minute=59)


def test_parse_time_midnight_sentinel():
    assert parse_time("24:00") == TimeOfDay(hour=0, minute=0)


@pytest.mark.parametrize("value", ["24:30", "12:60", "25:00", "9am", "", "12:5", None, 930])
def test_parse_time_rejects_malformed(value):
    with pytest.raises(SchedulingValidationError):
        parse_time(value)


def test_is_valid_time():
    assert is_valid_time("00:00")
    assert is_valid_time("24:00")
    assert not is_valid_time("24:01")
    assert not is_valid_time("noon")


def test_time_to_minutes():
    assert time_to_minutes("09:30") == 570
    assert time_to_minutes("00:00") == 0
    assert time_to_minutes("24:00") == 0
    assert time_to_minutes("24:00", end_of_range=True) == 1440
    assert time_to_minutes("00:00", end_of_range=True) == 0


def test_minutes_to_time_wraps_past_midnight():
    assert minutes_to_time(570) == "09:30"
    assert minutes_to_time(1440) == "00:00"
    assert minutes_to_time(1470) == "00:30"


def test_format_time():
    assert format_time(TimeOfDay(hour=7, minute=5)) == "07:05"


def test_js_weekday_starts_on_sunday():
    assert js_weekday(date(2024, 6, 2)) == 0  # Sunday
    assert js_weekday(date(2024, 6, 3)) == 1  # Monday
    assert js_weekday(date(2024, 6, 8)) == 6  # Saturday


def test_format_duration():
    assert format_duration(90) == "1h 30m"
    assert format_duration(60) == "1h"
    assert format_duration(45) == "45m"
    assert format_duration(0) == ""
