import re
from datetime import date
from typing import List

from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import TimeOfDay

MINUTES_PER_DAY = 24 * 60

DAY_NAMES: List[str] = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time(value: str) -> TimeOfDay:
    """Parses an "HH:MM" string. "24:00" is accepted and normalizes to 00:00.

    Raises:
        SchedulingValidationError: If the string is not a valid wall-clock time.
    """
    if not isinstance(value, str):
        raise SchedulingValidationError(f"Invalid time {value!r}: expected an HH:MM string")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise SchedulingValidationError(f"Invalid time {value!r}: expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour == 24 and minute == 0:
        return TimeOfDay(hour=0, minute=0)
    if hour > 23 or minute > 59:
        raise SchedulingValidationError(f"Invalid time {value!r}: out of range")
    return TimeOfDay(hour=hour, minute=minute)


def format_time(value: TimeOfDay) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def is_valid_time(value: str) -> bool:
    try:
        parse_time(value)
        return True
    except SchedulingValidationError:
        return False


def time_to_minutes(value: str, end_of_range: bool = False) -> int:
    """Converts "HH:MM" to minutes since midnight.

    With end_of_range set, the "24:00" sentinel maps to 1440 so that a window may end at midnight.
    """
    parsed = parse_time(value)
    minutes = parsed.hour * 60 + parsed.minute
    if end_of_range and minutes == 0 and value.strip().startswith("24"):
        return MINUTES_PER_DAY
    return minutes


def minutes_to_time(minutes: int) -> str:
    """Formats minutes since midnight as HH:MM, wrapping past midnight."""
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def js_weekday(day: date) -> int:
    """Weekday number with Sunday = 0, as stored by the console."""
    return (day.weekday() + 1) % 7


def format_duration(minutes: int) -> str:
    if minutes <= 0:
        return ""
    hours, mins = divmod(minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if mins:
        parts.append(f"{mins}m")
    return " ".join(parts)
