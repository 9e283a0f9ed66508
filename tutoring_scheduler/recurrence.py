import logging
from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from tutoring_scheduler import config
from tutoring_scheduler.converter import combine_local, is_valid_timezone
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import ClassOccurrence, RecurrencePattern, RecurrenceSlot, TimeOfDay
from tutoring_scheduler.timeutils import is_valid_time, js_weekday, parse_time

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def _is_valid_day(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6


def slot_problems(slot: RecurrenceSlot, index: int) -> List[str]:
    """Lists everything structurally wrong with one recurrence slot."""
    problems = []
    label = f"Slot {index + 1}"
    low, high = config.CLASS_DURATION_BOUNDS

    if not _is_valid_day(slot.day_of_week):
        problems.append(f"{label}: day of week {slot.day_of_week!r} is not in 0-6")
    if not is_valid_time(slot.time):
        problems.append(f"{label}: invalid time {slot.time!r}")
    if slot.duration_minutes <= 0:
        problems.append(f"{label}: duration must be positive")
    elif not low <= slot.duration_minutes <= high:
        problems.append(f"{label}: duration {slot.duration_minutes} min is outside {low}-{high}")
    if not is_valid_timezone(slot.timezone):
        problems.append(f"{label}: unknown timezone {slot.timezone!r}")
    return problems


def validate_pattern(pattern: RecurrencePattern) -> None:
    """Rejects a pattern that cannot be expanded.

    Raises:
        SchedulingValidationError: With every problem found, so the form can show them at once.
    """
    if not pattern.slots:
        raise SchedulingValidationError("Recurrence pattern has no slots")
    if not any(_is_valid_day(slot.day_of_week) for slot in pattern.slots):
        raise SchedulingValidationError("Recurrence pattern has no valid days of week")

    problems = []
    for index, slot in enumerate(pattern.slots):
        problems.extend(slot_problems(slot, index))
    if pattern.generation_period_months not in config.GENERATION_PERIODS:
        allowed = ", ".join(str(p) for p in config.GENERATION_PERIODS)
        problems.append(f"Generation period {pattern.generation_period_months} months is not one of {allowed}")

    if problems:
        raise SchedulingValidationError(problems)


def horizon(anchor_now: datetime, months: int) -> datetime:
    return anchor_now + relativedelta(months=months)


def _require_aware(anchor_now: datetime):
    if anchor_now.tzinfo is None:
        raise SchedulingValidationError("anchor_now must be timezone-aware")


def _first_date(day_of_week: int, start_time: TimeOfDay, zone: ZoneInfo, anchor_now: datetime) -> date:
    """First local date on/after the anchor with the right weekday whose start is not in the past."""
    local_date = anchor_now.astimezone(zone).date()
    day = local_date + timedelta(days=(day_of_week - js_weekday(local_date)) % 7)
    instant, _ = combine_local(day, start_time, zone)
    if instant < anchor_now:
        day += WEEK
    return day


def next_occurrence(slot: RecurrenceSlot, anchor_now: datetime) -> ClassOccurrence:
    """The slot's first occurrence at or after `anchor_now`."""
    _require_aware(anchor_now)
    zone = ZoneInfo(slot.timezone)
    start_time = parse_time(slot.time)
    day = _first_date(slot.day_of_week, start_time, zone, anchor_now)
    instant, shifted = combine_local(day, start_time, zone)
    return ClassOccurrence(
        start=instant,
        duration_minutes=slot.duration_minutes,
        timezone=slot.timezone,
        source_slot=slot,
        wall_clock_shifted=shifted,
    )


def expand_slot(slot: RecurrenceSlot, anchor_now: datetime, until: datetime) -> List[ClassOccurrence]:
    """Expands one weekly slot into occurrences from `anchor_now` up to and including `until`.

    Occurrences are exactly 7 calendar days apart in the slot's timezone, so the wall-clock time
    stays fixed across DST changes while the UTC instants shift by the offset change.
    """
    _require_aware(anchor_now)
    zone = ZoneInfo(slot.timezone)
    start_time = parse_time(slot.time)
    day = _first_date(slot.day_of_week, start_time, zone, anchor_now)

    occurrences: List[ClassOccurrence] = []
    while True:
        instant, shifted = combine_local(day, start_time, zone)
        if instant > until:
            break
        if shifted:
            logger.warning(f"{slot.time} does not exist on {day} in {slot.timezone} (DST gap); using {instant.astimezone(zone):%H:%M}")
        occurrences.append(
            ClassOccurrence(
                start=instant,
                duration_minutes=slot.duration_minutes,
                timezone=slot.timezone,
                source_slot=slot,
                wall_clock_shifted=shifted,
            )
        )
        day += WEEK
    return occurrences


def expand_by_slot(pattern: RecurrencePattern, anchor_now: datetime) -> List[List[ClassOccurrence]]:
    """Validates the pattern and returns one occurrence stream per slot, in slot order."""
    _require_aware(anchor_now)
    validate_pattern(pattern)
    until = horizon(anchor_now, pattern.generation_period_months)
    return [expand_slot(slot, anchor_now, until) for slot in pattern.slots]


def expand(pattern: RecurrencePattern, anchor_now: datetime) -> List[ClassOccurrence]:
    """Expands every slot of the pattern and merges the streams by start instant."""
    streams = expand_by_slot(pattern, anchor_now)
    merged = sorted((o for stream in streams for o in stream), key=lambda o: o.start)
    logger.info(f"Generated {len(merged)} occurrences from {len(pattern.slots)} weekly slots")
    return merged
