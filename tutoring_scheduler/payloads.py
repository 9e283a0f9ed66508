"""Adapters between the console's JSON shapes and the scheduling models."""
import logging
from typing import Any, Dict, List, Optional

from tutoring_scheduler import config
from tutoring_scheduler.converter import UTC, convert
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import (
    AvailabilityProfile,
    AvailabilityWindow,
    Booking,
    BookingKind,
    RecurrencePattern,
    RecurrenceSlot,
)
from tutoring_scheduler.recurrence import validate_pattern
from tutoring_scheduler.timeutils import is_valid_time, time_to_minutes

logger = logging.getLogger(__name__)


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _coerce_day(value: Any) -> Optional[int]:
    day = _coerce_int(value)
    if day is None or not 0 <= day <= 6:
        return None
    return day


def _first(entry: Dict, *keys: str) -> Any:
    for key in keys:
        if entry.get(key) not in (None, ""):
            return entry[key]
    return None


def parse_availability_payload(data: Dict, default_timezone: str = config.DEFAULT_TIMEZONE) -> AvailabilityProfile:
    """Builds a profile from `{isDefaultAvailability, slotsByDay, timezone}`.

    Windows with malformed times are kept as-is so the matcher can report them per slot.

    Raises:
        SchedulingValidationError: On an unknown weekday key or a window length outside the allowed range.
    """
    timezone = data.get("timezone") or default_timezone
    if data.get("isDefaultAvailability"):
        return AvailabilityProfile.default(timezone)

    low, high = config.WINDOW_DURATION_BOUNDS
    windows: List[AvailabilityWindow] = []
    problems: List[str] = []

    for key, entries in (data.get("slotsByDay") or {}).items():
        day = _coerce_day(key)
        if day is None:
            problems.append(f"Availability day {key!r} is not in 0-6")
            continue

        for entry in entries or []:
            start = str(_first(entry, "startTime", "start", "start_time") or "")
            end = str(_first(entry, "endTime", "end", "end_time") or "")
            if is_valid_time(start) and is_valid_time(end):
                length = time_to_minutes(end, end_of_range=True) - time_to_minutes(start)
                if not low <= length <= high:
                    problems.append(f"Availability window {start}–{end} on day {day} is outside {low}-{high} minutes")
                    continue
            windows.append(AvailabilityWindow(day_of_week=day, start_time=start, end_time=end, timezone=timezone))

    if problems:
        raise SchedulingValidationError(problems)

    logger.debug(f"Parsed {len(windows)} availability windows ({timezone})")
    return AvailabilityProfile.from_windows(windows, timezone)


def parse_recurrence_payload(data: Dict, default_timezone: str = config.DEFAULT_TIMEZONE) -> RecurrencePattern:
    """Builds a validated pattern from `{recurrenceDetails: [...], generationPeriodMonths}`.

    Raises:
        SchedulingValidationError: If the pattern cannot be expanded.
    """
    details = data.get("recurrenceDetails") or []
    if not details:
        raise SchedulingValidationError("Recurrence pattern has no slots")

    days = [_coerce_day(entry.get("dayOfWeek")) for entry in details]
    if all(day is None for day in days):
        raise SchedulingValidationError("Recurrence pattern has no valid days of week")

    problems: List[str] = []
    slots: List[RecurrenceSlot] = []
    for index, (entry, day) in enumerate(zip(details, days)):
        duration = _coerce_int(entry.get("duration"))
        if day is None:
            problems.append(f"Slot {index + 1}: day of week {entry.get('dayOfWeek')!r} is not in 0-6")
        if duration is None:
            problems.append(f"Slot {index + 1}: duration {entry.get('duration')!r} is not a number")
        if day is None or duration is None:
            continue
        slots.append(
            RecurrenceSlot(
                day_of_week=day,
                time=str(entry.get("time") or ""),
                duration_minutes=duration,
                timezone=entry.get("timezone") or data.get("timezone") or default_timezone,
            )
        )

    if problems:
        raise SchedulingValidationError(problems)

    period = _coerce_int(
        data.get("generationPeriodMonths") or (data.get("recurrence") or {}).get("generationPeriodMonths")
    )
    pattern = RecurrencePattern(
        slots=slots,
        generation_period_months=period if period is not None else config.DEFAULT_GENERATION_PERIOD_MONTHS,
    )
    validate_pattern(pattern)
    return pattern


def parse_bookings_payload(entries: List[Dict], default_timezone: str = config.DEFAULT_TIMEZONE) -> List[Booking]:
    """Builds bookings from class or unavailable-period records. Unreadable records are skipped."""
    bookings: List[Booking] = []
    for entry in entries or []:
        raw_start = _first(entry, "startDateTime", "startTime", "scheduledDate", "start")
        result = convert(raw_start, entry.get("timezone") or default_timezone, "UTC", default_timezone)
        if result.instant is None or result.degraded:
            logger.warning(f"Skipping booking with unreadable start {raw_start!r}")
            continue

        duration = _coerce_int(entry.get("duration"))
        raw_end = _first(entry, "endDateTime", "endTime", "end")
        if duration is None and raw_end is not None:
            end = convert(raw_end, entry.get("timezone") or default_timezone, "UTC", default_timezone)
            if end.instant is not None and not end.degraded:
                duration = round((end.instant - result.instant).total_seconds() / 60)
        if duration is None or duration <= 0:
            logger.warning(f"Skipping booking at {raw_start!r} without a usable duration")
            continue

        kind = BookingKind.UNAVAILABLE if entry.get("kind") == BookingKind.UNAVAILABLE.value else BookingKind.CLASS
        bookings.append(
            Booking(
                start=result.instant.astimezone(UTC),
                duration_minutes=duration,
                kind=kind,
                class_id=str(entry["classId"]) if entry.get("classId") is not None else None,
                student_name=entry.get("studentName"),
                subject=entry.get("subject"),
                reason=entry.get("reason"),
            )
        )
    return bookings
