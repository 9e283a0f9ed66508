import logging
from datetime import datetime
from typing import List, Optional, Tuple

from tutoring_scheduler import config
from tutoring_scheduler.clock import Clock
from tutoring_scheduler.converter import is_valid_timezone, resolve_zone
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import (
    AvailabilityProfile,
    AvailabilityWindow,
    ClassOccurrence,
    ConflictReport,
    ConflictStatus,
    RecurrenceSlot,
)
from tutoring_scheduler.recurrence import next_occurrence
from tutoring_scheduler.timeutils import DAY_NAMES, is_valid_time, js_weekday, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)


def window_bounds(window: AvailabilityWindow) -> Tuple[int, int]:
    """Start and end of a window in minutes since midnight. "24:00" ends at 1440.

    Raises:
        SchedulingValidationError: If either time is malformed.
    """
    return time_to_minutes(window.start_time), time_to_minutes(window.end_time, end_of_range=True)


def _day_label(day: int) -> str:
    return DAY_NAMES[day] if 0 <= day < len(DAY_NAMES) else f"Day {day}"


def _windows_label(windows: List[AvailabilityWindow]) -> str:
    if not windows:
        return "none"
    return ", ".join(f"{w.start_time}–{w.end_time}" for w in windows)


def _evaluate(
    day: int,
    start_min: int,
    duration_minutes: int,
    profile: AvailabilityProfile,
    slot: Optional[RecurrenceSlot],
) -> ConflictReport:
    end_min = start_min + duration_minutes
    windows = profile.windows_for(day)
    common = dict(
        day_of_week=day,
        start_minutes=start_min,
        end_minutes=end_min,
        timezone=profile.timezone,
        slot=slot,
    )

    if not windows:
        return ConflictReport(
            status=ConflictStatus.NO_WINDOWS_FOR_DAY,
            reason=f"{_day_label(day)}: no availability windows (timezone {profile.timezone})",
            **common,
        )

    bounds = []
    for window in windows:
        try:
            bounds.append(window_bounds(window))
        except SchedulingValidationError as e:
            logger.warning(f"Malformed availability window on {_day_label(day)}: {e}")
            return ConflictReport(
                status=ConflictStatus.INVALID_TIME,
                reason=f"{_day_label(day)}: invalid availability window {window.start_time}–{window.end_time}",
                covering_windows=windows,
                **common,
            )

    # Closed containment at both ends; any overrun is a rejection.
    if any(window_start <= start_min and window_end >= end_min for window_start, window_end in bounds):
        return ConflictReport(status=ConflictStatus.OK, reason="Teacher is available", covering_windows=windows, **common)

    requested = f"{minutes_to_time(start_min)}–{minutes_to_time(end_min)}"
    return ConflictReport(
        status=ConflictStatus.NOT_FULLY_COVERED,
        reason=(
            f"{_day_label(day)}: requested {requested} ({duration_minutes} min) is not fully covered. "
            f"Available: {_windows_label(windows)} (timezone {profile.timezone})"
        ),
        covering_windows=windows,
        **common,
    )


def _default_ok(profile: AvailabilityProfile, slot: Optional[RecurrenceSlot]) -> ConflictReport:
    return ConflictReport(
        status=ConflictStatus.OK,
        reason="Teacher uses default 24/7 availability",
        timezone=profile.timezone,
        slot=slot,
    )


def check_interval(
    start: datetime,
    duration_minutes: int,
    profile: AvailabilityProfile,
    slot: Optional[RecurrenceSlot] = None,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> ConflictReport:
    """Checks a concrete interval against the profile, in the profile's timezone."""
    if profile.is_default:
        return _default_ok(profile, slot)

    zone, _ = resolve_zone(profile.timezone, default_timezone)
    local = start.astimezone(zone)
    return _evaluate(js_weekday(local.date()), local.hour * 60 + local.minute, duration_minutes, profile, slot)


def check_occurrence(
    occurrence: ClassOccurrence,
    profile: AvailabilityProfile,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> ConflictReport:
    return check_interval(
        occurrence.start, occurrence.duration_minutes, profile, slot=occurrence.source_slot, default_timezone=default_timezone
    )


def check(
    slot: RecurrenceSlot,
    profile: AvailabilityProfile,
    clock: Clock,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> ConflictReport:
    """Checks one weekly slot against a teacher's availability.

    When the slot and the profile use different timezones, the slot's next occurrence is converted
    into the profile's timezone first; the weekday can change in the process. An unknown profile
    timezone resolves to `default_timezone`.
    """
    if profile.is_default:
        return _default_ok(profile, slot)

    day = slot.day_of_week
    if not (isinstance(day, int) and 0 <= day <= 6) or not is_valid_time(slot.time) or slot.duration_minutes <= 0:
        return ConflictReport(
            status=ConflictStatus.INVALID_TIME,
            reason=f"{_day_label(day) if isinstance(day, int) else 'Unknown day'}: invalid time/duration",
            slot=slot,
        )

    if slot.timezone == profile.timezone:
        return _evaluate(day, time_to_minutes(slot.time), slot.duration_minutes, profile, slot)

    if not is_valid_timezone(slot.timezone):
        return ConflictReport(
            status=ConflictStatus.INVALID_TIME,
            reason=f"{_day_label(day)}: unknown timezone {slot.timezone}",
            slot=slot,
        )

    occurrence = next_occurrence(slot, clock.now())
    return check_interval(occurrence.start, slot.duration_minutes, profile, slot=slot, default_timezone=default_timezone)


def summarize_conflicts(reports: List[ConflictReport]) -> Optional[str]:
    """Builds the multi-line message shown when some recurring slots do not fit."""
    failing = [r for r in reports if not r.ok]
    if not failing:
        return None
    lines = [f"• {r.reason}" for r in failing]
    return "Teacher not available for one or more recurring slots:\n" + "\n".join(lines)
