"""Daylight saving time transitions and their effect on saved wall-clock times."""
import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from tutoring_scheduler import config
from tutoring_scheduler.clock import Clock
from tutoring_scheduler.converter import UTC, combine_local, is_valid_timezone
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import (
    ClassOccurrence,
    DSTAdjustment,
    DSTInfo,
    DSTKind,
    DSTTransition,
    DSTWarning,
    TimeOfDay,
    WallClockDrift,
)

logger = logging.getLogger(__name__)

SEARCH_PRECISION = timedelta(hours=1)


def _zone(timezone_name: str) -> ZoneInfo:
    if not is_valid_timezone(timezone_name):
        raise SchedulingValidationError(f"Unknown timezone '{timezone_name}'")
    return ZoneInfo(timezone_name)


def _offset(zone: ZoneInfo, instant: datetime) -> int:
    return round(instant.astimezone(zone).utcoffset().total_seconds() / 60)


def _find_boundary(zone: ZoneInfo, start: datetime, end: datetime) -> datetime:
    """Binary-searches the first instant in (start, end] carrying a different offset, to 1-hour precision."""
    start_offset = _offset(zone, start)
    while end - start > SEARCH_PRECISION:
        mid = start + (end - start) / 2
        if _offset(zone, mid) == start_offset:
            start = mid
        else:
            end = mid
    return end


def find_transitions(timezone_name: str, year: int) -> List[DSTTransition]:
    """Finds the instants in `year` where the UTC offset of `timezone_name` changes.

    Each month is sampled at 00:00 UTC on day 1, day 15 and day 1 of the following month. When two
    adjacent samples disagree, the boundary between them is located by binary search.

    Returns:
        Transitions sorted by instant. Timezones without DST return an empty list.
    """
    zone = _zone(timezone_name)
    year_start = datetime(year, 1, 1, tzinfo=UTC)
    year_end = datetime(year + 1, 1, 1, tzinfo=UTC)
    transitions: List[DSTTransition] = []

    for month in range(1, 13):
        first = datetime(year, month, 1, tzinfo=UTC)
        middle = datetime(year, month, 15, tzinfo=UTC)
        following = datetime(year + 1, 1, 1, tzinfo=UTC) if month == 12 else datetime(year, month + 1, 1, tzinfo=UTC)

        for start, end in ((first, middle), (middle, following)):
            before = _offset(zone, start)
            after = _offset(zone, end)
            if before == after:
                continue

            instant = _find_boundary(zone, start, end)
            if not year_start <= instant < year_end:
                continue
            transitions.append(
                DSTTransition(
                    instant=instant,
                    kind=DSTKind.SPRING_FORWARD if after > before else DSTKind.FALL_BACK,
                    offset_before_minutes=before,
                    offset_after_minutes=after,
                    timezone=timezone_name,
                )
            )

    transitions.sort(key=lambda t: t.instant)
    logger.debug(f"Found {len(transitions)} DST transitions for {timezone_name} in {year}")
    return transitions


def get_dst_info(timezone_name: str, clock: Clock, year: Optional[int] = None) -> DSTInfo:
    """Summarizes a timezone's transitions for a year relative to the clock's current instant."""
    now = clock.now()
    if year is None:
        year = now.astimezone(_zone(timezone_name)).year

    transitions = find_transitions(timezone_name, year)
    upcoming = [t for t in transitions if t.instant > now]
    recent = [t for t in transitions if t.instant <= now]

    return DSTInfo(
        timezone=timezone_name,
        year=year,
        transitions=transitions,
        upcoming=upcoming,
        recent=recent,
        next_transition=upcoming[0] if upcoming else None,
        last_transition=recent[-1] if recent else None,
    )


def next_transition(timezone_name: str, clock: Clock) -> Optional[DSTTransition]:
    """First transition strictly after now, looking into the following year if needed."""
    now = clock.now()
    year = now.astimezone(_zone(timezone_name)).year
    for candidate_year in (year, year + 1):
        for transition in find_transitions(timezone_name, candidate_year):
            if transition.instant > now:
                return transition
    return None


def _format_hours(minutes: int) -> str:
    hours = minutes / 60
    amount = f"{int(hours)}" if hours.is_integer() else f"{hours:g}"
    return f"{amount} hour{'' if hours == 1 else 's'}"


def dst_warning_message(transition: DSTTransition, days_until: int) -> str:
    action = "spring forward" if transition.kind == DSTKind.SPRING_FORWARD else "fall back"
    direction = "ahead" if transition.kind == DSTKind.SPRING_FORWARD else "back"
    amount = _format_hours(transition.time_difference_minutes)

    if days_until == 0:
        return f"Daylight saving time changes today! Clocks {action} {amount} {direction}."
    if days_until == 1:
        return f"Daylight saving time changes tomorrow! Clocks will {action} {amount} {direction}."
    return f"Daylight saving time changes in {days_until} days. Clocks will {action} {amount} {direction}."


def check_dst_warning(
    timezone_name: str,
    clock: Clock,
    warning_days: int = config.DST_WARNING_DAYS,
) -> DSTWarning:
    """Tells whether the timezone's next clock change falls within `warning_days`."""
    transition = next_transition(timezone_name, clock)
    if transition is None:
        return DSTWarning(timezone=timezone_name, has_warning=False)

    days_until = math.ceil((transition.instant - clock.now()) / timedelta(days=1))
    return DSTWarning(
        timezone=timezone_name,
        has_warning=0 < days_until <= warning_days,
        days_until=days_until,
        transition=transition,
        message=dst_warning_message(transition, days_until),
    )


def _minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def wall_clock_drift(occurrences: List[ClassOccurrence], viewer_timezone: str) -> List[WallClockDrift]:
    """Lists occurrences whose local time for the viewer differs from the first occurrence's.

    A class fixed in one timezone moves on the clock of a viewer in another timezone whenever
    only one of the two observes a DST change.
    """
    if not occurrences:
        return []

    zone = _zone(viewer_timezone)
    ordered = sorted(occurrences, key=lambda o: o.start)
    baseline = _minute_of_day(ordered[0].start.astimezone(zone))
    drifts: List[WallClockDrift] = []

    for occurrence in ordered[1:]:
        local = occurrence.start.astimezone(zone)
        shift = _minute_of_day(local) - baseline
        if shift > 720:
            shift -= 1440
        elif shift <= -720:
            shift += 1440
        if shift:
            drifts.append(
                WallClockDrift(
                    occurrence_start=occurrence.start,
                    viewer_timezone=viewer_timezone,
                    viewer_local=local,
                    shift_minutes=shift,
                )
            )
    return drifts


def adjust_for_dst(
    original: datetime,
    student_wall_clock: TimeOfDay,
    student_timezone: str,
    teacher_timezone: str,
) -> DSTAdjustment:
    """Re-anchors a stored class instant to the student's wall-clock time.

    The student's timezone is the anchor: the adjusted instant reads `student_wall_clock` on the
    student's local date of `original`. The teacher's clock absorbs any difference.
    """
    student_zone = _zone(student_timezone)
    teacher_zone = _zone(teacher_timezone)

    student_date = original.astimezone(student_zone).date()
    adjusted, _ = combine_local(student_date, student_wall_clock, student_zone)

    teacher_before = original.astimezone(teacher_zone)
    teacher_after = adjusted.astimezone(teacher_zone)
    shift = round((teacher_after.replace(tzinfo=None) - teacher_before.replace(tzinfo=None)).total_seconds() / 60)

    if adjusted != original:
        logger.info(
            f"Class at {original.isoformat()} re-anchored to {adjusted.isoformat()} "
            f"({student_timezone}); teacher clock shifts {shift} minutes"
        )

    return DSTAdjustment(
        original=original.astimezone(UTC),
        adjusted=adjusted,
        student_local=adjusted.astimezone(student_zone),
        teacher_original_local=teacher_before,
        teacher_adjusted_local=teacher_after,
        teacher_shift_minutes=shift,
    )
