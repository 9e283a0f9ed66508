import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from tutoring_scheduler import config
from tutoring_scheduler.bookings import Interval, find_booking_conflict, merge_busy_intervals, overlaps
from tutoring_scheduler.clock import Clock
from tutoring_scheduler.converter import civil_to_instant, resolve_zone
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.matcher import check_interval, window_bounds
from tutoring_scheduler.models import AlternativeSlotSuggestion, AvailabilityProfile, Booking, ClassOccurrence
from tutoring_scheduler.timeutils import MINUTES_PER_DAY, js_weekday

logger = logging.getLogger(__name__)

# (day of week, start minute, end minute) in the profile's timezone
WindowSpan = Tuple[int, int, int]


def usable_windows(profile: Optional[AvailabilityProfile]) -> List[WindowSpan]:
    """Windows that can produce candidates. A default profile counts as seven full days."""
    if profile is None:
        return []
    if profile.is_default:
        return [(day, 0, MINUTES_PER_DAY) for day in range(7)]

    spans = []
    for window in profile.all_windows():
        try:
            start, end = window_bounds(window)
        except SchedulingValidationError as e:
            logger.warning(f"Skipping malformed availability window: {e}")
            continue
        if end > start:
            spans.append((window.day_of_week, start, end))
    return spans


def _candidate_minutes(window_start: int, window_end: int, duration_minutes: int, step: int) -> List[int]:
    minutes = []
    current = window_start
    while current + duration_minutes <= window_end:
        minutes.append(current)
        current += step
    return minutes


def _distance_minutes(start: datetime, requested: datetime) -> int:
    return round(abs((start - requested).total_seconds()) / 60)


def _is_busy(start: datetime, duration_minutes: int, busy: List[Interval]) -> bool:
    end = start + timedelta(minutes=duration_minutes)
    return any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in busy)


def _rank(starts: List[datetime], requested: datetime) -> List[datetime]:
    return sorted(starts, key=lambda s: (abs((s - requested).total_seconds()), s))


def _fallback(
    rejected: ClassOccurrence,
    existing_bookings: List[Booking],
    earliest: datetime,
    limit: int,
    default_timezone: str,
) -> List[AlternativeSlotSuggestion]:
    """Same wall-clock time on the days after the request, without availability confirmation."""
    zone, _ = resolve_zone(rejected.timezone, default_timezone)
    local = rejected.start.astimezone(zone).replace(tzinfo=None)
    max_days = 7 * config.SUGGESTION_WEEKS_PER_WINDOW

    starts = []
    for offset in range(1, max_days + 1):
        start = civil_to_instant(local + timedelta(days=offset), zone)
        if start < earliest:
            continue
        if find_booking_conflict(start, rejected.duration_minutes, existing_bookings):
            continue
        starts.append(start)
        if len(starts) >= limit:
            break

    return [
        AlternativeSlotSuggestion(
            start=start,
            duration_minutes=rejected.duration_minutes,
            distance_from_request_minutes=_distance_minutes(start, rejected.start),
            verified=False,
            timezone=rejected.timezone,
        )
        for start in starts
    ]


def suggest(
    rejected: ClassOccurrence,
    profile: Optional[AvailabilityProfile],
    existing_bookings: List[Booking],
    clock: Clock,
    limit: int = config.SUGGESTION_LIMIT,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> List[AlternativeSlotSuggestion]:
    """Proposes replacement slots for a rejected occurrence, nearest to the original request first.

    Every availability window is walked weekly for a bounded number of weeks, starting from the first
    matching weekday at or after now plus the guard period. Candidates start every step inside the
    window, must fit the class entirely and must not overlap an existing booking.

    Args:
        rejected: The occurrence that could not be scheduled.
        profile: The teacher's availability, or None when it could not be looked up.
        existing_bookings: Commitments the suggestions must not collide with.
        clock: Source of "now" for the guard period.
        limit: Maximum number of suggestions.
        default_timezone: Used when the profile or occurrence timezone is unknown.

    Returns:
        Suggestions sorted by distance from the rejected start. When the profile has no usable
        windows, unverified fallback suggestions are returned instead.
    """
    if limit <= 0:
        return []

    earliest = clock.now() + timedelta(hours=config.GUARD_HOURS)
    duration = rejected.duration_minutes
    spans = usable_windows(profile)

    if not spans:
        logger.warning("No usable availability windows, proposing unverified fallback slots")
        return _fallback(rejected, existing_bookings, earliest, limit, default_timezone)

    zone, _ = resolve_zone(profile.timezone, default_timezone)
    earliest_date = earliest.astimezone(zone).date()
    # Covers every candidate generated below
    search_end = earliest + timedelta(weeks=config.SUGGESTION_WEEKS_PER_WINDOW + 1, days=1)
    busy = merge_busy_intervals(existing_bookings, earliest, search_end)
    seen = set()
    starts: List[datetime] = []

    for day, window_start, window_end in spans:
        first_date = earliest_date + timedelta(days=(day - js_weekday(earliest_date)) % 7)
        for week in range(config.SUGGESTION_WEEKS_PER_WINDOW):
            local_date = first_date + timedelta(weeks=week)
            midnight = datetime(local_date.year, local_date.month, local_date.day)
            for minute in _candidate_minutes(window_start, window_end, duration, config.SUGGESTION_STEP_MINUTES):
                start = civil_to_instant(midnight + timedelta(minutes=minute), zone)
                if start < earliest or start in seen:
                    continue
                seen.add(start)
                if _is_busy(start, duration, busy):
                    continue
                # Re-check compliance: a candidate inside a DST gap lands on a different clock reading.
                if not check_interval(start, duration, profile, default_timezone=default_timezone).ok:
                    continue
                starts.append(start)

    ranked = _rank(starts, rejected.start)[:limit]
    logger.debug(f"Ranked {len(starts)} candidate slots, returning {len(ranked)}")
    return [
        AlternativeSlotSuggestion(
            start=start,
            duration_minutes=duration,
            distance_from_request_minutes=_distance_minutes(start, rejected.start),
            verified=True,
            timezone=profile.timezone,
        )
        for start in ranked
    ]
