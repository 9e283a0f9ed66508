"""Scheduling attempts: validate, match against availability, offer alternatives.

A client-side result is advisory. The backend performs the authoritative collision check at
submission time and may still reject a matched attempt.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from tutoring_scheduler import config
from tutoring_scheduler.bookings import find_booking_conflict
from tutoring_scheduler.clock import Clock
from tutoring_scheduler.converter import convert_for_parties, format_in_timezone, is_valid_timezone
from tutoring_scheduler.dst import check_dst_warning, wall_clock_drift
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.matcher import check, check_occurrence, summarize_conflicts
from tutoring_scheduler.models import (
    AvailabilityProfile,
    Booking,
    BookingKind,
    ClassOccurrence,
    ConflictReport,
    ConflictResponse,
    ConflictType,
    DSTWarning,
    PartyTimes,
    PartyTimezones,
    RecurrencePattern,
    WallClockDrift,
)
from tutoring_scheduler.payloads import parse_availability_payload, parse_bookings_payload, parse_recurrence_payload
from tutoring_scheduler.recurrence import expand_by_slot
from tutoring_scheduler.suggestions import suggest
from tutoring_scheduler.timeutils import minutes_to_time

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    REQUESTED = "requested"
    VALIDATED = "validated"
    REJECTED_INVALID = "rejected_invalid"
    MATCHED = "matched"
    CONFLICT_DETECTED = "conflict_detected"
    ALTERNATIVES_OFFERED = "alternatives_offered"


@dataclass
class SchedulingAttempt:
    state: AttemptState = AttemptState.REQUESTED
    history: List[AttemptState] = field(default_factory=lambda: [AttemptState.REQUESTED])
    occurrences: List[ClassOccurrence] = field(default_factory=list)
    reports: List[ConflictReport] = field(default_factory=list)
    conflicts: List[ConflictResponse] = field(default_factory=list)
    party_times: List[PartyTimes] = field(default_factory=list)
    dst_warnings: List[DSTWarning] = field(default_factory=list)
    drift: List[WallClockDrift] = field(default_factory=list)
    problems: List[str] = field(default_factory=list)

    def advance(self, state: AttemptState):
        self.history.append(state)
        self.state = state

    @property
    def ok(self) -> bool:
        return self.state == AttemptState.MATCHED

    @property
    def message(self) -> Optional[str]:
        if self.state == AttemptState.REJECTED_INVALID:
            return "Invalid scheduling request:\n" + "\n".join(f"• {p}" for p in self.problems)
        availability_summary = summarize_conflicts(self.reports)
        if availability_summary:
            return availability_summary
        if self.conflicts:
            return self.conflicts[0].reason
        return None


def _availability_conflict(
    report: ConflictReport,
    rejected: ClassOccurrence,
    profile: AvailabilityProfile,
    bookings: List[Booking],
    clock: Clock,
    limit: int,
    default_timezone: str,
) -> ConflictResponse:
    requested: Dict[str, Optional[str]] = {"startLocal": None, "endLocal": None}
    if report.start_minutes is not None and report.end_minutes is not None:
        requested = {"startLocal": minutes_to_time(report.start_minutes), "endLocal": minutes_to_time(report.end_minutes)}

    return ConflictResponse(
        reason=report.reason or "Teacher not available during this time",
        conflict_type=ConflictType.NO_AVAILABILITY,
        conflict_details={
            "status": report.status.value,
            "dayOfWeek": report.day_of_week,
            "requested": requested,
            "teacherTimezone": profile.timezone,
            "slotsForDay": [{"startTime": w.start_time, "endTime": w.end_time} for w in report.covering_windows],
        },
        alternatives=suggest(rejected, profile, bookings, clock, limit=limit, default_timezone=default_timezone),
    )


def _booking_conflict(
    booking: Booking,
    rejected: ClassOccurrence,
    profile: Optional[AvailabilityProfile],
    bookings: List[Booking],
    clock: Clock,
    limit: int,
    default_timezone: str,
) -> ConflictResponse:
    display_timezone = profile.timezone if profile is not None else rejected.timezone
    start_label = format_in_timezone(booking.start, display_timezone, "%H:%M", default_timezone)
    end_label = format_in_timezone(booking.end, display_timezone, "%H:%M", default_timezone)

    if booking.kind == BookingKind.UNAVAILABLE:
        reason = f"Teacher marked unavailable: {booking.reason or 'unavailable period'}"
        conflict_type = ConflictType.NO_AVAILABILITY
    else:
        reason = f"Teacher has existing class with {booking.student_name or 'another student'} from {start_label} to {end_label}"
        conflict_type = ConflictType.EXISTING_CLASS

    return ConflictResponse(
        reason=reason,
        conflict_type=conflict_type,
        conflict_details={
            "classId": booking.class_id,
            "studentName": booking.student_name,
            "subject": booking.subject,
            "startTime": booking.start.isoformat(),
            "endTime": booking.end.isoformat(),
            "requestedStart": rejected.start.isoformat(),
        },
        alternatives=suggest(rejected, profile, bookings, clock, limit=limit, default_timezone=default_timezone),
    )


def _annotate(
    attempt: SchedulingAttempt,
    streams: List[List[ClassOccurrence]],
    parties: Optional[PartyTimezones],
    clock: Clock,
    default_timezone: str,
):
    """Adds per-party display times, DST warnings and wall-clock drift."""
    if parties is None:
        return

    attempt.party_times = [convert_for_parties(o.start, parties, default_timezone) for o in attempt.occurrences]
    seen = set()
    for timezone_name in (parties.teacher, parties.guardian, parties.admin):
        if timezone_name in seen:
            continue
        seen.add(timezone_name)
        if not is_valid_timezone(timezone_name):
            logger.warning(f"Skipping DST checks for unknown timezone '{timezone_name}'")
            continue
        warning = check_dst_warning(timezone_name, clock)
        if warning.has_warning:
            attempt.dst_warnings.append(warning)
        for stream in streams:
            attempt.drift.extend(wall_clock_drift(stream, timezone_name))


def _finish(attempt: SchedulingAttempt) -> SchedulingAttempt:
    if attempt.conflicts:
        attempt.advance(AttemptState.CONFLICT_DETECTED)
        attempt.advance(AttemptState.ALTERNATIVES_OFFERED)
        logger.info(f"Scheduling attempt found {len(attempt.conflicts)} conflict(s)")
    else:
        attempt.advance(AttemptState.MATCHED)
        logger.info(f"Scheduling attempt matched {len(attempt.occurrences)} occurrence(s)")
    return attempt


def schedule_recurring(
    pattern: RecurrencePattern,
    profile: Optional[AvailabilityProfile],
    bookings: List[Booking],
    clock: Clock,
    parties: Optional[PartyTimezones] = None,
    default_timezone: str = config.DEFAULT_TIMEZONE,
    limit: int = config.SUGGESTION_LIMIT,
    exclude_class_id: Optional[str] = None,
) -> SchedulingAttempt:
    """Runs one scheduling attempt for a recurring pattern.

    Availability is checked per weekly slot; existing bookings are checked per occurrence, reporting
    the first collision of each slot. A `profile` of None means the availability lookup failed, in
    which case only bookings are checked.

    Raises:
        SchedulingValidationError: If the pattern is structurally invalid.
    """
    streams = expand_by_slot(pattern, clock.now())
    attempt = SchedulingAttempt()
    attempt.advance(AttemptState.VALIDATED)
    attempt.occurrences = sorted((o for stream in streams for o in stream), key=lambda o: o.start)

    if profile is None:
        logger.warning("Availability profile unavailable, checking existing bookings only")

    for slot, stream in zip(pattern.slots, streams):
        if not stream:
            continue

        if profile is not None:
            report = check(slot, profile, clock, default_timezone)
            attempt.reports.append(report)
            if not report.ok:
                attempt.conflicts.append(
                    _availability_conflict(report, stream[0], profile, bookings, clock, limit, default_timezone)
                )
                continue

        for occurrence in stream:
            booking = find_booking_conflict(occurrence.start, occurrence.duration_minutes, bookings, exclude_class_id)
            if booking is not None:
                attempt.conflicts.append(
                    _booking_conflict(booking, occurrence, profile, bookings, clock, limit, default_timezone)
                )
                break

    _annotate(attempt, streams, parties, clock, default_timezone)
    return _finish(attempt)


def schedule_single(
    start: datetime,
    duration_minutes: int,
    timezone_name: str,
    profile: Optional[AvailabilityProfile],
    bookings: List[Booking],
    clock: Clock,
    parties: Optional[PartyTimezones] = None,
    default_timezone: str = config.DEFAULT_TIMEZONE,
    limit: int = config.SUGGESTION_LIMIT,
    exclude_class_id: Optional[str] = None,
) -> SchedulingAttempt:
    """Runs one scheduling attempt for a one-off class (create or reschedule).

    Raises:
        SchedulingValidationError: If the start is naive or the duration is out of range.
    """
    low, high = config.CLASS_DURATION_BOUNDS
    problems = []
    if start.tzinfo is None:
        problems.append("Class start must be timezone-aware")
    if duration_minutes <= 0:
        problems.append("Duration must be a positive number")
    elif not low <= duration_minutes <= high:
        problems.append(f"Duration {duration_minutes} min is outside {low}-{high}")
    if problems:
        raise SchedulingValidationError(problems)

    occurrence = ClassOccurrence(start=start, duration_minutes=duration_minutes, timezone=timezone_name)
    attempt = SchedulingAttempt()
    attempt.advance(AttemptState.VALIDATED)
    attempt.occurrences = [occurrence]

    availability_ok = True
    if profile is not None:
        report = check_occurrence(occurrence, profile, default_timezone)
        attempt.reports.append(report)
        if not report.ok:
            availability_ok = False
            attempt.conflicts.append(
                _availability_conflict(report, occurrence, profile, bookings, clock, limit, default_timezone)
            )

    if availability_ok:
        booking = find_booking_conflict(start, duration_minutes, bookings, exclude_class_id)
        if booking is not None:
            attempt.conflicts.append(
                _booking_conflict(booking, occurrence, profile, bookings, clock, limit, default_timezone)
            )

    _annotate(attempt, [[occurrence]], parties, clock, default_timezone)
    return _finish(attempt)


def attempt_from_payload(
    pattern_payload: Dict,
    availability_payload: Optional[Dict],
    bookings_payload: List[Dict],
    clock: Clock,
    parties: Optional[PartyTimezones] = None,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> SchedulingAttempt:
    """Boundary entry point for form data: invalid input becomes a rejected attempt instead of an error."""
    try:
        pattern = parse_recurrence_payload(pattern_payload, default_timezone)
        profile = (
            parse_availability_payload(availability_payload, default_timezone)
            if availability_payload is not None
            else None
        )
        bookings = parse_bookings_payload(bookings_payload, default_timezone)
        return schedule_recurring(pattern, profile, bookings, clock, parties, default_timezone)
    except SchedulingValidationError as e:
        logger.warning(f"Rejected invalid scheduling request: {e}")
        attempt = SchedulingAttempt(problems=e.problems)
        attempt.advance(AttemptState.REJECTED_INVALID)
        return attempt
