from datetime import datetime, timezone

from tutoring_scheduler.clock import FixedClock
from tutoring_scheduler.matcher import check, check_interval, check_occurrence, summarize_conflicts
from tutoring_scheduler.models import (
    AvailabilityProfile,
    AvailabilityWindow,
    ClassOccurrence,
    ConflictStatus,
    RecurrenceSlot,
)

CLOCK = FixedClock(datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc))


def profile(tz="America/New_York", windows=((1, "09:00", "17:00"),)):
    return AvailabilityProfile.from_windows(
        [AvailabilityWindow(day_of_week=d, start_time=s, end_time=e, timezone=tz) for d, s, e in windows],
        tz,
    )


def slot(day=1, time="09:00", duration=60, tz="America/New_York"):
    return RecurrenceSlot(day_of_week=day, time=time, duration_minutes=duration, timezone=tz)


def test_slot_overrunning_window_end_is_rejected():
    report = check(slot(time="16:30", duration=60), profile(), CLOCK)

    assert report.status == ConflictStatus.NOT_FULLY_COVERED
    assert not report.ok
    assert "16:30–17:30" in report.reason
    assert "09:00–17:00" in report.reason
    assert [w.start_time for w in report.covering_windows] == ["09:00"]


def test_slot_filling_whole_window_is_accepted():
    report = check(slot(time="09:00", duration=480), profile(), CLOCK)
    assert report.status == ConflictStatus.OK
    assert report.ok


def test_slot_starting_before_window_is_rejected():
    report = check(slot(time="08:45", duration=30), profile(), CLOCK)
    assert report.status == ConflictStatus.NOT_FULLY_COVERED


def test_day_without_windows():
    report = check(slot(day=2), profile(), CLOCK)
    assert report.status == ConflictStatus.NO_WINDOWS_FOR_DAY
    assert report.reason.startswith("Tuesday: no availability windows")


def test_default_profile_accepts_anything():
    report = check(slot(day=6, time="03:00", duration=180), AvailabilityProfile.default("Asia/Dubai"), CLOCK)
    assert report.ok


def test_window_ending_at_midnight():
    evening = profile(windows=((1, "20:00", "24:00"),))
    assert check(slot(time="23:00", duration=60), evening, CLOCK).ok
    assert check(slot(time="23:30", duration=60), evening, CLOCK).status == ConflictStatus.NOT_FULLY_COVERED


def test_any_of_several_windows_may_contain_the_slot():
    split = profile(windows=((1, "09:00", "12:00"), (1, "14:00", "18:00")))
    assert check(slot(time="15:00", duration=90), split, CLOCK).ok
    assert not check(slot(time="11:30", duration=60), split, CLOCK).ok


def test_malformed_window_reports_invalid_time():
    broken = profile(windows=((1, "9am", "17:00"),))
    report = check(slot(), broken, CLOCK)
    assert report.status == ConflictStatus.INVALID_TIME


def test_malformed_slot_reports_invalid_time():
    assert check(slot(time="25:00"), profile(), CLOCK).status == ConflictStatus.INVALID_TIME
    assert check(slot(day=8), profile(), CLOCK).status == ConflictStatus.INVALID_TIME
    assert check(slot(duration=0), profile(), CLOCK).status == ConflictStatus.INVALID_TIME
    assert check(slot(tz="Mars/Olympus"), profile(), CLOCK).status == ConflictStatus.INVALID_TIME


def test_cross_timezone_slot_can_change_weekday():
    """Monday 18:00 in New York is already Tuesday 02:00 in Dubai."""
    dubai = profile(tz="Asia/Dubai", windows=((1, "09:00", "21:00"),))

    report = check(slot(day=1, time="18:00"), dubai, CLOCK)

    assert report.status == ConflictStatus.NO_WINDOWS_FOR_DAY
    assert report.day_of_week == 2
    assert report.start_minutes == 120
    assert report.timezone == "Asia/Dubai"


def test_cross_timezone_slot_inside_converted_window():
    dubai = profile(tz="Asia/Dubai", windows=((1, "09:00", "21:00"),))
    # Monday 08:00 in New York is Monday 16:00 in Dubai
    assert check(slot(day=1, time="08:00"), dubai, CLOCK).ok


def test_class_crossing_midnight_is_never_contained():
    full_days = profile(tz="UTC", windows=((1, "00:00", "24:00"), (2, "00:00", "24:00")))
    start = datetime(2024, 6, 3, 23, 30, tzinfo=timezone.utc)
    report = check_interval(start, 60, full_days)
    assert report.status == ConflictStatus.NOT_FULLY_COVERED
    assert report.end_minutes == 1470


def test_check_occurrence():
    occurrence = ClassOccurrence(start=datetime(2024, 6, 10, 14, 0, tzinfo=timezone.utc), duration_minutes=60)
    assert check_occurrence(occurrence, profile()).ok  # 10:00 EDT


def test_summarize_conflicts():
    reports = [
        check(slot(time="10:00"), profile(), CLOCK),
        check(slot(day=2), profile(), CLOCK),
    ]

    message = summarize_conflicts(reports)

    assert message.startswith("Teacher not available for one or more recurring slots:")
    assert message.count("\n• ") == 1
    assert summarize_conflicts(reports[:1]) is None


def test_check_interval_resolves_unknown_profile_timezone_with_default():
    unknown = profile(tz="Not/AZone", windows=((1, "09:00", "12:00"),))
    start = datetime(2024, 6, 10, 6, 0, tzinfo=timezone.utc)

    assert check_interval(start, 60, unknown, default_timezone="Asia/Dubai").ok
    assert not check_interval(start, 60, unknown, default_timezone="UTC").ok


def test_check_passes_default_timezone_to_cross_timezone_conversion():
    unknown = profile(tz="Not/AZone", windows=((1, "09:00", "12:00"),))
    # Monday 02:00 in New York is Monday 10:00 in Dubai
    assert check(slot(time="02:00"), unknown, CLOCK, default_timezone="Asia/Dubai").ok
