from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import RecurrencePattern, RecurrenceSlot
from tutoring_scheduler.recurrence import expand, expand_slot, horizon, next_occurrence, validate_pattern

NEW_YORK = ZoneInfo("America/New_York")
NOW = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)  # Monday


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def slot(day=1, time="09:00", duration=60, tz="America/New_York"):
    return RecurrenceSlot(day_of_week=day, time=time, duration_minutes=duration, timezone=tz)


def test_validate_pattern_without_slots():
    with pytest.raises(SchedulingValidationError) as excinfo:
        validate_pattern(RecurrencePattern(slots=[]))
    assert excinfo.value.problems == ["Recurrence pattern has no slots"]


def test_validate_pattern_without_valid_days():
    with pytest.raises(SchedulingValidationError) as excinfo:
        validate_pattern(RecurrencePattern(slots=[slot(day=7), slot(day=-1)]))
    assert excinfo.value.problems == ["Recurrence pattern has no valid days of week"]


def test_validate_pattern_collects_every_problem():
    pattern = RecurrencePattern(
        slots=[slot(day=1), slot(day=9), slot(time="25:00", duration=10, tz="Mars/Olympus")],
        generation_period_months=4,
    )

    with pytest.raises(SchedulingValidationError) as excinfo:
        validate_pattern(pattern)

    problems = excinfo.value.problems
    assert "Slot 2: day of week 9 is not in 0-6" in problems
    assert "Slot 3: invalid time '25:00'" in problems
    assert "Slot 3: duration 10 min is outside 15-180" in problems
    assert "Slot 3: unknown timezone 'Mars/Olympus'" in problems
    assert any(p.startswith("Generation period 4 months") for p in problems)


def test_validate_pattern_rejects_non_positive_duration():
    with pytest.raises(SchedulingValidationError) as excinfo:
        validate_pattern(RecurrencePattern(slots=[slot(duration=0)]))
    assert excinfo.value.problems == ["Slot 1: duration must be positive"]


def test_horizon_adds_calendar_months():
    assert horizon(utc(2024, 1, 31), 1) == utc(2024, 2, 29)
    assert horizon(NOW, 2) == utc(2024, 8, 3, 12)


def test_expand_slot_includes_today_when_still_ahead():
    occurrences = expand_slot(slot(time="09:00"), NOW, horizon(NOW, 1))

    assert [o.start for o in occurrences] == [
        utc(2024, 6, 3, 13),
        utc(2024, 6, 10, 13),
        utc(2024, 6, 17, 13),
        utc(2024, 6, 24, 13),
        utc(2024, 7, 1, 13),
    ]
    assert all(o.timezone == "America/New_York" for o in occurrences)
    assert all(o.duration_minutes == 60 for o in occurrences)


def test_expand_slot_skips_today_when_already_past():
    occurrences = expand_slot(slot(time="07:00"), NOW, horizon(NOW, 1))
    assert occurrences[0].start == utc(2024, 6, 10, 11)
    assert len(occurrences) == 4


def test_expand_slot_horizon_is_inclusive():
    anchor = utc(2024, 6, 3, 13)
    occurrences = expand_slot(slot(day=3, time="09:00"), anchor, horizon(anchor, 1))

    assert occurrences[-1].start == utc(2024, 7, 3, 13)
    assert len(occurrences) == 5


def test_expand_slot_keeps_wall_clock_across_dst():
    occurrences = expand_slot(slot(day=0, time="10:00"), utc(2024, 3, 1), utc(2024, 4, 1))

    assert len(occurrences) == 5
    assert all(o.start.astimezone(NEW_YORK).hour == 10 for o in occurrences)
    assert occurrences[0].start == utc(2024, 3, 3, 15)
    assert occurrences[1].start == utc(2024, 3, 10, 14)
    # Wall clock wins over elapsed time: the spring-forward week is one hour short
    assert occurrences[1].start - occurrences[0].start == timedelta(days=6, hours=23)


def test_expand_slot_flags_time_inside_dst_gap():
    occurrences = expand_slot(slot(day=0, time="02:30"), utc(2024, 3, 1), utc(2024, 3, 20))

    shifted = [o for o in occurrences if o.wall_clock_shifted]
    assert len(shifted) == 1
    assert shifted[0].start == utc(2024, 3, 10, 7, 30)
    assert not occurrences[0].wall_clock_shifted


def test_expand_slot_requires_aware_anchor():
    with pytest.raises(SchedulingValidationError):
        expand_slot(slot(), datetime(2024, 6, 3, 12), utc(2024, 7, 1))


def test_next_occurrence():
    occurrence = next_occurrence(slot(day=5, time="18:30", duration=45), NOW)
    assert occurrence.start == utc(2024, 6, 7, 22, 30)
    assert occurrence.source_slot.day_of_week == 5


def test_expand_merges_slots_in_start_order():
    pattern = RecurrencePattern(
        slots=[slot(day=3, time="09:00"), slot(day=1, time="09:00")],
        generation_period_months=1,
    )

    occurrences = expand(pattern, NOW)

    starts = [o.start for o in occurrences]
    assert starts == sorted(starts)
    assert starts[:2] == [utc(2024, 6, 3, 13), utc(2024, 6, 5, 13)]
    assert len(occurrences) == 9


def test_expand_rejects_invalid_pattern():
    with pytest.raises(SchedulingValidationError):
        expand(RecurrencePattern(slots=[slot(duration=500)]), NOW)
