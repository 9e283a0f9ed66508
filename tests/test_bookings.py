from datetime import datetime, timezone

from tutoring_scheduler.bookings import find_booking_conflict, merge_busy_intervals, overlaps
from tutoring_scheduler.models import Booking


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def booking(hour, minute=0, duration=60, class_id=None):
    return Booking(start=utc(2024, 6, 10, hour, minute), duration_minutes=duration, class_id=class_id)


def test_overlaps_is_half_open():
    assert overlaps(utc(2024, 6, 10, 9), utc(2024, 6, 10, 10), utc(2024, 6, 10, 9, 30), utc(2024, 6, 10, 11))
    assert not overlaps(utc(2024, 6, 10, 9), utc(2024, 6, 10, 10), utc(2024, 6, 10, 10), utc(2024, 6, 10, 11))
    assert not overlaps(utc(2024, 6, 10, 10), utc(2024, 6, 10, 11), utc(2024, 6, 10, 9), utc(2024, 6, 10, 10))


def test_find_booking_conflict_returns_earliest():
    bookings = [booking(11, class_id="late"), booking(10, class_id="early")]
    conflict = find_booking_conflict(utc(2024, 6, 10, 10, 30), 60, bookings)
    assert conflict.class_id == "early"


def test_find_booking_conflict_back_to_back_is_free():
    assert find_booking_conflict(utc(2024, 6, 10, 11), 60, [booking(10)]) is None


def test_find_booking_conflict_can_exclude_the_class_being_rescheduled():
    bookings = [booking(10, class_id="c1")]
    assert find_booking_conflict(utc(2024, 6, 10, 10), 60, bookings, exclude_class_id="c1") is None
    assert find_booking_conflict(utc(2024, 6, 10, 10), 60, bookings, exclude_class_id="c2") is not None


def test_merge_busy_intervals_clips_and_merges():
    bookings = [booking(8, duration=90), booking(9, 15), booking(10, 15, duration=30), booking(14)]

    merged = merge_busy_intervals(bookings, utc(2024, 6, 10, 9), utc(2024, 6, 10, 12))

    assert merged == [(utc(2024, 6, 10, 9), utc(2024, 6, 10, 10, 45))]
