from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from tutoring_scheduler.models import Booking

Interval = Tuple[datetime, datetime]


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: back-to-back classes do not collide."""
    return a_start < b_end and b_start < a_end


def find_booking_conflict(
    start: datetime,
    duration_minutes: int,
    bookings: List[Booking],
    exclude_class_id: Optional[str] = None,
) -> Optional[Booking]:
    """Returns the earliest booking overlapping [start, start + duration), if any."""
    end = start + timedelta(minutes=duration_minutes)
    colliding = [
        booking
        for booking in bookings
        if (exclude_class_id is None or booking.class_id != exclude_class_id)
        and overlaps(start, end, booking.start, booking.end)
    ]
    return min(colliding, key=lambda b: b.start) if colliding else None


def merge_busy_intervals(bookings: List[Booking], window_start: datetime, window_end: datetime) -> List[Interval]:
    """Clips bookings to the window and merges overlapping or touching ones."""
    clipped = []
    for booking in bookings:
        start = max(booking.start, window_start)
        end = min(booking.end, window_end)
        if end > start:
            clipped.append((start, end))

    clipped.sort()
    merged: List[Interval] = []
    for start, end in clipped:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged

