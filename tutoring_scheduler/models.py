from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DAYS_PER_WEEK = 7


class TimeOfDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: int
    minute: int


class RecurrenceSlot(BaseModel):
    """One weekly commitment as entered on the class form."""

    model_config = ConfigDict(frozen=True)

    day_of_week: int  # 0 = Sunday
    time: str  # HH:MM, wall clock in `timezone`
    duration_minutes: int
    timezone: str


class RecurrencePattern(BaseModel):
    slots: List[RecurrenceSlot]
    generation_period_months: int = 2


class ClassOccurrence(BaseModel):
    """A concrete, dated class. Compared by start instant and duration only."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    duration_minutes: int
    timezone: str = "UTC"
    source_slot: Optional[RecurrenceSlot] = None
    wall_clock_shifted: bool = False

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassOccurrence):
            return NotImplemented
        return (self.start, self.duration_minutes) == (other.start, other.duration_minutes)

    def __hash__(self) -> int:
        return hash((self.start, self.duration_minutes))


class AvailabilityWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    day_of_week: int
    start_time: str  # HH:MM as stored, may be malformed
    end_time: str  # HH:MM, "24:00" allowed
    timezone: str


class AvailabilityProfile(BaseModel):
    """A teacher's declared availability. Either default 24/7 or per-weekday windows."""

    is_default: bool = False
    timezone: str = "UTC"
    windows_by_day: List[List[AvailabilityWindow]] = Field(
        default_factory=lambda: [[] for _ in range(DAYS_PER_WEEK)]
    )

    @field_validator("windows_by_day")
    @classmethod
    def _seven_days(cls, value: List[List[AvailabilityWindow]]) -> List[List[AvailabilityWindow]]:
        if len(value) != DAYS_PER_WEEK:
            raise ValueError(f"windows_by_day must have {DAYS_PER_WEEK} entries, got {len(value)}")
        return value

    @classmethod
    def default(cls, timezone: str) -> "AvailabilityProfile":
        return cls(is_default=True, timezone=timezone)

    @classmethod
    def from_windows(cls, windows: List[AvailabilityWindow], timezone: str) -> "AvailabilityProfile":
        by_day: List[List[AvailabilityWindow]] = [[] for _ in range(DAYS_PER_WEEK)]
        for window in windows:
            by_day[window.day_of_week].append(window)
        return cls(is_default=False, timezone=timezone, windows_by_day=by_day)

    def windows_for(self, day_of_week: int) -> List[AvailabilityWindow]:
        if not 0 <= day_of_week < DAYS_PER_WEEK:
            return []
        return list(self.windows_by_day[day_of_week])

    def all_windows(self) -> List[AvailabilityWindow]:
        return [window for day in self.windows_by_day for window in day]


class ConflictStatus(str, Enum):
    OK = "ok"
    INVALID_TIME = "invalid_time"
    NO_WINDOWS_FOR_DAY = "no_windows_for_day"
    NOT_FULLY_COVERED = "not_fully_covered"


class ConflictReport(BaseModel):
    status: ConflictStatus
    reason: str = ""
    day_of_week: Optional[int] = None  # in the profile's timezone
    start_minutes: Optional[int] = None
    end_minutes: Optional[int] = None
    timezone: Optional[str] = None
    covering_windows: List[AvailabilityWindow] = []
    slot: Optional[RecurrenceSlot] = None

    @property
    def ok(self) -> bool:
        return self.status == ConflictStatus.OK


class BookingKind(str, Enum):
    CLASS = "class"
    UNAVAILABLE = "unavailable"


class Booking(BaseModel):
    """An existing commitment on the teacher's calendar."""

    start: datetime
    duration_minutes: int
    kind: BookingKind = BookingKind.CLASS
    class_id: Optional[str] = None
    student_name: Optional[str] = None
    subject: Optional[str] = None
    reason: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)


class AlternativeSlotSuggestion(BaseModel):
    start: datetime
    duration_minutes: int
    distance_from_request_minutes: int
    verified: bool = True
    timezone: str = "UTC"

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "startDateTime": self.start.isoformat(),
            "endDateTime": self.end.isoformat(),
            "durationMinutes": self.duration_minutes,
            "distanceFromRequestMinutes": self.distance_from_request_minutes,
            "verified": self.verified,
            "timezone": self.timezone,
        }


class ConflictType(str, Enum):
    EXISTING_CLASS = "existing_class"
    NO_AVAILABILITY = "no_availability"


class ConflictResponse(BaseModel):
    """The conflict shape the console's display code already understands."""

    reason: str
    conflict_type: ConflictType
    conflict_details: Dict[str, Any] = {}
    alternatives: List[AlternativeSlotSuggestion] = []

    def to_payload(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "conflictType": self.conflict_type.value,
            "conflictDetails": self.conflict_details,
            "alternatives": [alt.to_payload() for alt in self.alternatives],
        }


class DSTKind(str, Enum):
    SPRING_FORWARD = "spring_forward"
    FALL_BACK = "fall_back"


class DSTTransition(BaseModel):
    instant: datetime
    kind: DSTKind
    offset_before_minutes: int
    offset_after_minutes: int
    timezone: str

    @property
    def time_difference_minutes(self) -> int:
        return abs(self.offset_after_minutes - self.offset_before_minutes)


class DSTInfo(BaseModel):
    timezone: str
    year: int
    transitions: List[DSTTransition] = []
    upcoming: List[DSTTransition] = []
    recent: List[DSTTransition] = []
    next_transition: Optional[DSTTransition] = None
    last_transition: Optional[DSTTransition] = None

    @property
    def has_dst(self) -> bool:
        return len(self.transitions) > 0


class DSTWarning(BaseModel):
    timezone: str
    has_warning: bool
    days_until: int = 0
    transition: Optional[DSTTransition] = None
    message: Optional[str] = None


class DSTAdjustment(BaseModel):
    original: datetime
    adjusted: datetime
    student_local: datetime
    teacher_original_local: datetime
    teacher_adjusted_local: datetime
    teacher_shift_minutes: int

    @property
    def is_adjustment_needed(self) -> bool:
        return self.original != self.adjusted


class ConversionResult(BaseModel):
    instant: Optional[datetime]
    local: Optional[datetime]
    source_timezone: Optional[str]
    target_timezone: str
    degraded: bool = False
    raw: Any = None


class PartyTimezones(BaseModel):
    teacher: str
    guardian: str
    admin: str


class PartyTimes(BaseModel):
    instant: datetime
    teacher: datetime
    guardian: datetime
    admin: datetime


class WallClockDrift(BaseModel):
    """An occurrence whose wall-clock reading for a viewer differs from the series' first one."""

    occurrence_start: datetime
    viewer_timezone: str
    viewer_local: datetime
    shift_minutes: int
