"""Civil time conversion between IANA timezones.

Instants are always timezone-aware UTC datetimes. Civil (wall-clock) input is resolved in the
source timezone it arrives with. Ambiguous fall-back times resolve to their first occurrence;
times inside a spring-forward gap resolve with the pre-transition offset. Conversion never raises:
when input cannot be interpreted properly the result is flagged as degraded.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from tutoring_scheduler import config
from tutoring_scheduler.models import ConversionResult, PartyTimes, PartyTimezones, TimeOfDay

logger = logging.getLogger(__name__)

UTC = timezone.utc


def is_valid_timezone(name: Any) -> bool:
    """Checks whether `name` is a known IANA timezone identifier."""
    if not isinstance(name, str) or not name.strip():
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def resolve_zone(name: Optional[str], default_timezone: str = config.DEFAULT_TIMEZONE) -> Tuple[ZoneInfo, bool]:
    """Returns the zone for `name`, falling back to `default_timezone`.

    The second element is True when the fallback was used.
    """
    if is_valid_timezone(name):
        return ZoneInfo(name), False
    if name:
        logger.warning(f"Unknown timezone '{name}', falling back to {default_timezone}")
    return ZoneInfo(default_timezone), bool(name)


def civil_to_instant(naive: datetime, zone: ZoneInfo) -> datetime:
    return naive.replace(tzinfo=zone).astimezone(UTC)


def combine_local(day: date, time_of_day: TimeOfDay, zone: ZoneInfo) -> Tuple[datetime, bool]:
    """Combines a local date and wall-clock time into an instant.

    Returns the instant and whether the wall-clock time does not exist on that date
    (spring-forward gap), in which case the clock reading after conversion differs.
    """
    naive = datetime(day.year, day.month, day.day, time_of_day.hour, time_of_day.minute)
    instant = civil_to_instant(naive, zone)
    shifted = instant.astimezone(zone).replace(tzinfo=None) != naive
    return instant, shifted


def _parse_iso(value: str) -> Optional[datetime]:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _fallback_parse(value: str) -> Optional[datetime]:
    """Interprets `value` with the lenient parser, naive results in platform local time."""
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Could not parse '{value}' as a date/time: {e}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(UTC)


def _to_instant(
    value: Any,
    from_timezone: Optional[str],
    default_timezone: str,
) -> Tuple[Optional[datetime], bool]:
    """Resolves `value` to a UTC instant. The flag is True when a fallback was needed."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(UTC), False
        source_zone, degraded = resolve_zone(from_timezone, default_timezone)
        return civil_to_instant(value, source_zone), degraded

    if isinstance(value, str):
        parsed = _parse_iso(value)
        if parsed is None:
            logger.warning(f"Malformed date/time '{value}', using lenient local-time parsing")
            return _fallback_parse(value), True
        if parsed.tzinfo is not None:
            return parsed.astimezone(UTC), False
        source_zone, degraded = resolve_zone(from_timezone, default_timezone)
        return civil_to_instant(parsed, source_zone), degraded

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, UTC), False

    logger.warning(f"Unsupported date/time input {value!r}")
    return None, True


def convert(
    value: Any,
    from_timezone: Optional[str],
    to_timezone: str,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> ConversionResult:
    """Converts an instant or civil wall-clock time into `to_timezone`.

    Args:
        value: An aware datetime (instant), a naive datetime or ISO string without offset
            (civil time in `from_timezone`), an ISO string with offset, or epoch seconds.
        from_timezone: Zone used to resolve civil input. When missing, `default_timezone` is used.
        to_timezone: Zone of the returned local time.
        default_timezone: Fallback for missing or unknown zones.

    Returns:
        ConversionResult with the UTC instant, the local datetime in the target zone and a
        `degraded` flag set whenever a fallback was needed.
    """
    target_zone, degraded = resolve_zone(to_timezone, default_timezone)
    failed = ConversionResult(
        instant=None,
        local=None,
        source_timezone=from_timezone,
        target_timezone=to_timezone,
        degraded=True,
        raw=value,
    )

    try:
        instant, source_degraded = _to_instant(value, from_timezone, default_timezone)
        if instant is None:
            return failed
        local = instant.astimezone(target_zone)
    except (OverflowError, OSError, ValueError) as e:
        logger.warning(f"Date/time {value!r} is out of range: {e}")
        return failed

    return ConversionResult(
        instant=instant,
        local=local,
        source_timezone=from_timezone,
        target_timezone=to_timezone,
        degraded=degraded or source_degraded,
        raw=value,
    )


def to_local(instant: datetime, timezone_name: str, default_timezone: str = config.DEFAULT_TIMEZONE) -> datetime:
    zone, _ = resolve_zone(timezone_name, default_timezone)
    return instant.astimezone(zone)


def utc_offset_minutes(timezone_name: str, instant: datetime) -> int:
    """UTC offset of `timezone_name` at `instant`, in minutes (DST-aware)."""
    offset = instant.astimezone(ZoneInfo(timezone_name)).utcoffset()
    return round(offset.total_seconds() / 60)


def format_in_timezone(
    instant: datetime,
    timezone_name: str,
    fmt: str = "%Y-%m-%d %H:%M %Z",
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> str:
    return to_local(instant, timezone_name, default_timezone).strftime(fmt)


def convert_for_parties(
    instant: datetime,
    parties: PartyTimezones,
    default_timezone: str = config.DEFAULT_TIMEZONE,
) -> PartyTimes:
    """Expresses one instant in the teacher's, guardian's and admin's wall-clock time."""
    return PartyTimes(
        instant=instant.astimezone(UTC),
        teacher=to_local(instant, parties.teacher, default_timezone),
        guardian=to_local(instant, parties.guardian, default_timezone),
        admin=to_local(instant, parties.admin, default_timezone),
    )
