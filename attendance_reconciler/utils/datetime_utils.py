"""
Timezone-aware datetime helpers.

- Every persisted instant is timezone-aware UTC.
- Every business comparison (work date, weekday, holiday, shift start) happens
  in the configured local calendar (settings.APP_TIMEZONE).
- All day/window arithmetic in the service goes through this module.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Tuple
from zoneinfo import ZoneInfo

from attendance_reconciler.core.config import settings
from attendance_reconciler.core.errors import InvalidDateFormat, InvalidInput

UTC = timezone.utc
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
MINUTES_PER_DAY = 24 * 60


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert an instant to the business zone. Naive datetimes are treated as UTC."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(local_zone())


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 in the business zone, with its offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def localize(naive: datetime) -> datetime:
    """Attach the business zone to a naive local wall-clock datetime and return the UTC instant."""
    return naive.replace(tzinfo=local_zone()).astimezone(UTC)


def to_local_day(instant: datetime) -> date:
    """Calendar date of an instant in the business zone."""
    return to_local(instant).date()


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """
    UTC instants bounding a local calendar day, half-open [start, end).

    Uses the zone rules for each midnight, so a day that contains a DST
    transition is 23 or 25 hours long.
    """
    start = localize(datetime.combine(day, time.min))
    end = localize(datetime.combine(day + timedelta(days=1), time.min))
    return start, end


def at_local_time(day: date, clock: time) -> datetime:
    """Project a local time-of-day onto a local date; returns the UTC instant."""
    return localize(datetime.combine(day, clock.replace(tzinfo=None)))


def parse_local_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD business date.

    Raises:
        InvalidDateFormat: If value is missing or not an ISO calendar date
    """
    if not value or not isinstance(value, str):
        raise InvalidDateFormat("Invalid date format. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidDateFormat(f"Invalid date format: {value!r}. Use YYYY-MM-DD.")


def parse_local_datetime(value) -> datetime:
    """
    Parse a datetime given as ISO string or datetime into a UTC instant.

    Values without an offset are local wall-clock times in the business zone
    (biometric terminals report local time).

    Raises:
        InvalidDateFormat: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidDateFormat(f"Invalid datetime: {value!r}")
    else:
        raise InvalidDateFormat(f"Invalid datetime: {value!r}")

    if parsed.tzinfo is None:
        return localize(parsed)
    return parsed.astimezone(UTC)


def window_offset(window_start: Optional[time] = None) -> timedelta:
    clock = window_start if window_start is not None else settings.ATTENDANCE_WINDOW_START
    return timedelta(hours=clock.hour, minutes=clock.minute, seconds=clock.second)


def attendance_day(instant: datetime, window_start: Optional[time] = None) -> date:
    """
    Work date an instant belongs to under the attendance-window convention.

    A window runs from window_start on day D to window_start on D+1 (local
    time), so a punch at 00:30 with the default 06:00 start belongs to the
    previous day.
    """
    local = to_local(instant).replace(tzinfo=None)
    return (local - window_offset(window_start)).date()


def attendance_window_bounds(day: date, window_start: Optional[time] = None) -> Tuple[datetime, datetime]:
    """UTC instants bounding the attendance window of a work date, half-open [start, end)."""
    offset = window_offset(window_start)
    start = localize(datetime.combine(day, time.min) + offset)
    end = localize(datetime.combine(day + timedelta(days=1), time.min) + offset)
    return start, end


def weekday_index(day: date) -> int:
    """Weekday with 0=Sunday ... 6=Saturday, the convention used by shift weekend sets."""
    return (day.weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every date from start to end inclusive."""
    if start > end:
        raise InvalidInput("Start date cannot be after end date.")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(day: date) -> Tuple[date, date]:
    """First and last date of the month containing day."""
    first = day.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first, next_month - timedelta(days=1)


def today_local() -> date:
    return to_local_day(now_utc())


def minutes_between(earlier: datetime, later: datetime) -> int:
    """Whole minutes from earlier to later, truncated toward negative infinity."""
    seconds = (ensure_utc(later) - ensure_utc(earlier)).total_seconds()
    return int(seconds // 60)
