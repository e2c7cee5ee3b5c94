"""Day-boundary, HH:MM and minute-interval helpers.

All datetimes are naive server-local time; scheduling does no timezone arithmetic.
"""
import re
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta

from telehealth.core.errors import ValidationError

_HH_MM = re.compile(r"^(\d{1,2}):(\d{2})$")

_END_OF_DAY = time(23, 59, 59, 999000)


def now() -> datetime:
    return datetime.now()


def parse_time_to_minutes(value: str) -> int:
    match = _HH_MM.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError("Invalid time format. Expected HH:MM")
    hh, mm = int(match.group(1)), int(match.group(2))
    if not (0 <= hh <= 23 and 0 <= mm <= 59):
        raise ValidationError("Invalid time format. Expected HH:MM")
    return hh * 60 + mm


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """'9:00' -> '09:00'. Stored times are zero-padded so they order as strings."""
    return format_minutes(parse_time_to_minutes(value))


def _as_date(d: date | datetime) -> date:
    return d.date() if isinstance(d, datetime) else d


def start_of_day(d: date | datetime) -> datetime:
    return datetime.combine(_as_date(d), time.min)


def end_of_day(d: date | datetime) -> datetime:
    return datetime.combine(_as_date(d), _END_OF_DAY)


def add_minutes(dt: datetime, minutes: int) -> datetime:
    return dt + timedelta(minutes=minutes)


def parse_date(value: str | date | datetime) -> date:
    """Accept a date, a datetime, or an ISO string (date or datetime)."""
    if isinstance(value, (date, datetime)):
        return _as_date(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid date provided")
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        raise ValidationError("Invalid date provided")


def day_of_week(d: date | datetime) -> int:
    """0=Sunday .. 6=Saturday."""
    return _as_date(d).isoweekday() % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Each calendar day from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def window_slots(
    day: date, start_time: str, end_time: str, duration_minutes: int
) -> list[tuple[datetime, datetime]]:
    """Slots of duration_minutes inside the window on `day`; a partial trailing slot is dropped."""
    if duration_minutes <= 0:
        raise ValidationError("slotDuration must be a positive number of minutes")
    midnight = start_of_day(day)
    window_start = add_minutes(midnight, parse_time_to_minutes(start_time))
    window_end = add_minutes(midnight, parse_time_to_minutes(end_time))
    slots: list[tuple[datetime, datetime]] = []
    current = window_start
    while add_minutes(current, duration_minutes) <= window_end:
        slots.append((current, add_minutes(current, duration_minutes)))
        current = add_minutes(current, duration_minutes)
    return slots
