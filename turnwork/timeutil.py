import calendar as _calendar
import re
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Tuple, Union

from .constants import MINUTES_PER_DAY
from .errors import InvalidTime

DateLike = Union[date, datetime, str]


class GregorianCalendar:
    """Day arithmetic on the proleptic Gregorian calendar.

    The rotation engine only ever asks three things of a calendar: strip the
    time of day, count whole days between two dates, and step by days. Any
    object offering ``truncate``, ``days_between`` and ``add_days`` can be
    passed in its place.
    """

    def truncate(self, value: DateLike) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        parsed = parse_date_input(value)
        if parsed is None:
            raise ValueError("Date required.")
        return parsed

    def days_between(self, start: DateLike, end: DateLike) -> int:
        return (self.truncate(end) - self.truncate(start)).days

    def add_days(self, value: DateLike, days: int) -> date:
        return self.truncate(value) + timedelta(days=days)


DEFAULT_CALENDAR = GregorianCalendar()


def iter_days(
    start: DateLike, end: DateLike, calendar: GregorianCalendar = DEFAULT_CALENDAR
) -> Iterator[date]:
    current = calendar.truncate(start)
    last = calendar.truncate(end)
    while current <= last:
        yield current
        current = calendar.add_days(current, 1)


def parse_date_input(value: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` or ``DD.MM.YYYY``; raises ``ValueError`` on garbage."""
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if re.match(r"^\d{4}-\d{2}-\d{2}$", trimmed):
        return date.fromisoformat(trimmed)
    match = re.match(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", trimmed)
    if not match:
        raise ValueError("Invalid date format.")
    day_raw, month_raw, year_raw = match.groups()
    return date(int(year_raw), int(month_raw), int(day_raw))


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = re.match(r"^(\d{1,2}):(\d{2})$", value.strip())
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours < 0 or hours > 23 or minutes < 0 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes(total_minutes: int) -> str:
    clamped = total_minutes % MINUTES_PER_DAY
    hours = clamped // 60
    minutes = clamped % 60
    return f"{hours:02d}:{minutes:02d}"


def require_time(value: Optional[str], field: str) -> Optional[str]:
    """Validate an optional ``HH:MM`` value and return it zero-padded."""
    if value is None:
        return None
    minutes = parse_time_to_minutes(value)
    if minutes is None:
        raise InvalidTime(f"Invalid time for {field}: {value!r}.")
    return format_minutes(minutes)


def duration_minutes(start_minutes: int, end_minutes: int) -> int:
    # An end before the start is an overnight shift ending the next day.
    if end_minutes < start_minutes:
        return end_minutes + MINUTES_PER_DAY - start_minutes
    return end_minutes - start_minutes


def hours_between(start: Optional[str], end: Optional[str]) -> Optional[float]:
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if start_minutes is None or end_minutes is None:
        return None
    return duration_minutes(start_minutes, end_minutes) / 60.0


def is_overnight(start: Optional[str], end: Optional[str]) -> bool:
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if start_minutes is None or end_minutes is None:
        return False
    return end_minutes < start_minutes


def month_range(year: int, month: int) -> Tuple[date, date]:
    last_day = _calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def year_range(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def sunday_based_weekday(value: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7
