"""Calendar-date utilities (UTC, date-only)"""

import calendar
from datetime import date, datetime, timezone
from typing import Tuple


def utc_today() -> date:
    """Current calendar date in UTC"""
    return datetime.now(timezone.utc).date()


def to_utc_date(value: date | datetime) -> date:
    """Drop the time component, converting aware datetimes to UTC first"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def parse_iso_date(value: date | datetime | str) -> date:
    """
    Parse an ISO calendar date.

    Accepts date/datetime objects, "YYYY-MM-DD" strings and full ISO timestamps.

    Raises:
        ValueError: On empty or malformed input
    """
    if isinstance(value, (date, datetime)):
        return to_utc_date(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        return to_utc_date(datetime.fromisoformat(text.replace("Z", "+00:00")))


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole days from start to end, never negative"""
    return max(0, (to_utc_date(end) - to_utc_date(start)).days)


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """
    Clamp a day-of-month into the given month (1-indexed).

    Example:
        clamp_day_to_month(2025, 2, 31) -> 28
        clamp_day_to_month(2024, 2, 31) -> 29
    """
    return min(day, last_day_of_month(year, month))


def with_day(value: date, day: int) -> date:
    """Keep year/month of value, substitute the (clamped) day"""
    return date(value.year, value.month, clamp_day_to_month(value.year, value.month, day))


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """
    Inclusive [first day, last day] range of a month.

    Never builds a date past the month itself, so December 9999 works.
    """
    return date(year, month, 1), date(year, month, last_day_of_month(year, month))
