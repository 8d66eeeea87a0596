# dates.py
"""Calendar-day helpers shared by the engine, the session and the services."""

import calendar
from datetime import date, datetime

DATE_KEY_FORMAT = "%Y-%m-%d"
MONTH_LABELS = [calendar.month_abbr[m] for m in range(1, 13)]


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def date_key(value) -> str:
    """Day bucket key: YYYY-MM-DD"""
    day = _as_date(value)
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_date_key(key: str) -> date:
    """Inverse of date_key. Raises ValueError for anything else."""
    return datetime.strptime(key, DATE_KEY_FORMAT).date()


def days_between(later, earlier) -> int:
    """Whole days from earlier to later, both taken at midnight."""
    return (_as_date(later) - _as_date(earlier)).days


def days_in_month(month: int, year: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_label(month: int) -> str:
    return MONTH_LABELS[month - 1]


def weekday_index(value) -> int:
    """0=Sunday .. 6=Saturday."""
    return _as_date(value).isoweekday() % 7
