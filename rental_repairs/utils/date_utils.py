# rental_repairs/utils/date_utils.py
from __future__ import annotations

"""
Date and time helpers shared by the scheduling engine.

Notes:
- All "UTC" helpers use timezone-aware datetimes with `timezone.utc`.
- `to_utc` assumes naive datetimes are already in UTC and only attaches tzinfo.
- A "calendar day" for capacity purposes is the UTC date of a timestamp.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterator, Union

logger = logging.getLogger(__name__)

UTC = timezone.utc

Clock = Callable[[], datetime]
DateLike = Union[date, datetime]


class DateUtilsError(Exception):
    """Custom exception for date utilities errors."""
    pass


def now_utc() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def start_of_day(d: date, tz: timezone | None = UTC) -> datetime:
    """Return the start (00:00:00) of a given date in the given timezone."""
    if not isinstance(d, date):
        raise DateUtilsError("Input must be a date object")
    return datetime.combine(d, time.min).replace(tzinfo=tz)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    - If naive, assumes it's already in UTC and only attaches tzinfo.
    - If aware, converts to UTC.
    """
    if not isinstance(dt, datetime):
        raise DateUtilsError("Input must be a datetime object")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def as_calendar_day(value: DateLike) -> date:
    """Collapse a date or datetime to its UTC calendar day."""
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    raise DateUtilsError(f"Expected a date or datetime, got {type(value).__name__}")


def format_date(d: date, fmt: str = "%Y-%m-%d") -> str:
    """Format a date as string with the given format."""
    if not isinstance(d, date):
        raise DateUtilsError("Input must be a date object")
    return d.strftime(fmt)


def daterange(start: date, end: date) -> Iterator[date]:
    """
    Yield all dates from start to end inclusive.
    If start > end, yields nothing.
    """
    if not isinstance(start, date) or not isinstance(end, date):
        raise DateUtilsError("Both start and end must be date objects")

    if start > end:
        return

    delta = (end - start).days
    for i in range(delta + 1):
        yield start + timedelta(days=i)


def hours_between(start: datetime, end: datetime) -> float:
    """Return elapsed hours between two datetimes (negative if end < start)."""
    return (to_utc(end) - to_utc(start)).total_seconds() / 3600.0


__all__ = [
    "UTC",
    "Clock",
    "DateLike",
    "DateUtilsError",
    "now_utc",
    "start_of_day",
    "to_utc",
    "as_calendar_day",
    "format_date",
    "daterange",
    "hours_between",
]
