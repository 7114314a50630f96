"""
Date helpers shared by the domain calculations.

Every day count in the system is computed on calendar days: both ends are
normalised to the same time of day before subtracting, so a dose taken at
23:00 and one taken at 07:00 the next morning are one day apart. The PK
engine normalises to noon, the capacity/risk engine to midnight; for whole
days the result is the same.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Union

DateLike = Union[date, datetime]

NOON = time(12, 0)


def as_datetime(value: DateLike) -> datetime:
    """Return ``value`` as a naive datetime (plain dates become midnight)."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def day_of(value: DateLike) -> date:
    """Return the calendar day of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def at_noon(value: DateLike) -> datetime:
    return datetime.combine(day_of(value), NOON)


def days_between(start: DateLike, end: DateLike) -> int:
    """Signed number of calendar days from ``start`` to ``end``.

    Equivalent to ``ceil((end - start) / 1 day)`` once both ends are
    normalised to midnight.
    """
    return (day_of(end) - day_of(start)).days


def abs_days_between(a: DateLike, b: DateLike) -> int:
    return abs(days_between(a, b))


def fractional_days(start: DateLike, end: DateLike) -> float:
    delta: timedelta = as_datetime(end) - as_datetime(start)
    return delta.total_seconds() / 86400.0


def iso(value) -> Union[str, None]:
    """ISO-8601 string for dates/datetimes, ``None`` passes through."""
    if value is None:
        return None
    return value.isoformat()
