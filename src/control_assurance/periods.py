"""
Period arithmetic for monthly testing records.

A period is a calendar month represented explicitly as a (year, month) pair
with month in [1, 12]. Every function here is pure integer arithmetic;
the "current" period is always derived from a caller-supplied date.
"""

from datetime import date
from typing import NamedTuple


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class Period(NamedTuple):
    """A calendar month. Tuple ordering is chronological ordering."""
    year: int
    month: int


def shift_months(year: int, month: int, delta: int) -> Period:
    """
    Move a period forward (positive delta) or backward (negative delta).

    Month overflow and underflow roll across year boundaries, e.g.
    shift_months(2025, 1, -1) == Period(2024, 12).
    """
    index = year * 12 + (month - 1) + delta
    return Period(index // 12, index % 12 + 1)


def trailing_window(year: int, month: int, count: int) -> list[Period]:
    """
    Return `count` periods ending at (year, month) inclusive, oldest first.

    `count` must be at least 1.
    """
    return [shift_months(year, month, -offset) for offset in range(count - 1, -1, -1)]


def months_between(start: Period, end: Period) -> int:
    """Signed number of months from `start` to `end`."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def period_range(start: Period, end: Period) -> list[Period]:
    """
    Return every period from `start` to `end` inclusive, oldest first.

    An inverted range yields an empty list.
    """
    span = months_between(start, end)
    if span < 0:
        return []
    return [shift_months(start.year, start.month, offset) for offset in range(span + 1)]


def period_of(day: date) -> Period:
    """The period containing a date."""
    return Period(day.year, day.month)


def is_backdated(period: Period, reference_date: date) -> bool:
    """True when `period` lies strictly before the month of `reference_date`."""
    return period < period_of(reference_date)


def quarter_label(year: int, month: int) -> str:
    """Quarter label such as "Q1 2025"."""
    return f"Q{(month - 1) // 3 + 1} {year}"


def period_label(year: int, month: int) -> str:
    """Short display label such as "Jan 2025"."""
    return f"{MONTH_NAMES[month - 1][:3]} {year}"
