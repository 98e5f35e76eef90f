# worklead/utils/dates.py
from __future__ import annotations

from datetime import date, datetime, timedelta

EPOCH = datetime(1970, 1, 1)


def start_of_day(d: date | datetime) -> datetime:
    return datetime(d.year, d.month, d.day)


def sunday_week_start(day: date) -> date:
    # Sunday = 6
    days_since_sunday = (day.weekday() + 1) % 7
    return day - timedelta(days=days_since_sunday)


def quarter_start_month(month: int) -> int:
    return ((month - 1) // 3) * 3 + 1


def shift_months(year: int, month: int, delta: int) -> tuple[int, int]:
    """(year, month) moved by `delta` months; month is 1-based."""
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1
