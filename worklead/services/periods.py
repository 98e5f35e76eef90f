# worklead/services/periods.py
"""
Period resolution.

A window is half-open: [start, end). Named periods are open-ended
(end=None, i.e. "up to now"); custom windows carry an explicit end.
All datetimes are naive local wall time of the configured timezone.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from worklead.database.models import LeaderboardPeriod
from worklead.errors import InvalidWindowError
from worklead.utils.dates import EPOCH, quarter_start_month, shift_months, start_of_day, sunday_week_start


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    period: LeaderboardPeriod
    start: datetime
    end: datetime | None
    custom: bool = False

    def contains(self, ts: datetime) -> bool:
        if ts < self.start:
            return False
        return self.end is None or ts < self.end

    @property
    def is_empty(self) -> bool:
        return self.end is not None and self.end <= self.start


DateLike = date | datetime | str


def _parse_bound(value: DateLike, *, is_end: bool, field: str) -> datetime:
    """
    ISO strings, dates and datetimes.
    A date-only end bound covers that whole day (exclusive next midnight).
    """
    date_only = False
    if isinstance(value, datetime):
        out = value
    elif isinstance(value, date):
        out = start_of_day(value)
        date_only = True
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise InvalidWindowError(f"Empty {field}.", **{field: value})
        try:
            out = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidWindowError(f"Malformed {field}: {value!r}", **{field: value}) from e
        date_only = len(raw) == 10
    else:
        raise InvalidWindowError(f"Unsupported {field} type: {type(value).__name__}", **{field: value})

    if out.tzinfo is not None:
        # stored timestamps are naive; keep the wall time the caller sent
        out = out.replace(tzinfo=None)

    if is_end and date_only:
        out = out + timedelta(days=1)
    return out


def parse_period(period: LeaderboardPeriod | str | None) -> LeaderboardPeriod:
    if period is None or period == "":
        return LeaderboardPeriod.ALL_TIME
    if isinstance(period, LeaderboardPeriod):
        return period
    try:
        return LeaderboardPeriod(str(period).strip().upper())
    except ValueError as e:
        raise InvalidWindowError(f"Unknown period: {period!r}", period=period) from e


def current_period_start(period: LeaderboardPeriod, now: datetime) -> datetime:
    if period == LeaderboardPeriod.DAILY:
        return start_of_day(now)
    if period == LeaderboardPeriod.WEEKLY:
        return start_of_day(sunday_week_start(now.date()))
    if period == LeaderboardPeriod.MONTHLY:
        return datetime(now.year, now.month, 1)
    if period == LeaderboardPeriod.QUARTERLY:
        return datetime(now.year, quarter_start_month(now.month), 1)
    if period == LeaderboardPeriod.YEARLY:
        return datetime(now.year, 1, 1)
    return EPOCH


def resolve_period(
    period: LeaderboardPeriod | str | None,
    now: datetime,
    start_date: DateLike | None = None,
    end_date: DateLike | None = None,
) -> PeriodWindow:
    """
    Priority:
    1. Explicit (start_date, end_date): both required
    2. Named period (default ALL_TIME)
    """
    tag = parse_period(period)

    if start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise InvalidWindowError(
                "Custom windows need both start_date and end_date.",
                start_date=start_date,
                end_date=end_date,
            )
        start = _parse_bound(start_date, is_end=False, field="start_date")
        end = _parse_bound(end_date, is_end=True, field="end_date")
        if start >= end:
            raise InvalidWindowError(
                "start_date must be before end_date.",
                start_date=start_date,
                end_date=end_date,
            )
        return PeriodWindow(period=tag, start=start, end=end, custom=True)

    return PeriodWindow(period=tag, start=current_period_start(tag, now), end=None)


def previous_window(window: PeriodWindow) -> PeriodWindow | None:
    """
    The window of the same type right before `window`.
    None for custom windows: there is no well-defined predecessor.
    """
    if window.custom:
        return None

    start = window.start
    period = window.period

    if period == LeaderboardPeriod.DAILY:
        prev_start = start - timedelta(days=1)
    elif period == LeaderboardPeriod.WEEKLY:
        prev_start = start - timedelta(days=7)
    elif period == LeaderboardPeriod.MONTHLY:
        y, m = shift_months(start.year, start.month, -1)
        prev_start = datetime(y, m, 1)
    elif period == LeaderboardPeriod.QUARTERLY:
        y, m = shift_months(start.year, start.month, -3)
        prev_start = datetime(y, m, 1)
    elif period == LeaderboardPeriod.YEARLY:
        prev_start = datetime(start.year - 1, 1, 1)
    else:
        # ALL_TIME degenerates to [epoch, epoch)
        return PeriodWindow(period=period, start=EPOCH, end=start)

    return PeriodWindow(period=period, start=prev_start, end=start)


def previous_period_window(period: LeaderboardPeriod | str | None, now: datetime) -> PeriodWindow:
    tag = parse_period(period)
    prev = previous_window(PeriodWindow(period=tag, start=current_period_start(tag, now), end=None))
    if prev is None:  # pragma: no cover - named periods always have one
        raise InvalidWindowError("No previous window.", period=tag.value)
    return prev
