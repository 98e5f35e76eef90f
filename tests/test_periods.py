"""Tests for period windows: named periods and custom ranges."""

from datetime import date, datetime

import pytest

from worklead.database.models import LeaderboardPeriod
from worklead.errors import InvalidWindowError
from worklead.services.periods import (
    parse_period,
    previous_period_window,
    previous_window,
    resolve_period,
)
from worklead.utils.dates import EPOCH

# Wednesday
NOW = datetime(2024, 5, 15, 12, 30)


# --- Period tags ---


def test_missing_period_defaults_to_all_time():
    assert parse_period(None) == LeaderboardPeriod.ALL_TIME
    assert parse_period("") == LeaderboardPeriod.ALL_TIME


def test_period_tag_is_case_insensitive():
    assert parse_period("weekly") == LeaderboardPeriod.WEEKLY


def test_unknown_period_tag():
    with pytest.raises(InvalidWindowError) as exc:
        parse_period("FORTNIGHTLY")
    assert exc.value.code == "INVALID_WINDOW"


# --- Named periods ---


@pytest.mark.parametrize(
    "period, expected",
    [
        (LeaderboardPeriod.DAILY, datetime(2024, 5, 15)),
        (LeaderboardPeriod.WEEKLY, datetime(2024, 5, 12)),
        (LeaderboardPeriod.MONTHLY, datetime(2024, 5, 1)),
        (LeaderboardPeriod.QUARTERLY, datetime(2024, 4, 1)),
        (LeaderboardPeriod.YEARLY, datetime(2024, 1, 1)),
        (LeaderboardPeriod.ALL_TIME, EPOCH),
    ],
)
def test_named_period_start(period, expected):
    window = resolve_period(period, NOW)
    assert window.start == expected
    assert window.end is None
    assert not window.custom


def test_week_starts_on_the_same_sunday():
    sunday = datetime(2024, 5, 12, 8, 0)
    assert resolve_period("WEEKLY", sunday).start == datetime(2024, 5, 12)


def test_open_window_contains_now():
    window = resolve_period("DAILY", NOW)
    assert window.contains(NOW)
    assert not window.contains(datetime(2024, 5, 14, 23, 59))


# --- Custom windows ---


def test_custom_dates_take_precedence():
    window = resolve_period("DAILY", NOW, "2024-03-01", "2024-03-10")
    assert window.custom
    assert window.start == datetime(2024, 3, 1)
    # date-only end covers the whole day
    assert window.end == datetime(2024, 3, 11)
    assert window.contains(datetime(2024, 3, 10, 23, 59))
    assert not window.contains(datetime(2024, 3, 11))


def test_custom_accepts_date_and_datetime_values():
    window = resolve_period(None, NOW, date(2024, 3, 1), datetime(2024, 3, 2, 6, 0))
    assert window.start == datetime(2024, 3, 1)
    assert window.end == datetime(2024, 3, 2, 6, 0)


def test_custom_needs_both_dates():
    with pytest.raises(InvalidWindowError):
        resolve_period(None, NOW, start_date="2024-03-01")
    with pytest.raises(InvalidWindowError):
        resolve_period(None, NOW, end_date="2024-03-01")


def test_custom_start_after_end():
    with pytest.raises(InvalidWindowError):
        resolve_period(None, NOW, "2024-03-10", "2024-03-01")


def test_custom_malformed_date():
    with pytest.raises(InvalidWindowError) as exc:
        resolve_period(None, NOW, "yesterday", "2024-03-01")
    assert "start_date" in exc.value.details


# --- Previous windows ---


@pytest.mark.parametrize(
    "period, now, start, end",
    [
        ("DAILY", NOW, datetime(2024, 5, 14), datetime(2024, 5, 15)),
        ("WEEKLY", NOW, datetime(2024, 5, 5), datetime(2024, 5, 12)),
        ("MONTHLY", datetime(2024, 1, 20), datetime(2023, 12, 1), datetime(2024, 1, 1)),
        ("QUARTERLY", datetime(2024, 2, 3), datetime(2023, 10, 1), datetime(2024, 1, 1)),
        ("YEARLY", NOW, datetime(2023, 1, 1), datetime(2024, 1, 1)),
    ],
)
def test_previous_window(period, now, start, end):
    prev = previous_period_window(period, now)
    assert (prev.start, prev.end) == (start, end)
    assert prev.period == parse_period(period)


def test_previous_all_time_is_degenerate():
    prev = previous_period_window("ALL_TIME", NOW)
    assert prev.start == EPOCH
    assert prev.end == EPOCH
    assert prev.is_empty


def test_custom_window_has_no_previous():
    window = resolve_period(None, NOW, "2024-03-01", "2024-03-10")
    assert previous_window(window) is None
