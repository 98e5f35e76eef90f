"""Tests for score, ranking and trend as pure functions."""

import pytest

from worklead.services.ranking import (
    DEFAULT_LIMIT,
    attach_trends,
    check_limit,
    narrow_ranks,
    rank_entries,
    truncate,
)
from worklead.services.scoring import ScoredEntry, UserMetrics, performance_score, score_entry
from worklead.services.trend import Trend, trend_for


def _metrics(user_id=1, **kw):
    return UserMetrics(user_id=user_id, **kw)


# --- Score ---


def test_reference_example():
    m = _metrics(
        tasks_completed=10,
        total_minutes=600,
        points_earned=100,
        sub_projects_contributed=2,
        projects_contributed=1,
        current_streak=7,
    )
    # 3.5 + 2.5 + 2.0 + 1.0 + 0.5 + 1.1666 -> 10.6666 -> 10.7
    assert performance_score(m) == 10.7


def test_zero_metrics_score_zero():
    assert performance_score(_metrics()) == 0.0


def test_everything_at_cap_scores_hundred():
    m = _metrics(
        tasks_completed=100,
        total_minutes=6000,
        points_earned=1000,
        sub_projects_contributed=20,
        projects_contributed=10,
        current_streak=30,
    )
    assert performance_score(m) == 100.0


def test_values_above_cap_are_clamped():
    m = _metrics(
        tasks_completed=10_000,
        total_minutes=10**7,
        points_earned=10**6,
        sub_projects_contributed=500,
        projects_contributed=500,
        current_streak=1000,
    )
    assert performance_score(m) == 100.0


def test_negative_inputs_clamp_to_zero():
    m = _metrics(tasks_completed=-5, total_minutes=-100, points_earned=-3)
    assert performance_score(m) == 0.0


def test_tasks_alone():
    assert performance_score(_metrics(tasks_completed=20)) == 7.0


@pytest.mark.parametrize(
    "field",
    [
        "tasks_completed",
        "total_minutes",
        "points_earned",
        "sub_projects_contributed",
        "projects_contributed",
        "current_streak",
    ],
)
def test_score_is_monotone_per_metric(field):
    previous = -1.0
    for value in (0, 1, 5, 10, 50, 100, 1000, 10_000):
        score = performance_score(_metrics(**{field: value}))
        assert 0.0 <= score <= 100.0
        assert score >= previous
        previous = score


def test_score_is_deterministic():
    m = _metrics(tasks_completed=7, total_minutes=333, points_earned=12)
    assert score_entry(m).performance_score == score_entry(m).performance_score


# --- Ranking ---


def _scored(user_id, score):
    return ScoredEntry(metrics=_metrics(user_id=user_id), performance_score=score)


def test_ranks_are_contiguous_and_ordered():
    ranked = rank_entries([_scored(1, 10.0), _scored(2, 55.5), _scored(3, 30.0), _scored(4, 0.0)])
    assert [e.rank for e in ranked] == [1, 2, 3, 4]
    assert [e.user_id for e in ranked] == [2, 3, 1, 4]
    scores = [e.performance_score for e in ranked]
    assert scores == sorted(scores, reverse=True)


def test_ties_break_by_user_id():
    ranked = rank_entries([_scored(9, 20.0), _scored(3, 20.0), _scored(5, 20.0)])
    assert [e.user_id for e in ranked] == [3, 5, 9]
    assert [e.rank for e in ranked] == [1, 2, 3]


def test_ranking_does_not_depend_on_input_order():
    entries = [_scored(i, float(i % 3)) for i in range(1, 10)]
    a = [(e.user_id, e.rank) for e in rank_entries(entries)]
    b = [(e.user_id, e.rank) for e in rank_entries(list(reversed(entries)))]
    assert a == b


def test_truncate_keeps_full_ranks():
    ranked = rank_entries([_scored(i, 100.0 - i) for i in range(1, 8)])
    top = truncate(ranked, 3)
    assert [e.rank for e in top] == [1, 2, 3]


def test_limit_bounds():
    assert check_limit(None) == DEFAULT_LIMIT
    assert check_limit(1) == 1
    assert check_limit(100) == 100
    with pytest.raises(ValueError):
        check_limit(0)
    with pytest.raises(ValueError):
        check_limit(101)


def test_attach_trends():
    ranked = rank_entries([_scored(1, 90.0), _scored(2, 80.0), _scored(3, 70.0)])
    out = attach_trends(ranked, {1: 2, 2: 1})
    assert [(e.user_id, e.trend, e.previous_rank) for e in out] == [
        (1, Trend.UP, 2),
        (2, Trend.DOWN, 1),
        (3, Trend.STABLE, None),
    ]


def test_narrow_ranks_renumbers_the_subset():
    company_ranks = {10: 1, 11: 2, 12: 3, 13: 4, 14: 5}
    assert narrow_ranks(company_ranks, [14, 12, 99]) == {12: 1, 14: 2}
    assert narrow_ranks(company_ranks, []) == {}


# --- Trend ---


def test_trend_values():
    assert trend_for(3, 5) == Trend.UP
    assert trend_for(5, 3) == Trend.DOWN
    assert trend_for(4, 4) == Trend.STABLE
    assert trend_for(1, None) == Trend.STABLE
