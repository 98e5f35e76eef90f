# worklead/services/scoring.py
"""
Performance score.

Every metric is normalized against a fixed cap (never relative to the
dataset), clamped to [0, 1] and weighted. The same function is used by
every scope so scores stay comparable across time and scope.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True, slots=True)
class UserMetrics:
    user_id: int
    tasks_completed: int = 0
    total_minutes: int = 0
    points_earned: int = 0
    sub_projects_contributed: int = 0
    projects_contributed: int = 0
    current_streak: int = 0

    @property
    def total_hours(self) -> float:
        return round(self.total_minutes / 60, 2)


@dataclass(frozen=True, slots=True)
class ScoredEntry:
    metrics: UserMetrics
    performance_score: float

    @property
    def user_id(self) -> int:
        return self.metrics.user_id


# Performance score weights (sum = 1.0)
WEIGHT_TASKS = 0.35
WEIGHT_TIME = 0.25
WEIGHT_POINTS = 0.20
WEIGHT_SUB_PROJECTS = 0.10
WEIGHT_PROJECTS = 0.05
WEIGHT_STREAK = 0.05

# Normalization caps
CAP_TASKS = 100
CAP_MINUTES = 6000  # 100 hours
CAP_POINTS = 1000
CAP_SUB_PROJECTS = 20
CAP_PROJECTS = 10
CAP_STREAK_DAYS = 30

_ONE_DECIMAL = Decimal("0.1")


def _ratio(value: int | float, cap: int) -> float:
    r = float(value) / cap
    if r <= 0:
        return 0.0
    return min(r, 1.0)


def performance_score(m: UserMetrics) -> float:
    """0.0 – 100.0, one decimal, half-up."""
    weighted = (
        _ratio(m.tasks_completed, CAP_TASKS) * WEIGHT_TASKS
        + _ratio(m.total_minutes, CAP_MINUTES) * WEIGHT_TIME
        + _ratio(m.points_earned, CAP_POINTS) * WEIGHT_POINTS
        + _ratio(m.sub_projects_contributed, CAP_SUB_PROJECTS) * WEIGHT_SUB_PROJECTS
        + _ratio(m.projects_contributed, CAP_PROJECTS) * WEIGHT_PROJECTS
        + _ratio(m.current_streak, CAP_STREAK_DAYS) * WEIGHT_STREAK
    )
    # repr(): shortest spelling that round-trips the float
    score = Decimal(repr(weighted * 100)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return min(max(float(score), 0.0), 100.0)


def score_entry(m: UserMetrics) -> ScoredEntry:
    return ScoredEntry(metrics=m, performance_score=performance_score(m))
