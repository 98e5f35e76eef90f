# worklead/services/trend.py
from __future__ import annotations

import enum


class Trend(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def trend_for(current_rank: int, previous_rank: int | None) -> Trend:
    """Single-period comparison, no smoothing. Lower rank number = better."""
    if previous_rank is None:
        return Trend.STABLE
    if current_rank < previous_rank:
        return Trend.UP
    if current_rank > previous_rank:
        return Trend.DOWN
    return Trend.STABLE
