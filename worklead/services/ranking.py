# worklead/services/ranking.py
"""
Ranking.

Order: performance_score descending, then user_id ascending. The user_id
tie-break makes ranks independent of the order metrics were read in.
Ranks are 1..N positions over the whole scope; a `limit` only cuts the
already ranked list.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from worklead.services.scoring import ScoredEntry, UserMetrics
from worklead.services.trend import Trend, trend_for

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_LIMIT = 50


@dataclass(frozen=True, slots=True)
class RankedEntry:
    rank: int
    metrics: UserMetrics
    performance_score: float
    trend: Trend = Trend.STABLE
    previous_rank: int | None = None

    @property
    def user_id(self) -> int:
        return self.metrics.user_id


def _sort_key(entry: ScoredEntry) -> tuple[float, int]:
    return (-entry.performance_score, entry.user_id)


def rank_entries(entries: Iterable[ScoredEntry]) -> list[RankedEntry]:
    ordered = sorted(entries, key=_sort_key)
    return [
        RankedEntry(rank=i, metrics=e.metrics, performance_score=e.performance_score)
        for i, e in enumerate(ordered, start=1)
    ]


def attach_trends(ranked: Iterable[RankedEntry], previous_ranks: Mapping[int, int]) -> list[RankedEntry]:
    out: list[RankedEntry] = []
    for e in ranked:
        prev = previous_ranks.get(e.user_id)
        out.append(
            RankedEntry(
                rank=e.rank,
                metrics=e.metrics,
                performance_score=e.performance_score,
                trend=trend_for(e.rank, prev),
                previous_rank=prev,
            )
        )
    return out


def check_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    limit = int(limit)
    if not MIN_LIMIT <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}, got {limit}")
    return limit


def truncate(ranked: list[RankedEntry], limit: int | None) -> list[RankedEntry]:
    return ranked[: check_limit(limit)]


def narrow_ranks(previous_ranks: Mapping[int, int], user_ids: Iterable[int]) -> dict[int, int]:
    """
    Keeps only `user_ids` and renumbers them 1..k in their previous order.

    A department board is a subset of the company board, so its previous
    ranks come from the company snapshot restricted to the department.
    """
    keep = set(user_ids)
    ordered = sorted((rank, uid) for uid, rank in previous_ranks.items() if uid in keep)
    return {uid: i for i, (_, uid) in enumerate(ordered, start=1)}
