from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from worklead.database.models import LeaderboardPeriod, LeaderboardSnapshot


@dataclass(frozen=True, slots=True)
class SnapshotRow:
    user_id: int
    rank: int
    tasks_completed: int
    total_minutes: int
    points_earned: int
    sub_projects_contributed: int
    projects_contributed: int
    performance_score: float


def _key_filter(scope_type, scope_id: int, period_type: LeaderboardPeriod, period_start: datetime) -> tuple:
    return (
        LeaderboardSnapshot.scope_type == scope_type,
        LeaderboardSnapshot.scope_id == scope_id,
        LeaderboardSnapshot.period_type == period_type,
        LeaderboardSnapshot.period_start == period_start,
    )


async def replace_snapshot(
    session: AsyncSession,
    *,
    scope_type,
    scope_id: int,
    company_id: int,
    period_type: LeaderboardPeriod,
    period_start: datetime,
    period_end: datetime,
    rows: Sequence[SnapshotRow],
) -> int:
    """
    Deletes every row of the (scope, period_type, period_start) key, then
    inserts `rows`. Caller owns the transaction; both statements must run
    inside the same one.
    """
    await session.execute(
        delete(LeaderboardSnapshot).where(*_key_filter(scope_type, scope_id, period_type, period_start))
    )

    session.add_all(
        [
            LeaderboardSnapshot(
                scope_type=scope_type,
                scope_id=scope_id,
                company_id=company_id,
                period_type=period_type,
                period_start=period_start,
                period_end=period_end,
                user_id=r.user_id,
                rank=r.rank,
                tasks_completed=r.tasks_completed,
                total_minutes=r.total_minutes,
                points_earned=r.points_earned,
                sub_projects_contributed=r.sub_projects_contributed,
                projects_contributed=r.projects_contributed,
                performance_score=float(r.performance_score),
            )
            for r in rows
        ]
    )
    await session.flush()  # may raise IntegrityError if a concurrent writer got in between
    return len(rows)


async def get_snapshot(
    session: AsyncSession,
    *,
    scope_type,
    scope_id: int,
    period_type: LeaderboardPeriod,
    period_start: datetime,
) -> list[SnapshotRow]:
    res = await session.execute(
        select(LeaderboardSnapshot)
        .where(*_key_filter(scope_type, scope_id, period_type, period_start))
        .order_by(LeaderboardSnapshot.rank.asc())
    )
    return [
        SnapshotRow(
            user_id=int(s.user_id),
            rank=int(s.rank),
            tasks_completed=int(s.tasks_completed or 0),
            total_minutes=int(s.total_minutes or 0),
            points_earned=int(s.points_earned or 0),
            sub_projects_contributed=int(s.sub_projects_contributed or 0),
            projects_contributed=int(s.projects_contributed or 0),
            performance_score=float(s.performance_score or 0.0),
        )
        for s in res.scalars().all()
    ]


async def ranks_in_range(
    session: AsyncSession,
    *,
    scope_type,
    scope_id: int,
    period_type: LeaderboardPeriod,
    start: datetime,
    end: datetime,
) -> dict[int, int]:
    """
    {user_id: rank} of snapshots whose period_start lies in [start, end).
    A degenerate range (start == end) matches period_start == start exactly.
    When several period starts match, the latest one wins.
    """
    q = select(LeaderboardSnapshot.user_id, LeaderboardSnapshot.rank).where(
        LeaderboardSnapshot.scope_type == scope_type,
        LeaderboardSnapshot.scope_id == scope_id,
        LeaderboardSnapshot.period_type == period_type,
    )
    if end <= start:
        q = q.where(LeaderboardSnapshot.period_start == start)
    else:
        q = q.where(LeaderboardSnapshot.period_start >= start, LeaderboardSnapshot.period_start < end)

    q = q.order_by(LeaderboardSnapshot.period_start.asc(), LeaderboardSnapshot.rank.asc())

    res = await session.execute(q)
    out: dict[int, int] = {}
    for user_id, rank in res.all():
        out[int(user_id)] = int(rank)
    return out
