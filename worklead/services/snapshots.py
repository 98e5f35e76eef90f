# worklead/services/snapshots.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy.exc import IntegrityError

from worklead.database import Database
from worklead.database.models import LeaderboardPeriod
from worklead.database.repo.snapshot_repo import SnapshotRow, get_snapshot, ranks_in_range, replace_snapshot
from worklead.errors import PersistenceConflictError
from worklead.services.locks import KeyedLocks
from worklead.services.periods import parse_period, previous_period_window
from worklead.services.ranking import RankedEntry
from worklead.services.scope import Scope
from worklead.utils.dt import TimeProvider

log = logging.getLogger(__name__)


def _to_rows(entries: Sequence[RankedEntry]) -> list[SnapshotRow]:
    return [
        SnapshotRow(
            user_id=e.user_id,
            rank=e.rank,
            tasks_completed=e.metrics.tasks_completed,
            total_minutes=e.metrics.total_minutes,
            points_earned=e.metrics.points_earned,
            sub_projects_contributed=e.metrics.sub_projects_contributed,
            projects_contributed=e.metrics.projects_contributed,
            performance_score=e.performance_score,
        )
        for e in entries
    ]


class SnapshotStore:
    """
    Persisted rankings per (scope, period_type, period_start).

    save() is a full replace inside one transaction. Writers for the same key
    are serialized by this store's own locks; a writer in another process is
    caught by the unique constraint and the replace is re-applied once.
    """

    def __init__(
        self,
        db: Database,
        *,
        clock: TimeProvider | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.db = db
        self.clock = clock or TimeProvider()
        self._locks = locks or KeyedLocks()

    async def save(
        self,
        scope: Scope,
        period_type: LeaderboardPeriod,
        period_start: datetime,
        period_end: datetime,
        entries: Sequence[RankedEntry],
    ) -> int:
        period_type = parse_period(period_type)
        key = (scope.type.value, scope.id, period_type.value, period_start)
        rows = _to_rows(entries)

        async with self._locks.hold(key):
            for attempt in (1, 2):
                try:
                    async with self.db.session() as session:
                        async with session.begin():
                            n = await replace_snapshot(
                                session,
                                scope_type=scope.type,
                                scope_id=scope.id,
                                company_id=scope.company_id,
                                period_type=period_type,
                                period_start=period_start,
                                period_end=period_end,
                                rows=rows,
                            )
                except IntegrityError as e:
                    if attempt == 2:
                        raise PersistenceConflictError(key) from e
                    log.warning("Snapshot write conflict for %s, retrying once", key)
                    continue

                log.info(
                    "Saved snapshot scope=%s period=%s start=%s rows=%s",
                    scope,
                    period_type.value,
                    period_start.isoformat(),
                    n,
                )
                return n

        raise PersistenceConflictError(key)  # pragma: no cover - loop always returns or raises

    async def load(self, scope: Scope, period_type: LeaderboardPeriod, period_start: datetime) -> list[SnapshotRow]:
        async with self.db.session() as session:
            return await get_snapshot(
                session,
                scope_type=scope.type,
                scope_id=scope.id,
                period_type=parse_period(period_type),
                period_start=period_start,
            )

    async def previous_ranks(
        self,
        scope: Scope,
        period_type: LeaderboardPeriod | str | None,
        now: datetime | None = None,
    ) -> dict[int, int]:
        """
        {user_id: rank} from the snapshot of the window right before the
        current one. Empty when that window was never snapshotted.
        """
        prev = previous_period_window(period_type, now or self.clock.now())
        async with self.db.session() as session:
            return await ranks_in_range(
                session,
                scope_type=scope.type,
                scope_id=scope.id,
                period_type=prev.period,
                start=prev.start,
                end=prev.end or prev.start,
            )
