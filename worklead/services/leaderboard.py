# worklead/services/leaderboard.py
"""
Leaderboard pipeline:

    resolve period -> read metrics per user (concurrently) -> score -> rank
    -> previous ranks from snapshots -> trend -> truncate

A user whose read fails or times out is left out of the ranking and
reported in `excluded_user_ids`; the rest of the board is still built.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from worklead.config.settings import DEFAULT_READ_TIMEOUT_SECONDS
from worklead.database import Database
from worklead.database.models import LeaderboardPeriod
from worklead.database.repo.achievement_repo import AchievementRow, latest_for_user
from worklead.database.repo.metrics_repo import (
    SqlMetricsReader,
    minutes_per_day_since,
    session_count,
    window_tasks_and_minutes,
)
from worklead.database.repo.users import get_company_user
from worklead.errors import NotFoundError, PartialReadFailure
from worklead.services.metrics import MetricsReader
from worklead.services.periods import DateLike, PeriodWindow, previous_window, resolve_period
from worklead.services.ranking import (
    DEFAULT_LIMIT,
    RankedEntry,
    attach_trends,
    check_limit,
    narrow_ranks,
    rank_entries,
    truncate,
)
from worklead.services.scope import Scope
from worklead.services.scoring import UserMetrics, performance_score, score_entry
from worklead.services.snapshots import SnapshotStore
from worklead.utils.dt import TimeProvider

log = logging.getLogger(__name__)

RECENT_ACTIVITY_DAYS = 14
LATEST_ACHIEVEMENTS = 10


# ------------------------
# Query surface
# ------------------------

@dataclass(frozen=True, slots=True)
class LeaderboardQuery:
    period: LeaderboardPeriod | str | None = None
    project_id: int | None = None
    department_id: int | None = None
    sub_project_id: int | None = None
    start_date: DateLike | None = None
    end_date: DateLike | None = None
    limit: int = DEFAULT_LIMIT


@dataclass(frozen=True, slots=True)
class LeaderboardPage:
    scope: Scope
    period: LeaderboardPeriod
    start_date: datetime
    end_date: datetime | None
    total_participants: int
    entries: list[RankedEntry]
    excluded_user_ids: list[int] = field(default_factory=list)
    # False: no snapshot for the previous window, every trend is "stable" by default
    has_previous_snapshot: bool = False


@dataclass(frozen=True, slots=True)
class ScopeRanking:
    """Full, untruncated ranking of one scope for one window."""
    scope: Scope
    window: PeriodWindow
    ranked: list[RankedEntry]
    excluded_user_ids: list[int]

    @property
    def user_ids(self) -> list[int]:
        """Everyone in the scope, ranked or excluded."""
        return [e.user_id for e in self.ranked] + list(self.excluded_user_ids)

    def rank_of(self, user_id: int) -> int | None:
        for e in self.ranked:
            if e.user_id == user_id:
                return e.rank
        return None


# ------------------------
# User performance
# ------------------------

@dataclass(frozen=True, slots=True)
class PeriodStats:
    tasks_completed: int
    total_minutes: int
    performance_score: float
    points_earned: int = 0
    sub_projects_contributed: int = 0
    projects_contributed: int = 0
    session_count: int = 0

    @property
    def total_hours(self) -> float:
        return round(self.total_minutes / 60, 2)

    @property
    def average_task_minutes(self) -> int:
        if self.tasks_completed <= 0:
            return 0
        return _round_half_up(self.total_minutes / self.tasks_completed)


@dataclass(frozen=True, slots=True)
class PerformanceChange:
    tasks_completed: int
    tasks_completed_pct: int
    total_minutes: int
    total_minutes_pct: int
    performance_score: float


@dataclass(frozen=True, slots=True)
class UserPerformance:
    user_id: int
    company_id: int
    window: PeriodWindow
    current: PeriodStats
    previous: PeriodStats
    change: PerformanceChange

    # 0 = not ranked
    current_rank: int
    previous_rank: int
    rank_change: int

    achievements: list[AchievementRow]
    current_streak: int
    longest_streak: int

    total_tasks_completed: int
    total_time_minutes: int
    last_active_date: date | None
    recent_activity: list[tuple[str, int]]

    @property
    def total_time_hours(self) -> float:
        return round(self.total_time_minutes / 60, 2)


def _round_half_up(value: float) -> int:
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _pct_change(current: int, previous: int) -> int:
    if previous <= 0:
        return 0
    return _round_half_up((current - previous) / previous * 100)


# ------------------------
# Service
# ------------------------

class LeaderboardService:
    def __init__(
        self,
        db: Database,
        *,
        reader: MetricsReader | None = None,
        snapshots: SnapshotStore | None = None,
        clock: TimeProvider | None = None,
        read_timeout: float = DEFAULT_READ_TIMEOUT_SECONDS,
    ) -> None:
        self.db = db
        self.clock = clock or TimeProvider()
        self.reader: MetricsReader = reader or SqlMetricsReader(db)
        self.snapshots = snapshots or SnapshotStore(db, clock=self.clock)
        self.read_timeout = read_timeout

    @staticmethod
    def resolve_scope(company_id: int, query: LeaderboardQuery) -> Scope:
        """sub_project_id wins over project_id; otherwise the company (optionally one department)."""
        if query.sub_project_id is not None:
            return Scope.sub_project(query.sub_project_id, company_id=company_id)
        if query.project_id is not None:
            return Scope.project(query.project_id, company_id=company_id)
        return Scope.company(company_id, department_id=query.department_id)

    async def get_leaderboard(self, company_id: int, query: LeaderboardQuery | None = None) -> LeaderboardPage:
        query = query or LeaderboardQuery()
        limit = check_limit(query.limit)
        scope = self.resolve_scope(company_id, query)

        now = self.clock.now()
        window = resolve_period(query.period, now, query.start_date, query.end_date)
        ranking = await self.rank_scope(scope, window)

        if window.custom:
            previous: dict[int, int] = {}
        else:
            previous = await self.snapshots.previous_ranks(scope, window.period, now)
        has_previous = bool(previous)

        # department boards are snapshotted as part of their company board
        if scope.department_id is not None:
            previous = narrow_ranks(previous, ranking.user_ids)

        entries = attach_trends(truncate(ranking.ranked, limit), previous)
        log.debug(
            "Leaderboard %s period=%s ranked=%s excluded=%s",
            scope,
            window.period.value,
            len(ranking.ranked),
            len(ranking.excluded_user_ids),
        )

        return LeaderboardPage(
            scope=scope,
            period=window.period,
            start_date=window.start,
            end_date=window.end,
            total_participants=len(ranking.ranked),
            entries=entries,
            excluded_user_ids=ranking.excluded_user_ids,
            has_previous_snapshot=has_previous,
        )

    async def company_leaderboard(
        self,
        company_id: int,
        *,
        period: LeaderboardPeriod | str | None = None,
        department_id: int | None = None,
        start_date: DateLike | None = None,
        end_date: DateLike | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> LeaderboardPage:
        return await self.get_leaderboard(
            company_id,
            LeaderboardQuery(
                period=period,
                department_id=department_id,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
            ),
        )

    async def project_leaderboard(
        self,
        company_id: int,
        project_id: int,
        *,
        period: LeaderboardPeriod | str | None = None,
        start_date: DateLike | None = None,
        end_date: DateLike | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> LeaderboardPage:
        return await self.get_leaderboard(
            company_id,
            LeaderboardQuery(
                period=period,
                project_id=project_id,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
            ),
        )

    async def sub_project_leaderboard(
        self,
        company_id: int,
        sub_project_id: int,
        *,
        period: LeaderboardPeriod | str | None = None,
        start_date: DateLike | None = None,
        end_date: DateLike | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> LeaderboardPage:
        return await self.get_leaderboard(
            company_id,
            LeaderboardQuery(
                period=period,
                sub_project_id=sub_project_id,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
            ),
        )

    async def rank_scope(self, scope: Scope, window: PeriodWindow) -> ScopeRanking:
        user_ids = await self.reader.list_scope_users(scope)
        results = await asyncio.gather(*(self._read_one(scope, uid, window) for uid in user_ids))

        scored = []
        excluded: list[int] = []
        for uid, metrics in zip(user_ids, results):
            if metrics is None:
                excluded.append(uid)
            else:
                scored.append(score_entry(metrics))

        return ScopeRanking(scope=scope, window=window, ranked=rank_entries(scored), excluded_user_ids=excluded)

    async def _read_metrics(self, scope: Scope, user_id: int, window: PeriodWindow) -> UserMetrics:
        try:
            return await asyncio.wait_for(
                self.reader.get_user_metrics(scope, user_id, window),
                timeout=self.read_timeout,
            )
        except asyncio.TimeoutError as e:
            raise PartialReadFailure(user_id, f"timed out after {self.read_timeout}s") from e

    async def _read_one(self, scope: Scope, user_id: int, window: PeriodWindow) -> UserMetrics | None:
        try:
            return await self._read_metrics(scope, user_id, window)
        except PartialReadFailure as e:
            failure = e
        except Exception as e:
            failure = PartialReadFailure(user_id, f"{type(e).__name__}: {e}")

        log.warning("Excluding user from %s leaderboard: %s", scope, failure.message)
        return None

    async def save_snapshot(
        self,
        scope: Scope,
        period: LeaderboardPeriod | str | None,
        now: datetime | None = None,
    ) -> int:
        """Ranks the scope for the current `period` window and replaces its snapshot."""
        now = now or self.clock.now()
        window = resolve_period(period, now)
        ranking = await self.rank_scope(scope, window)
        return await self.snapshots.save(
            scope,
            window.period,
            window.start,
            window.end or now,
            ranking.ranked,
        )

    async def user_performance(
        self,
        company_id: int,
        user_id: int,
        period: LeaderboardPeriod | str | None = None,
        start_date: DateLike | None = None,
        end_date: DateLike | None = None,
    ) -> UserPerformance:
        now = self.clock.now()
        window = resolve_period(period, now, start_date, end_date)
        prev_window = previous_window(window)
        scope = Scope.company(company_id)

        async with self.db.session() as session:
            user = await get_company_user(session, company_id, user_id)
            if user is None:
                raise NotFoundError("user", user_id)

            sessions = await session_count(session, user_id, window)
            if prev_window is None or prev_window.is_empty:
                prev_tasks, prev_minutes = 0, 0
            else:
                prev_tasks, prev_minutes = await window_tasks_and_minutes(session, scope, user_id, prev_window)

            achievements = await latest_for_user(session, user_id, limit=LATEST_ACHIEVEMENTS)
            recent = await minutes_per_day_since(session, user_id, now - timedelta(days=RECENT_ACTIVITY_DAYS))

        metrics = await self._read_metrics(scope, user_id, window)
        current = PeriodStats(
            tasks_completed=metrics.tasks_completed,
            total_minutes=metrics.total_minutes,
            performance_score=performance_score(metrics),
            points_earned=metrics.points_earned,
            sub_projects_contributed=metrics.sub_projects_contributed,
            projects_contributed=metrics.projects_contributed,
            session_count=sessions,
        )

        # previous window: activity-only score
        previous = PeriodStats(
            tasks_completed=prev_tasks,
            total_minutes=prev_minutes,
            performance_score=performance_score(
                UserMetrics(user_id=user_id, tasks_completed=prev_tasks, total_minutes=prev_minutes)
            ),
        )

        ranking = await self.rank_scope(scope, window)
        current_rank = ranking.rank_of(user_id) or 0
        previous_rank = 0
        if not window.custom:
            prev_ranks = await self.snapshots.previous_ranks(scope, window.period, now)
            previous_rank = prev_ranks.get(user_id, 0)
        rank_change = previous_rank - current_rank if current_rank and previous_rank else 0

        return UserPerformance(
            user_id=user_id,
            company_id=company_id,
            window=window,
            current=current,
            previous=previous,
            change=PerformanceChange(
                tasks_completed=current.tasks_completed - previous.tasks_completed,
                tasks_completed_pct=_pct_change(current.tasks_completed, previous.tasks_completed),
                total_minutes=current.total_minutes - previous.total_minutes,
                total_minutes_pct=_pct_change(current.total_minutes, previous.total_minutes),
                performance_score=round(current.performance_score - previous.performance_score, 1),
            ),
            current_rank=current_rank,
            previous_rank=previous_rank,
            rank_change=rank_change,
            achievements=achievements,
            current_streak=int(user.current_streak or 0),
            longest_streak=int(user.longest_streak or 0),
            total_tasks_completed=int(user.total_tasks_completed or 0),
            total_time_minutes=int(user.total_time_tracked_minutes or 0),
            last_active_date=user.last_active_date,
            recent_activity=recent,
        )
