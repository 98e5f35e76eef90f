from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from worklead.database import Database
from worklead.database.models import (
    Company,
    Department,
    Project,
    ProjectMember,
    ScopeType,
    SubProject,
    SubProjectMember,
    Task,
    TaskStatus,
    TimeTracking,
    User,
)
from worklead.errors import NotFoundError
from worklead.services.periods import PeriodWindow
from worklead.services.scope import Scope
from worklead.services.scoring import UserMetrics


# ------------------------
# Scope checks
# ------------------------

async def ensure_scope(session: AsyncSession, scope: Scope) -> None:
    if scope.type == ScopeType.COMPANY:
        found = await session.scalar(select(Company.id).where(Company.id == scope.id))
        if found is None:
            raise NotFoundError("company", scope.id)
        if scope.department_id is not None:
            dept = await session.scalar(
                select(Department.id).where(
                    Department.id == scope.department_id,
                    Department.company_id == scope.company_id,
                )
            )
            if dept is None:
                raise NotFoundError("department", scope.department_id)
        return

    if scope.type == ScopeType.PROJECT:
        found = await session.scalar(
            select(Project.id).where(Project.id == scope.id, Project.company_id == scope.company_id)
        )
        if found is None:
            raise NotFoundError("project", scope.id)
        return

    found = await session.scalar(
        select(SubProject.id)
        .join(Project, Project.id == SubProject.project_id)
        .where(SubProject.id == scope.id, Project.company_id == scope.company_id)
    )
    if found is None:
        raise NotFoundError("sub_project", scope.id)


async def list_scope_user_ids(session: AsyncSession, scope: Scope) -> list[int]:
    if scope.type == ScopeType.COMPANY:
        q = select(User.id).where(User.company_id == scope.id, User.is_active.is_(True))
        if scope.department_id is not None:
            q = q.where(User.department_id == scope.department_id)
        q = q.order_by(User.id.asc())
    elif scope.type == ScopeType.PROJECT:
        q = (
            select(ProjectMember.user_id)
            .where(ProjectMember.project_id == scope.id)
            .order_by(ProjectMember.user_id.asc())
        )
    else:
        q = (
            select(SubProjectMember.user_id)
            .where(SubProjectMember.sub_project_id == scope.id)
            .order_by(SubProjectMember.user_id.asc())
        )

    res = await session.execute(q)
    return [int(uid) for (uid,) in res.all()]


async def list_project_ids(session: AsyncSession, company_id: int) -> list[int]:
    res = await session.execute(
        select(Project.id).where(Project.company_id == company_id).order_by(Project.id.asc())
    )
    return [int(pid) for (pid,) in res.all()]


async def list_sub_project_ids(session: AsyncSession, company_id: int) -> list[int]:
    res = await session.execute(
        select(SubProject.id)
        .join(Project, Project.id == SubProject.project_id)
        .where(Project.company_id == company_id)
        .order_by(SubProject.id.asc())
    )
    return [int(sid) for (sid,) in res.all()]


# ------------------------
# Window-bound counters
# ------------------------

def _in_window(column, window: PeriodWindow) -> list:
    conds = [column >= window.start]
    if window.end is not None:
        conds.append(column < window.end)
    return conds


async def count_completed_tasks(
    session: AsyncSession,
    scope: Scope,
    user_id: int,
    window: PeriodWindow,
) -> int:
    q = select(func.count(Task.id)).where(
        Task.assigned_to_id == user_id,
        Task.status == TaskStatus.COMPLETED,
        *_in_window(Task.completed_at, window),
    )
    if scope.type == ScopeType.PROJECT:
        q = q.join_from(Task, SubProject, SubProject.id == Task.sub_project_id).where(SubProject.project_id == scope.id)
    elif scope.type == ScopeType.SUB_PROJECT:
        q = q.where(Task.sub_project_id == scope.id)

    return int(await session.scalar(q) or 0)


async def sum_tracked_minutes(
    session: AsyncSession,
    scope: Scope,
    user_id: int,
    window: PeriodWindow,
) -> int:
    q = select(func.coalesce(func.sum(TimeTracking.duration_minutes), 0)).where(
        TimeTracking.user_id == user_id,
        TimeTracking.is_active.is_(False),
        *_in_window(TimeTracking.start_time, window),
    )
    if scope.type == ScopeType.PROJECT:
        q = q.join_from(TimeTracking, SubProject, SubProject.id == TimeTracking.sub_project_id).where(
            SubProject.project_id == scope.id
        )
    elif scope.type == ScopeType.SUB_PROJECT:
        q = q.where(TimeTracking.sub_project_id == scope.id)

    return int(await session.scalar(q) or 0)


# ------------------------
# Scope-bound counters
# ------------------------

async def scope_points(session: AsyncSession, scope: Scope, user_id: int) -> int | None:
    """
    Point balance as seen from the scope; None when the user is not part of it.
    """
    if scope.type == ScopeType.COMPANY:
        q = select(User.points).where(User.id == user_id, User.company_id == scope.id)
    elif scope.type == ScopeType.PROJECT:
        q = select(ProjectMember.points_earned).where(
            ProjectMember.project_id == scope.id,
            ProjectMember.user_id == user_id,
        )
    else:
        q = select(SubProjectMember.points_earned).where(
            SubProjectMember.sub_project_id == scope.id,
            SubProjectMember.user_id == user_id,
        )

    res = await session.execute(q)
    row = res.first()
    if row is None:
        return None
    return int(row[0] or 0)


async def count_sub_projects(session: AsyncSession, scope: Scope, user_id: int) -> int:
    if scope.type == ScopeType.SUB_PROJECT:
        return 1

    q = (
        select(func.count(SubProjectMember.id))
        .join_from(SubProjectMember, SubProject, SubProject.id == SubProjectMember.sub_project_id)
        .where(SubProjectMember.user_id == user_id)
    )
    if scope.type == ScopeType.PROJECT:
        q = q.where(SubProject.project_id == scope.id)
    else:
        q = q.join_from(SubProject, Project, Project.id == SubProject.project_id).where(Project.company_id == scope.id)

    return int(await session.scalar(q) or 0)


async def count_projects(session: AsyncSession, scope: Scope, user_id: int) -> int:
    if scope.type != ScopeType.COMPANY:
        return 1

    q = (
        select(func.count(ProjectMember.id))
        .join_from(ProjectMember, Project, Project.id == ProjectMember.project_id)
        .where(ProjectMember.user_id == user_id, Project.company_id == scope.id)
    )
    return int(await session.scalar(q) or 0)


async def user_current_streak(session: AsyncSession, user_id: int) -> int:
    return int(await session.scalar(select(User.current_streak).where(User.id == user_id)) or 0)


# ------------------------
# Reader
# ------------------------

class SqlMetricsReader:
    """
    MetricsReader over the platform tables.

    Every call opens its own session, so reads for different users can run
    concurrently on one reader.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def list_scope_users(self, scope: Scope) -> list[int]:
        async with self.db.session() as session:
            await ensure_scope(session, scope)
            return await list_scope_user_ids(session, scope)

    async def get_user_metrics(self, scope: Scope, user_id: int, window: PeriodWindow) -> UserMetrics:
        async with self.db.session() as session:
            points = await scope_points(session, scope, user_id)
            if points is None:
                await ensure_scope(session, scope)
                raise NotFoundError("user", user_id)

            tasks = await count_completed_tasks(session, scope, user_id, window)
            minutes = await sum_tracked_minutes(session, scope, user_id, window)
            sub_projects = await count_sub_projects(session, scope, user_id)
            projects = await count_projects(session, scope, user_id)

            # subproject boards leave the streak out of the score
            streak = 0 if scope.type == ScopeType.SUB_PROJECT else await user_current_streak(session, user_id)

            return UserMetrics(
                user_id=user_id,
                tasks_completed=tasks,
                total_minutes=minutes,
                points_earned=points,
                sub_projects_contributed=sub_projects,
                projects_contributed=projects,
                current_streak=streak,
            )


async def window_tasks_and_minutes(
    session: AsyncSession,
    scope: Scope,
    user_id: int,
    window: PeriodWindow,
) -> tuple[int, int]:
    tasks = await count_completed_tasks(session, scope, user_id, window)
    minutes = await sum_tracked_minutes(session, scope, user_id, window)
    return tasks, minutes


async def session_count(session: AsyncSession, user_id: int, window: PeriodWindow) -> int:
    q = select(func.count(TimeTracking.id)).where(
        TimeTracking.user_id == user_id,
        TimeTracking.is_active.is_(False),
        *_in_window(TimeTracking.start_time, window),
    )
    return int(await session.scalar(q) or 0)


async def minutes_per_day_since(session: AsyncSession, user_id: int, since: datetime) -> list[tuple[str, int]]:
    """
    [(YYYY-MM-DD, minutes)], newest day first. Days without sessions are absent.
    """
    res = await session.execute(
        select(TimeTracking.start_time, TimeTracking.duration_minutes).where(
            TimeTracking.user_id == user_id,
            TimeTracking.is_active.is_(False),
            TimeTracking.start_time >= since,
        )
    )
    per_day: dict[str, int] = {}
    for start_time, minutes in res.all():
        day = start_time.date().isoformat()
        per_day[day] = per_day.get(day, 0) + int(minutes or 0)

    return sorted(per_day.items(), key=lambda kv: kv[0], reverse=True)
