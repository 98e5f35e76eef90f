# worklead/database/repo/users.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from worklead.database.models import Company, User


@dataclass(frozen=True, slots=True)
class LifetimeCounters:
    user_id: int
    company_id: int
    total_tasks_completed: int
    total_time_tracked_minutes: int
    current_streak: int


@dataclass(frozen=True, slots=True)
class StreakRow:
    user_id: int
    company_id: int
    last_active_date: date | None
    current_streak: int
    longest_streak: int


async def get_user(session: AsyncSession, user_id: int) -> Optional[User]:
    res = await session.execute(select(User).where(User.id == user_id))
    return res.scalar_one_or_none()


async def get_company_user(session: AsyncSession, company_id: int, user_id: int) -> Optional[User]:
    res = await session.execute(select(User).where(User.id == user_id, User.company_id == company_id))
    return res.scalar_one_or_none()


async def get_lifetime_counters(session: AsyncSession, user_id: int) -> Optional[LifetimeCounters]:
    res = await session.execute(
        select(
            User.company_id,
            User.total_tasks_completed,
            User.total_time_tracked_minutes,
            User.current_streak,
        ).where(User.id == user_id)
    )
    row = res.first()
    if row is None:
        return None

    company_id, tasks, minutes, streak = row
    return LifetimeCounters(
        user_id=user_id,
        company_id=int(company_id),
        total_tasks_completed=int(tasks or 0),
        total_time_tracked_minutes=int(minutes or 0),
        current_streak=int(streak or 0),
    )


async def get_streak_state(session: AsyncSession, user_id: int) -> Optional[StreakRow]:
    res = await session.execute(
        select(
            User.company_id,
            User.last_active_date,
            User.current_streak,
            User.longest_streak,
        ).where(User.id == user_id)
    )
    row = res.first()
    if row is None:
        return None

    company_id, last_active, current, longest = row
    return StreakRow(
        user_id=user_id,
        company_id=int(company_id),
        last_active_date=last_active,
        current_streak=int(current or 0),
        longest_streak=int(longest or 0),
    )


async def save_streak_state(
    session: AsyncSession,
    *,
    user_id: int,
    last_active_date: date,
    current_streak: int,
    longest_streak: int,
) -> None:
    await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            last_active_date=last_active_date,
            current_streak=current_streak,
            longest_streak=longest_streak,
        )
    )


async def list_active_company_ids(session: AsyncSession) -> list[int]:
    res = await session.execute(
        select(Company.id).where(Company.is_active.is_(True)).order_by(Company.id.asc())
    )
    return [int(cid) for (cid,) in res.all()]
