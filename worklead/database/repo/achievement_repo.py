from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from worklead.database.models import Achievement, AchievementType
from worklead.database.tx import transactional


@dataclass(frozen=True, slots=True)
class AchievementRow:
    user_id: int
    company_id: int
    type: AchievementType
    title: str
    description: str
    earned_at: datetime | None


def _to_row(a: Achievement) -> AchievementRow:
    return AchievementRow(
        user_id=int(a.user_id),
        company_id=int(a.company_id),
        type=AchievementType(a.type),
        title=a.title,
        description=a.description,
        earned_at=a.earned_at,
    )


async def earned_types(session: AsyncSession, user_id: int) -> set[AchievementType]:
    res = await session.execute(select(Achievement.type).where(Achievement.user_id == user_id))
    return {AchievementType(t) for (t,) in res.all()}


async def insert_once(
    session: AsyncSession,
    *,
    user_id: int,
    company_id: int,
    type: AchievementType,
    title: str,
    description: str,
    earned_at: datetime,
) -> AchievementRow | None:
    """
    Inserts the achievement unless (user_id, type) already exists.
    Protected from duplicates by uq_achievements_user_type.

    Returns None if it was already earned. Meant for a session with no
    transaction in progress: a duplicate rolls back the whole unit.
    """
    row = Achievement(
        user_id=user_id,
        company_id=company_id,
        type=type,
        title=title,
        description=description,
        earned_at=earned_at,
    )
    try:
        async with transactional(session):
            session.add(row)
            await session.flush()  # may raise IntegrityError if already earned
    except IntegrityError:
        return None

    return _to_row(row)


async def latest_for_user(session: AsyncSession, user_id: int, limit: int = 10) -> list[AchievementRow]:
    res = await session.execute(
        select(Achievement)
        .where(Achievement.user_id == user_id)
        .order_by(Achievement.earned_at.desc(), Achievement.id.desc())
        .limit(limit)
    )
    return [_to_row(a) for a in res.scalars().all()]
