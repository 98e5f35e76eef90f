from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worklead.database.models import Notification, NotificationType


async def add_notification(
    session: AsyncSession,
    *,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    payload_json: str | None = None,
) -> Notification:
    n = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        payload_json=payload_json,
    )
    session.add(n)
    await session.flush()
    return n


async def list_for_user(session: AsyncSession, user_id: int) -> list[Notification]:
    res = await session.execute(
        select(Notification).where(Notification.user_id == user_id).order_by(Notification.id.asc())
    )
    return list(res.scalars().all())
