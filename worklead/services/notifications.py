# worklead/services/notifications.py
"""
Achievement notifications.

Delivery is best-effort: NotificationService never raises, each failing
channel is logged and the others still run. The achievement row is the
source of truth and is committed before any channel is called.
"""
from __future__ import annotations

import html
import json
import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Protocol

from aiogram import Bot
from aiogram.exceptions import TelegramForbiddenError

from worklead.database import Database
from worklead.database.models import NotificationType
from worklead.database.repo.achievement_repo import AchievementRow
from worklead.database.repo.notification_repo import add_notification
from worklead.database.repo.users import get_user

log = logging.getLogger(__name__)

ACHIEVEMENT_TITLE = "🏆 Achievement Unlocked!"


@dataclass(frozen=True, slots=True)
class AchievementEarnedPayload:
    """Closed key set stored with ACHIEVEMENT_EARNED notifications."""
    achievement_type: str
    company_id: int

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)


def achievement_message(a: AchievementRow) -> str:
    return f'You earned "{a.title}": {a.description}'


class Notifier(Protocol):
    async def achievement_earned(self, achievement: AchievementRow) -> None: ...


class InAppNotifier:
    """Writes a row into `notifications`."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def achievement_earned(self, achievement: AchievementRow) -> None:
        payload = AchievementEarnedPayload(
            achievement_type=achievement.type.value,
            company_id=achievement.company_id,
        )
        async with self.db.session() as session:
            async with session.begin():
                await add_notification(
                    session,
                    user_id=achievement.user_id,
                    type=NotificationType.ACHIEVEMENT_EARNED,
                    title=ACHIEVEMENT_TITLE,
                    message=achievement_message(achievement),
                    payload_json=payload.to_json(),
                )


class TelegramNotifier:
    """
    Direct message for users that linked a Telegram chat.
    Users without telegram_chat_id are skipped silently.
    """

    def __init__(self, bot: Bot, db: Database) -> None:
        self.bot = bot
        self.db = db

    async def achievement_earned(self, achievement: AchievementRow) -> None:
        async with self.db.session() as session:
            user = await get_user(session, achievement.user_id)
        if user is None or not user.telegram_chat_id:
            return

        text = (
            f"<b>{html.escape(ACHIEVEMENT_TITLE)}</b>\n"
            f"{html.escape(achievement_message(achievement))}"
        )
        try:
            await self.bot.send_message(chat_id=user.telegram_chat_id, text=text, parse_mode="HTML")
        except TelegramForbiddenError:
            # user blocked the bot; nothing to retry
            log.warning("Telegram chat %s refused achievement message", user.telegram_chat_id)


class NotificationService:
    def __init__(self, channels: Iterable[Notifier] = ()) -> None:
        self.channels = list(channels)

    async def achievement_earned(self, achievement: AchievementRow) -> None:
        for channel in self.channels:
            try:
                await channel.achievement_earned(achievement)
            except Exception:
                log.exception(
                    "Notification via %s failed for user=%s achievement=%s",
                    type(channel).__name__,
                    achievement.user_id,
                    achievement.type.value,
                )
