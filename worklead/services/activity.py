# worklead/services/activity.py
from __future__ import annotations

import logging
from datetime import date

from worklead.services.achievements import AchievementService
from worklead.services.streaks import StreakService

log = logging.getLogger(__name__)


class ActivityService:
    """
    Gamification side effects of finished work.

    Called after a task is completed or a time-tracking session is stopped.
    Never raises: the activity itself is already recorded and must not
    fail because of achievements or streaks.
    """

    def __init__(self, achievements: AchievementService, streaks: StreakService) -> None:
        self.achievements = achievements
        self.streaks = streaks

    async def on_task_completed(self, user_id: int, today: date | None = None) -> None:
        await self._after_activity(user_id, today, "task_completed")

    async def on_time_tracking_stopped(self, user_id: int, today: date | None = None) -> None:
        await self._after_activity(user_id, today, "time_tracking_stopped")

    async def _after_activity(self, user_id: int, today: date | None, event: str) -> None:
        try:
            await self.achievements.evaluate(user_id)
        except Exception:
            log.exception("Achievement check failed user=%s event=%s", user_id, event)

        try:
            await self.streaks.touch(user_id, today)
        except Exception:
            log.exception("Streak update failed user=%s event=%s", user_id, event)
