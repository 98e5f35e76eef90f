# worklead/services/achievements.py
"""
Threshold achievements.

Lifetime counters are compared against ordered threshold tables. Every
crossed, not-yet-earned threshold is awarded in the same pass, so a jump
from 5 to 15 tasks yields both the 1-task and the 10-task achievement.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable

from worklead.database import Database
from worklead.database.models import AchievementType
from worklead.database.repo.achievement_repo import AchievementRow, earned_types, insert_once
from worklead.database.repo.users import LifetimeCounters, get_lifetime_counters
from worklead.errors import NotFoundError
from worklead.services.locks import KeyedLocks
from worklead.services.notifications import Notifier
from worklead.utils.dt import TimeProvider

log = logging.getLogger(__name__)


class AchievementCategory(str, enum.Enum):
    TASKS = "tasks"
    HOURS = "hours"
    STREAK = "streak"


@dataclass(frozen=True, slots=True)
class AchievementRule:
    threshold: int
    type: AchievementType
    title: str
    description: str


# ------------------------
# Threshold tables (ascending)
# ------------------------

TASK_ACHIEVEMENTS: tuple[AchievementRule, ...] = (
    AchievementRule(1, AchievementType.FIRST_TASK_COMPLETED, "First Task!", "Completed your first task"),
    AchievementRule(10, AchievementType.TASKS_10_COMPLETED, "Task Master", "Completed 10 tasks"),
    AchievementRule(50, AchievementType.TASKS_50_COMPLETED, "Task Champion", "Completed 50 tasks"),
    AchievementRule(100, AchievementType.TASKS_100_COMPLETED, "Task Legend", "Completed 100 tasks"),
    AchievementRule(500, AchievementType.TASKS_500_COMPLETED, "Task God", "Completed 500 tasks"),
)

HOUR_ACHIEVEMENTS: tuple[AchievementRule, ...] = (
    AchievementRule(10, AchievementType.HOURS_10_TRACKED, "10 Hour Club", "Tracked 10 hours of work"),
    AchievementRule(50, AchievementType.HOURS_50_TRACKED, "50 Hour Milestone", "Tracked 50 hours of work"),
    AchievementRule(100, AchievementType.HOURS_100_TRACKED, "Century Worker", "Tracked 100 hours of work"),
    AchievementRule(500, AchievementType.HOURS_500_TRACKED, "Half Thousand", "Tracked 500 hours of work"),
    AchievementRule(1000, AchievementType.HOURS_1000_TRACKED, "Time Lord", "Tracked 1000 hours of work"),
)

STREAK_ACHIEVEMENTS: tuple[AchievementRule, ...] = (
    AchievementRule(7, AchievementType.STREAK_7_DAYS, "Week Warrior", "7 day work streak"),
    AchievementRule(30, AchievementType.STREAK_30_DAYS, "Monthly Master", "30 day work streak"),
    AchievementRule(90, AchievementType.STREAK_90_DAYS, "Quarterly Champion", "90 day work streak"),
    AchievementRule(365, AchievementType.STREAK_365_DAYS, "Year Round Hero", "365 day work streak"),
)

THRESHOLD_TABLES: dict[AchievementCategory, tuple[AchievementRule, ...]] = {
    AchievementCategory.TASKS: TASK_ACHIEVEMENTS,
    AchievementCategory.HOURS: HOUR_ACHIEVEMENTS,
    AchievementCategory.STREAK: STREAK_ACHIEVEMENTS,
}


def counter_reached(category: AchievementCategory, counters: LifetimeCounters, threshold: int) -> bool:
    if category == AchievementCategory.TASKS:
        return counters.total_tasks_completed >= threshold
    if category == AchievementCategory.HOURS:
        # compare in minutes, hours are never rounded up
        return counters.total_time_tracked_minutes >= threshold * 60
    return counters.current_streak >= threshold


def pending_achievements(
    counters: LifetimeCounters,
    earned: set[AchievementType],
    categories: Iterable[AchievementCategory] | None = None,
) -> list[AchievementRule]:
    """Crossed thresholds not in `earned`, table order."""
    cats = list(categories) if categories is not None else list(AchievementCategory)
    out: list[AchievementRule] = []
    for cat in cats:
        for rule in THRESHOLD_TABLES[cat]:
            if not counter_reached(cat, counters, rule.threshold):
                break
            if rule.type not in earned:
                out.append(rule)
    return out


class AchievementService:
    def __init__(
        self,
        db: Database,
        notifier: Notifier | None = None,
        *,
        clock: TimeProvider | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self.clock = clock or TimeProvider()
        self._locks = locks or KeyedLocks()

    async def evaluate(
        self,
        user_id: int,
        categories: Iterable[AchievementCategory] | None = None,
    ) -> list[AchievementRow]:
        """
        Awards everything the user's lifetime counters have crossed.
        Returns only achievements created by this call.
        """
        async with self._locks.hold(user_id):
            async with self.db.session() as session:
                counters = await get_lifetime_counters(session, user_id)
                if counters is None:
                    raise NotFoundError("user", user_id)
                earned = await earned_types(session, user_id)

            due = pending_achievements(counters, earned, categories)
            if not due:
                return []

            awarded: list[AchievementRow] = []
            for rule in due:
                # one session per award: a duplicate only rolls back its own row
                async with self.db.session() as session:
                    row = await insert_once(
                        session,
                        user_id=user_id,
                        company_id=counters.company_id,
                        type=rule.type,
                        title=rule.title,
                        description=rule.description,
                        earned_at=self.clock.now(),
                    )
                if row is None:
                    log.info("Achievement %s already earned by user=%s", rule.type.value, user_id)
                    continue

                log.info("Awarded %s to user=%s", rule.type.value, user_id)
                awarded.append(row)
                await self._notify(row)

            return awarded

    async def _notify(self, row: AchievementRow) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.achievement_earned(row)
        except Exception:
            log.exception("Achievement notification failed for user=%s type=%s", row.user_id, row.type.value)
