"""Tests for threshold achievements: idempotent awards and notification isolation."""

import asyncio
import json

import pytest

from worklead.database.models import AchievementType, NotificationType
from worklead.database.repo.achievement_repo import earned_types, insert_once
from worklead.database.repo.notification_repo import list_for_user
from worklead.database.repo.users import LifetimeCounters
from worklead.errors import NotFoundError
from worklead.services.achievements import (
    AchievementCategory,
    AchievementService,
    HOUR_ACHIEVEMENTS,
    STREAK_ACHIEVEMENTS,
    TASK_ACHIEVEMENTS,
    pending_achievements,
)
from worklead.services.notifications import InAppNotifier, NotificationService

from conftest import NOW


def _counters(tasks=0, minutes=0, streak=0):
    return LifetimeCounters(
        user_id=1,
        company_id=1,
        total_tasks_completed=tasks,
        total_time_tracked_minutes=minutes,
        current_streak=streak,
    )


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    async def achievement_earned(self, achievement):
        self.sent.append(achievement.type)


class BrokenNotifier:
    async def achievement_earned(self, achievement):
        raise RuntimeError("smtp down")


# --- Threshold tables ---


def test_tables_are_ascending():
    for table in (TASK_ACHIEVEMENTS, HOUR_ACHIEVEMENTS, STREAK_ACHIEVEMENTS):
        thresholds = [r.threshold for r in table]
        assert thresholds == sorted(thresholds)


def test_jump_crosses_several_thresholds():
    due = pending_achievements(_counters(tasks=15), earned={AchievementType.FIRST_TASK_COMPLETED})
    assert [r.type for r in due] == [AchievementType.TASKS_10_COMPLETED]

    due = pending_achievements(_counters(tasks=15), earned=set())
    assert [r.type for r in due] == [AchievementType.FIRST_TASK_COMPLETED, AchievementType.TASKS_10_COMPLETED]


def test_hours_compare_minutes():
    assert pending_achievements(_counters(minutes=599), set()) == []
    due = pending_achievements(_counters(minutes=600), set())
    assert [r.type for r in due] == [AchievementType.HOURS_10_TRACKED]


def test_category_filter():
    due = pending_achievements(_counters(tasks=3, streak=8), set(), categories=[AchievementCategory.STREAK])
    assert [r.type for r in due] == [AchievementType.STREAK_7_DAYS]


# --- Evaluate ---


async def test_five_to_fifteen_tasks(db, clock, seed):
    company = await seed.company()
    user = await seed.user(company.id, total_tasks_completed=15)
    notifier = RecordingNotifier()
    svc = AchievementService(db, notifier, clock=clock)

    awarded = await svc.evaluate(user.id)

    assert [a.type for a in awarded] == [AchievementType.FIRST_TASK_COMPLETED, AchievementType.TASKS_10_COMPLETED]
    assert awarded[1].title == "Task Master"
    assert awarded[1].description == "Completed 10 tasks"
    assert awarded[0].earned_at == NOW
    assert notifier.sent == [a.type for a in awarded]


async def test_second_evaluation_awards_nothing(db, clock, seed):
    company = await seed.company()
    user = await seed.user(company.id, total_tasks_completed=12, total_time_tracked_minutes=3000)
    svc = AchievementService(db, clock=clock)

    first = await svc.evaluate(user.id)
    second = await svc.evaluate(user.id)

    assert len(first) == 4
    assert second == []


async def test_concurrent_evaluations_award_once(db, clock, seed):
    company = await seed.company()
    user = await seed.user(company.id, total_tasks_completed=1)
    svc = AchievementService(db, clock=clock)

    results = await asyncio.gather(svc.evaluate(user.id), svc.evaluate(user.id), svc.evaluate(user.id))

    assert sum(len(r) for r in results) == 1
    async with db.session() as s:
        assert await earned_types(s, user.id) == {AchievementType.FIRST_TASK_COMPLETED}


async def test_unique_constraint_blocks_duplicates(db, seed):
    company = await seed.company()
    user = await seed.user(company.id)
    fields = dict(
        user_id=user.id,
        company_id=company.id,
        type=AchievementType.STREAK_7_DAYS,
        title="Week Warrior",
        description="7 day work streak",
        earned_at=NOW,
    )

    async with db.session() as s:
        assert await insert_once(s, **fields) is not None
    async with db.session() as s:
        assert await insert_once(s, **fields) is None


async def test_unknown_user(db, clock):
    svc = AchievementService(db, clock=clock)
    with pytest.raises(NotFoundError):
        await svc.evaluate(12345)


async def test_notification_failure_keeps_award(db, clock, seed, caplog):
    company = await seed.company()
    user = await seed.user(company.id, total_tasks_completed=1)
    svc = AchievementService(db, BrokenNotifier(), clock=clock)

    awarded = await svc.evaluate(user.id)

    assert [a.type for a in awarded] == [AchievementType.FIRST_TASK_COMPLETED]
    async with db.session() as s:
        assert await earned_types(s, user.id) == {AchievementType.FIRST_TASK_COMPLETED}
    assert "notification failed" in caplog.text


async def test_in_app_notification_row(db, clock, seed):
    company = await seed.company()
    user = await seed.user(company.id, total_time_tracked_minutes=600)
    svc = AchievementService(db, NotificationService([InAppNotifier(db)]), clock=clock)

    await svc.evaluate(user.id)

    async with db.session() as s:
        rows = await list_for_user(s, user.id)
    assert len(rows) == 1
    n = rows[0]
    assert n.type == NotificationType.ACHIEVEMENT_EARNED
    assert n.title == "🏆 Achievement Unlocked!"
    assert n.message == 'You earned "10 Hour Club": Tracked 10 hours of work'
    assert json.loads(n.payload_json) == {"achievement_type": "HOURS_10_TRACKED", "company_id": company.id}
