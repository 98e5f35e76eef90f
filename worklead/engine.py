# worklead/engine.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from aiogram import Bot

from worklead.config import Settings
from worklead.database import Database
from worklead.services.achievements import AchievementService
from worklead.services.activity import ActivityService
from worklead.services.leaderboard import LeaderboardService
from worklead.services.locks import KeyedLocks
from worklead.services.notifications import InAppNotifier, NotificationService, Notifier, TelegramNotifier
from worklead.services.snapshots import SnapshotStore
from worklead.services.streaks import StreakService
from worklead.utils.dt import TimeProvider


@dataclass(slots=True)
class Engine:
    """All services wired against one Database."""
    db: Database
    settings: Settings
    clock: TimeProvider
    notifications: NotificationService
    snapshots: SnapshotStore
    leaderboard: LeaderboardService
    achievements: AchievementService
    streaks: StreakService
    activity: ActivityService

    @classmethod
    def build(cls, db: Database, settings: Settings, bot: Optional[Bot] = None) -> "Engine":
        clock = TimeProvider(settings.timezone)

        channels: list[Notifier] = [InAppNotifier(db)]
        if bot is not None:
            channels.append(TelegramNotifier(bot, db))
        notifications = NotificationService(channels)

        snapshots = SnapshotStore(db, clock=clock)
        leaderboard = LeaderboardService(
            db,
            snapshots=snapshots,
            clock=clock,
            read_timeout=settings.metrics_read_timeout_seconds,
        )

        # achievements and streaks serialize on the same per-user locks
        user_locks = KeyedLocks()
        achievements = AchievementService(db, notifications, clock=clock, locks=user_locks)
        streaks = StreakService(db, achievements, clock=clock, locks=user_locks)

        return cls(
            db=db,
            settings=settings,
            clock=clock,
            notifications=notifications,
            snapshots=snapshots,
            leaderboard=leaderboard,
            achievements=achievements,
            streaks=streaks,
            activity=ActivityService(achievements, streaks),
        )
