# worklead/database/models/achievement.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from worklead.database.base import Base


class AchievementType(str, enum.Enum):
    FIRST_TASK_COMPLETED = "FIRST_TASK_COMPLETED"
    TASKS_10_COMPLETED = "TASKS_10_COMPLETED"
    TASKS_50_COMPLETED = "TASKS_50_COMPLETED"
    TASKS_100_COMPLETED = "TASKS_100_COMPLETED"
    TASKS_500_COMPLETED = "TASKS_500_COMPLETED"
    HOURS_10_TRACKED = "HOURS_10_TRACKED"
    HOURS_50_TRACKED = "HOURS_50_TRACKED"
    HOURS_100_TRACKED = "HOURS_100_TRACKED"
    HOURS_500_TRACKED = "HOURS_500_TRACKED"
    HOURS_1000_TRACKED = "HOURS_1000_TRACKED"
    STREAK_7_DAYS = "STREAK_7_DAYS"
    STREAK_30_DAYS = "STREAK_30_DAYS"
    STREAK_90_DAYS = "STREAK_90_DAYS"
    STREAK_365_DAYS = "STREAK_365_DAYS"


class Achievement(Base):
    """
    One-time award. Never revoked; at most one row per (user_id, type).
    """
    __tablename__ = "achievements"
    __table_args__ = (
        # ✅ double-award protection, also across processes
        UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),
        Index("ix_achievements_company_type", "company_id", "type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"))

    type: Mapped[AchievementType] = mapped_column(Enum(AchievementType, native_enum=False))
    title: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(String(300))

    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
