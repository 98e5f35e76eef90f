# worklead/database/models/leaderboard.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from worklead.database.base import Base


class LeaderboardPeriod(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    ALL_TIME = "ALL_TIME"


class ScopeType(str, enum.Enum):
    COMPANY = "company"
    PROJECT = "project"
    SUB_PROJECT = "sub_project"


class LeaderboardSnapshot(Base):
    """
    Persisted ranking of one scope for one period.
    Rows of one (scope, period_type, period_start) are replaced as a whole.
    """
    __tablename__ = "leaderboard_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "scope_type",
            "scope_id",
            "period_type",
            "period_start",
            "user_id",
            name="uq_leaderboard_snapshots_key_user",
        ),
        Index("ix_leaderboard_snapshots_key", "scope_type", "scope_id", "period_type", "period_start"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    scope_type: Mapped[ScopeType] = mapped_column(Enum(ScopeType, native_enum=False))
    scope_id: Mapped[int] = mapped_column(Integer)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), index=True)

    period_type: Mapped[LeaderboardPeriod] = mapped_column(Enum(LeaderboardPeriod, native_enum=False))
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=False))

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    rank: Mapped[int] = mapped_column(Integer, index=True)

    tasks_completed: Mapped[int] = mapped_column(Integer, default=0)
    total_minutes: Mapped[int] = mapped_column(Integer, default=0)
    points_earned: Mapped[int] = mapped_column(Integer, default=0)
    sub_projects_contributed: Mapped[int] = mapped_column(Integer, default=0)
    projects_contributed: Mapped[int] = mapped_column(Integer, default=0)
    performance_score: Mapped[float] = mapped_column(Float, default=0.0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
