# worklead/services/streaks.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from worklead.database import Database
from worklead.database.repo.achievement_repo import AchievementRow
from worklead.database.repo.users import get_streak_state, save_streak_state
from worklead.errors import NotFoundError
from worklead.services.achievements import AchievementCategory, AchievementService
from worklead.services.locks import KeyedLocks
from worklead.utils.dt import TimeProvider

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StreakResult:
    user_id: int
    changed: bool
    current_streak: int
    longest_streak: int
    last_active_date: date | None
    new_achievements: list[AchievementRow] = field(default_factory=list)


def next_streak(
    last_active: date | None,
    current: int,
    longest: int,
    today: date,
) -> tuple[int, int] | None:
    """
    (current, longest) after activity on `today`, or None when nothing changes:
    same day, or a `today` that lies before the last recorded day.
    """
    if last_active is not None:
        gap = (today - last_active).days
        if gap <= 0:
            return None
        current = current + 1 if gap == 1 else 1
    else:
        current = 1

    return current, max(longest, current)


class StreakService:
    def __init__(
        self,
        db: Database,
        achievements: AchievementService,
        *,
        clock: TimeProvider | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.db = db
        self.achievements = achievements
        self.clock = clock or TimeProvider()
        self._locks = locks or KeyedLocks()

    async def touch(self, user_id: int, today: date | None = None) -> StreakResult:
        today = today or self.clock.today()

        async with self._locks.hold(user_id):
            async with self.db.session() as session:
                async with session.begin():
                    state = await get_streak_state(session, user_id)
                    if state is None:
                        raise NotFoundError("user", user_id)

                    step = next_streak(state.last_active_date, state.current_streak, state.longest_streak, today)
                    if step is None:
                        return StreakResult(
                            user_id=user_id,
                            changed=False,
                            current_streak=state.current_streak,
                            longest_streak=state.longest_streak,
                            last_active_date=state.last_active_date,
                        )

                    current, longest = step
                    await save_streak_state(
                        session,
                        user_id=user_id,
                        last_active_date=today,
                        current_streak=current,
                        longest_streak=longest,
                    )

        log.debug("Streak user=%s current=%s longest=%s", user_id, current, longest)

        # evaluate() takes the same per-user lock, so it runs after release
        awarded = await self.achievements.evaluate(user_id, categories=(AchievementCategory.STREAK,))
        return StreakResult(
            user_id=user_id,
            changed=True,
            current_streak=current,
            longest_streak=longest,
            last_active_date=today,
            new_achievements=awarded,
        )
