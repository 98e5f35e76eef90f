# worklead/utils/dt.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo


@dataclass(frozen=True, slots=True)
class TimeProvider:
    """
    Wall clock in the configured timezone.

    Timestamps are stored naive (local wall time of `timezone`), so `now()`
    drops tzinfo after converting.
    """
    timezone: str = "UTC"

    def now(self) -> datetime:
        tz = ZoneInfo(self.timezone)
        return datetime.now(tz=tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()
