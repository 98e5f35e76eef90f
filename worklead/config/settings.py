# worklead/config/settings.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from worklead.database.models.leaderboard import LeaderboardPeriod


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _to_float(value: str, key_name: str) -> float:
    try:
        out = float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}") from e
    if out <= 0:
        raise RuntimeError(f"{key_name} must be positive, got {value!r}")
    return out


def _parse_period_list(raw: str | None, key_name: str) -> tuple[LeaderboardPeriod, ...]:
    """
    Parses comma/space separated period names.
    Accepts:
      "WEEKLY"
      "daily, weekly,MONTHLY"
      "[DAILY WEEKLY]"  (brackets ignored)
    """
    if not raw:
        return ()

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return ()

    out: list[LeaderboardPeriod] = []
    for p in re.split(r"[,\s]+", cleaned):
        name = p.strip().strip("'\"").upper()
        if not name:
            continue
        try:
            period = LeaderboardPeriod(name)
        except ValueError as e:
            raise RuntimeError(f"Invalid period in {key_name}: {p!r}") from e
        if period not in out:
            out.append(period)
    return tuple(out)


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./worklead.db"
DEFAULT_READ_TIMEOUT_SECONDS = 5.0
DEFAULT_CRON_HOUR = 23
DEFAULT_CRON_MINUTE = 55

DEFAULT_SNAPSHOT_PERIODS = (
    LeaderboardPeriod.DAILY,
    LeaderboardPeriod.WEEKLY,
    LeaderboardPeriod.MONTHLY,
)


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL

    # --- time ---
    timezone: str = "UTC"

    # --- notifications ---
    telegram_bot_token: Optional[str] = None

    # --- leaderboard ---
    metrics_read_timeout_seconds: float = DEFAULT_READ_TIMEOUT_SECONDS

    # --- snapshot job ---
    snapshot_periods: tuple[LeaderboardPeriod, ...] = DEFAULT_SNAPSHOT_PERIODS
    snapshot_cron_hour: int = DEFAULT_CRON_HOUR
    snapshot_cron_minute: int = DEFAULT_CRON_MINUTE

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @classmethod
    def load(cls) -> "Settings":
        """
        Loads from process env (and .env if present).
        Every key has a default; malformed values fail fast.
        """
        load_dotenv()
        env = os.environ

        database_url = (env.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()
        timezone = (env.get("TIMEZONE") or "UTC").strip() or "UTC"

        token = (env.get("TELEGRAM_BOT_TOKEN") or "").strip() or None

        timeout_raw = (env.get("METRICS_READ_TIMEOUT_SECONDS") or "").strip()
        timeout = (
            _to_float(timeout_raw, "METRICS_READ_TIMEOUT_SECONDS")
            if timeout_raw
            else DEFAULT_READ_TIMEOUT_SECONDS
        )

        periods = _parse_period_list(env.get("SNAPSHOT_PERIODS"), "SNAPSHOT_PERIODS") or DEFAULT_SNAPSHOT_PERIODS

        hour_raw = (env.get("SNAPSHOT_CRON_HOUR") or "").strip()
        minute_raw = (env.get("SNAPSHOT_CRON_MINUTE") or "").strip()
        hour = _to_int(hour_raw, "SNAPSHOT_CRON_HOUR") if hour_raw else DEFAULT_CRON_HOUR
        minute = _to_int(minute_raw, "SNAPSHOT_CRON_MINUTE") if minute_raw else DEFAULT_CRON_MINUTE
        if not 0 <= hour <= 23:
            raise RuntimeError(f"SNAPSHOT_CRON_HOUR out of range: {hour}")
        if not 0 <= minute <= 59:
            raise RuntimeError(f"SNAPSHOT_CRON_MINUTE out of range: {minute}")

        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            database_url=database_url,
            timezone=timezone,
            telegram_bot_token=token,
            metrics_read_timeout_seconds=timeout,
            snapshot_periods=periods,
            snapshot_cron_hour=hour,
            snapshot_cron_minute=minute,
            environment=environment,
        )
