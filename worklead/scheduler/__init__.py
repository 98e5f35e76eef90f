# worklead/scheduler/__init__.py
from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from worklead.engine import Engine
from worklead.scheduler.jobs import build_scheduler


def setup_scheduler(engine: Engine) -> AsyncIOScheduler:
    scheduler = build_scheduler(engine)
    scheduler.start()
    return scheduler
