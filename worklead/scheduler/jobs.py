from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from worklead.database.repo.metrics_repo import list_project_ids, list_sub_project_ids
from worklead.database.repo.users import list_active_company_ids
from worklead.engine import Engine
from worklead.services.scope import Scope

log = logging.getLogger(__name__)


# -------------------------------------------------
# Main job: scope snapshots
# -------------------------------------------------

async def company_scopes(engine: Engine, company_id: int) -> list[Scope]:
    """The company board, then every project and subproject board it owns."""
    async with engine.db.session() as session:
        project_ids = await list_project_ids(session, company_id)
        sub_project_ids = await list_sub_project_ids(session, company_id)

    return (
        [Scope.company(company_id)]
        + [Scope.project(pid, company_id=company_id) for pid in project_ids]
        + [Scope.sub_project(sid, company_id=company_id) for sid in sub_project_ids]
    )


async def snapshot_all_companies(engine: Engine) -> int:
    """
    Saves the company, project and subproject leaderboards of every active
    company for each configured period. Returns the number of snapshots written.

    NOTE:
    - department boards reuse the company snapshot, they get none of their own
    - one failing scope/period is logged and skipped
    - all snapshots of one run share the same `now`
    """
    async with engine.db.session() as session:
        company_ids = await list_active_company_ids(session)

    now = engine.clock.now()
    written = 0
    for company_id in company_ids:
        try:
            scopes = await company_scopes(engine, company_id)
        except Exception:
            log.exception("Snapshot failed company=%s: could not list scopes", company_id)
            continue

        for scope in scopes:
            for period in engine.settings.snapshot_periods:
                try:
                    n = await engine.leaderboard.save_snapshot(scope, period, now=now)
                except Exception:
                    log.exception("Snapshot failed company=%s scope=%s period=%s", company_id, scope, period.value)
                    continue
                written += 1
                log.debug("Snapshot scope=%s period=%s rows=%s", scope, period.value, n)

    log.info("Snapshot run done: companies=%s snapshots=%s", len(company_ids), written)
    return written


# -------------------------------------------------
# Scheduler setup
# -------------------------------------------------

def build_scheduler(engine: Engine) -> AsyncIOScheduler:
    """
    Creates and returns an AsyncIOScheduler with our jobs registered.
    """
    settings = engine.settings
    scheduler = AsyncIOScheduler(timezone=settings.timezone)

    # ✅ daily, shortly before midnight local time by default
    scheduler.add_job(
        snapshot_all_companies,
        trigger=CronTrigger(
            hour=settings.snapshot_cron_hour,
            minute=settings.snapshot_cron_minute,
            timezone=settings.timezone,
        ),
        kwargs={"engine": engine},
        id="snapshot_all_companies",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=300,
    )

    return scheduler
