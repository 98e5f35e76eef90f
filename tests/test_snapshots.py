"""Tests for the snapshot store: wholesale replace and write conflicts."""

from datetime import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from worklead.database.models import LeaderboardPeriod, LeaderboardSnapshot
from worklead.errors import PersistenceConflictError
from worklead.services import snapshots as snapshots_module
from worklead.services.ranking import rank_entries
from worklead.services.scope import Scope
from worklead.services.scoring import UserMetrics, score_entry
from worklead.services.snapshots import SnapshotStore
from worklead.utils.dates import EPOCH

from conftest import NOW

DAY_START = datetime(2024, 5, 15)
YESTERDAY = datetime(2024, 5, 14)


def _ranked(*tasks_by_user):
    """tasks_by_user: (user_id, tasks_completed) pairs."""
    return rank_entries(score_entry(UserMetrics(user_id=uid, tasks_completed=t)) for uid, t in tasks_by_user)


@pytest.fixture
async def team(seed):
    company = await seed.company()
    users = [await seed.user(company.id) for _ in range(3)]
    return company, [u.id for u in users]


async def _row_count(db, scope):
    async with db.session() as s:
        return await s.scalar(
            select(func.count(LeaderboardSnapshot.id)).where(LeaderboardSnapshot.scope_id == scope.id)
        )


# --- Replace ---


async def test_second_save_replaces_first(db, clock, team):
    company, (a, b, c) = team
    store = SnapshotStore(db, clock=clock)
    scope = Scope.company(company.id)

    await store.save(scope, LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 1), (b, 2), (c, 3)))
    n = await store.save(scope, LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 9), (b, 2), (c, 3)))

    assert n == 3
    assert await _row_count(db, scope) == 3

    rows = await store.load(scope, LeaderboardPeriod.DAILY, DAY_START)
    assert [(r.user_id, r.rank) for r in rows] == [(a, 1), (c, 2), (b, 3)]
    assert rows[0].tasks_completed == 9


async def test_replace_drops_users_not_in_new_set(db, clock, team):
    company, (a, b, c) = team
    store = SnapshotStore(db, clock=clock)
    scope = Scope.company(company.id)

    await store.save(scope, LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 1), (b, 2), (c, 3)))
    await store.save(scope, LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 1)))

    rows = await store.load(scope, LeaderboardPeriod.DAILY, DAY_START)
    assert [r.user_id for r in rows] == [a]


async def test_other_keys_untouched(db, clock, team):
    company, (a, b, _) = team
    store = SnapshotStore(db, clock=clock)
    scope = Scope.company(company.id)

    await store.save(scope, LeaderboardPeriod.DAILY, YESTERDAY, DAY_START, _ranked((a, 1), (b, 2)))
    await store.save(scope, LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 1)))

    assert len(await store.load(scope, LeaderboardPeriod.DAILY, YESTERDAY)) == 2


# --- Previous ranks ---


async def test_previous_ranks_empty_without_snapshot(db, clock, team):
    company, _ = team
    store = SnapshotStore(db, clock=clock)
    assert await store.previous_ranks(Scope.company(company.id), LeaderboardPeriod.DAILY) == {}


async def test_previous_ranks_reads_previous_window(db, clock, team):
    company, (a, b, c) = team
    store = SnapshotStore(db, clock=clock)
    scope = Scope.company(company.id)

    await store.save(scope, LeaderboardPeriod.DAILY, YESTERDAY, DAY_START, _ranked((a, 1), (b, 5), (c, 3)))
    # current day must not leak into "previous"
    await store.save(scope, LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 50)))

    assert await store.previous_ranks(scope, LeaderboardPeriod.DAILY) == {b: 1, c: 2, a: 3}


async def test_previous_ranks_all_time_matches_epoch(db, clock, team):
    company, (a, b, _) = team
    store = SnapshotStore(db, clock=clock)
    scope = Scope.company(company.id)

    await store.save(scope, LeaderboardPeriod.ALL_TIME, EPOCH, NOW, _ranked((a, 1), (b, 2)))
    assert await store.previous_ranks(scope, "ALL_TIME") == {b: 1, a: 2}


async def test_previous_ranks_per_scope(db, clock, seed, team):
    company, (a, _, _) = team
    project = await seed.project(company.id)
    store = SnapshotStore(db, clock=clock)

    await store.save(Scope.company(company.id), LeaderboardPeriod.DAILY, YESTERDAY, DAY_START, _ranked((a, 1)))
    assert await store.previous_ranks(Scope.project(project.id, company_id=company.id), "DAILY") == {}


# --- Conflicts ---


def _conflict():
    return IntegrityError("INSERT INTO leaderboard_snapshots", {}, Exception("UNIQUE constraint failed"))


async def test_conflict_is_retried_once(db, clock, team, monkeypatch):
    company, (a, _, _) = team
    real = snapshots_module.replace_snapshot
    calls = []

    async def flaky(session, **kw):
        calls.append(1)
        if len(calls) == 1:
            raise _conflict()
        return await real(session, **kw)

    monkeypatch.setattr(snapshots_module, "replace_snapshot", flaky)
    store = SnapshotStore(db, clock=clock)

    n = await store.save(Scope.company(company.id), LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 1)))
    assert n == 1
    assert len(calls) == 2


async def test_conflict_twice_raises(db, clock, team, monkeypatch):
    company, (a, _, _) = team

    async def always(session, **kw):
        raise _conflict()

    monkeypatch.setattr(snapshots_module, "replace_snapshot", always)
    store = SnapshotStore(db, clock=clock)

    with pytest.raises(PersistenceConflictError) as exc:
        await store.save(Scope.company(company.id), LeaderboardPeriod.DAILY, DAY_START, NOW, _ranked((a, 1)))
    assert exc.value.code == "PERSISTENCE_CONFLICT"
