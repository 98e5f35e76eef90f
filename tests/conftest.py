"""Shared test fixtures: file-backed aiosqlite database and seed helpers."""

from dataclasses import dataclass
from datetime import date, datetime
from itertools import count

import pytest

from worklead.database import Database
from worklead.database.models import (
    Company,
    Department,
    Project,
    ProjectMember,
    SubProject,
    SubProjectMember,
    Task,
    TaskStatus,
    TimeTracking,
    User,
)

# Wednesday
NOW = datetime(2024, 5, 15, 12, 0)


@dataclass(frozen=True)
class FixedClock:
    at: datetime

    def now(self) -> datetime:
        return self.at

    def today(self) -> date:
        return self.at.date()


class Seeder:
    """Inserts read-model rows, one committed session per row."""

    def __init__(self, db: Database):
        self.db = db
        self._emails = count(1)

    async def _add(self, obj):
        async with self.db.session() as s:
            s.add(obj)
            await s.commit()
        return obj

    async def company(self, name="Acme", is_active=True) -> Company:
        return await self._add(Company(name=name, is_active=is_active))

    async def department(self, company_id, name="Engineering") -> Department:
        return await self._add(Department(company_id=company_id, name=name))

    async def user(self, company_id, **fields) -> User:
        fields.setdefault("email", f"user{next(self._emails)}@example.com")
        return await self._add(User(company_id=company_id, **fields))

    async def project(self, company_id, name="Platform") -> Project:
        return await self._add(Project(company_id=company_id, name=name))

    async def project_member(self, project_id, user_id, points_earned=0) -> ProjectMember:
        return await self._add(ProjectMember(project_id=project_id, user_id=user_id, points_earned=points_earned))

    async def sub_project(self, project_id, title="Backend") -> SubProject:
        return await self._add(SubProject(project_id=project_id, title=title))

    async def sub_project_member(self, sub_project_id, user_id, points_earned=0) -> SubProjectMember:
        return await self._add(
            SubProjectMember(sub_project_id=sub_project_id, user_id=user_id, points_earned=points_earned)
        )

    async def task(self, sub_project_id, user_id, completed_at, status=TaskStatus.COMPLETED) -> Task:
        return await self._add(
            Task(
                sub_project_id=sub_project_id,
                assigned_to_id=user_id,
                status=status,
                completed_at=completed_at,
            )
        )

    async def tracking(self, user_id, sub_project_id, start_time, minutes, is_active=False) -> TimeTracking:
        return await self._add(
            TimeTracking(
                user_id=user_id,
                sub_project_id=sub_project_id,
                start_time=start_time,
                duration_minutes=minutes,
                is_active=is_active,
            )
        )


@pytest.fixture
async def db(tmp_path):
    """Fresh database file per test; sessions are opened per call, so no :memory:."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'worklead-test.db'}")
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def clock():
    return FixedClock(NOW)
