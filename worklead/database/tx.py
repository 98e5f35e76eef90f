# worklead/database/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def transactional(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Unit of work on top of SQLAlchemy 2.x autobegin.

    Joins an already running transaction through a SAVEPOINT, otherwise
    opens (and commits on exit) a fresh one. Any exception rolls the
    block back and propagates.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield session
    else:
        async with session.begin():
            yield session
