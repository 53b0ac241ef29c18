"""
dispatch_console.db.session

Engine and session factory for the document store.

Responsibilities:
- Build the async engine, with SQLite tuned for many short concurrent writers.
- Build the session factory the repositories open one session per operation from.
- Create the schema directly for dev/test runs.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dispatch_console.db.models import Base
from dispatch_console.settings import Settings

# Seconds a writer waits on a locked SQLite database before failing.
SQLITE_BUSY_TIMEOUT = 30


def _sqlite_pragmas(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT * 1000}")
    finally:
        cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    if settings.database_url.startswith("sqlite"):
        engine = create_async_engine(
            settings.database_url,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
        )
        event.listen(engine.sync_engine, "connect", _sqlite_pragmas)
        return engine
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Documents are converted to dicts inside the session, so nothing is lazily
    # loaded after commit.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables. Deployments run `alembic upgrade head` instead."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
