"""
Async engine and session factory for the notification store.
get_db is the request-scoped session dependency.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from campus_notify.core.config import settings


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """
    Server databases get a sized, pre-pinged pool, and asyncpg a per-statement
    timeout. SQLite (local runs and tests) gets a single shared connection when
    in memory.
    """
    options: dict[str, Any] = {"echo": echo}
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
    else:
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20, pool_recycle=3600)
        if parsed.get_driver_name() == "asyncpg":
            options["connect_args"] = {"command_timeout": settings.STORE_TIMEOUT_SECONDS}
    return create_async_engine(url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request. Fan-out and enrichment open SAVEPOINTs inside it;
    the outer transaction commits only when the whole request succeeds.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
