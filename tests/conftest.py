"""
Test configuration and shared fixtures.
Each test gets its own in-memory SQLite database, so nothing leaks between tests.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from campus_notify.core.dependencies import get_notifier
from campus_notify.core.rate_limit import limiter
from campus_notify.core.security import create_access_token
from campus_notify.db.base import Base
from campus_notify.db.session import build_engine, build_session_factory, get_db
from campus_notify.main import app
from campus_notify.models.post import Post
from campus_notify.models.user import User
from campus_notify.services.notification_service import NotificationService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ORGANIZER_ID = "org-1"
OTHER_ORGANIZER_ID = "org-2"
POST_ID = "post-1"
POST_TITLE = "Weekly Meetup"


class RecordingNotifier:
    """Stands in for the WebSocket notifier and remembers every push."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    async def notify_user(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        self.events.append((user_id, event, payload))

    def for_user(self, user_id: str) -> list[tuple[str, dict[str, Any]]]:
        return [(e, p) for u, e, p in self.events if u == user_id]

    def named(self, event: str) -> list[tuple[str, dict[str, Any]]]:
        return [(u, p) for u, e, p in self.events if e == event]


def _enable_savepoints(engine: AsyncEngine) -> None:
    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN.
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    test_engine = build_engine(TEST_DATABASE_URL)
    _enable_savepoints(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """A session on the per-test database; rolled back afterwards."""
    async with build_session_factory(engine)() as session:
        try:
            yield session
            await session.rollback()
        finally:
            await session.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(notifier: RecordingNotifier) -> NotificationService:
    return NotificationService(notifier)


@pytest_asyncio.fixture
async def client(
    db: AsyncSession, notifier: RecordingNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with the test session and recording notifier injected."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Helper fixtures ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def seeded(db: AsyncSession) -> dict[str, Any]:
    """Users and posts as the account and post services would have written them."""
    users = [
        User(
            id=ORGANIZER_ID,
            username="roboticsclub",
            profile_image_url="/media/avatars/org1.png",
            role="organizer",
        ),
        User(
            id=OTHER_ORGANIZER_ID,
            username=None,
            first_name="Ada",
            last_name="Lovelace",
            profile_image_url="https://cdn.example.com/ada.png",
            role="organizer",
        ),
        User(id="alice", username="alice", profile_image_url="/media/avatars/alice.png"),
        User(id="bob", username="bob"),
        User(id="carol", username="carol"),
    ]
    posts = [
        Post(
            id=POST_ID,
            user_id=ORGANIZER_ID,
            title=POST_TITLE,
            image_url="/media/posts/p1.png",
        ),
        Post(id="post-2", user_id=OTHER_ORGANIZER_ID, title="Hackathon"),
    ]
    db.add_all(users + posts)
    await db.flush()
    return {"users": {u.id: u for u in users}, "posts": {p.id: p for p in posts}}


@pytest.fixture
def headers_for() -> Callable[[str], dict[str, str]]:
    """Build Authorization headers for any user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture
def auth_headers(headers_for: Callable[[str], dict[str, str]]) -> dict[str, str]:
    """Authorization headers for the default test user, alice."""
    return headers_for("alice")
