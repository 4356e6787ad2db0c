"""
Pytest fixtures for moderation tests.

Provides an in-memory SQLite database, a controllable clock and seeded
admins, users and content.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers tables on Base.metadata)
from core.db import Base
from core.security import hash_password
from models import Admin, Content, User

ADMIN_PASSWORD = "s3cret-pass"


class FakeClock:
    """Mutable clock; call it for "now", advance it to simulate time passing."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeNotifier:
    """Records notifications instead of delivering them."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.notifications: list[tuple[str, str, str]] = []
        self.alerts: list[str] = []

    async def notify(self, user_id: str, event: str, message: str) -> bool:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.notifications.append((user_id, event, message))
        return True

    async def alert_moderators(self, message: str) -> bool:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.alerts.append(message)
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded(session_factory, clock):
    """Admin ``admin``, users ``u1``/``u2``/``author``, content ``c1`` (by author) and ``c2`` (anonymous)."""
    async with session_factory() as session:
        session.add_all(
            [
                Admin(username="admin", password_hash=hash_password(ADMIN_PASSWORD), role="admin"),
                Admin(username="retired", password_hash=hash_password(ADMIN_PASSWORD), is_active=False),
                User(id="u1", username="reporter1", created_at=clock()),
                User(id="u2", username="reporter2", created_at=clock()),
                User(id="author", username="poster", created_at=clock()),
                Content(id="c1", author_id="author", author_name="poster", title="Broken street light"),
                Content(id="c2", author_id=None, author_name="Someone", title="Anonymous rant"),
            ]
        )
        await session.commit()
    return session_factory
