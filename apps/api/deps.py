"""FastAPI dependencies."""

from collections.abc import AsyncGenerator, Awaitable, Callable

import redis.asyncio as redis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from apps.workers.notifier import notifier
from core.clock import Clock, utcnow
from core.db import get_db as _get_db
from core.redis import acquire_rate_limit
from core.redis import get_redis as _get_redis
from moderation import AdminActions

RateLimiter = Callable[[str, int], Awaitable[bool]]


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in _get_db():
        yield session


async def get_redis_client() -> redis.Redis:
    """Get Redis client dependency."""
    return await _get_redis()


def get_clock() -> Clock:
    """Clock used for every expiry computation."""
    return utcnow


def get_rate_limiter() -> RateLimiter:
    """Redis-backed fixed-window limiter."""
    return acquire_rate_limit


async def get_admin_actions(db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)) -> AdminActions:
    """Moderation facade bound to the request's database session."""
    return AdminActions(db, clock=clock, notifier=notifier)
