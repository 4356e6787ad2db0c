"""Health and readiness endpoints."""

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Response
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db, get_redis_client

router = APIRouter()
logger = logging.getLogger(__name__)


async def _database_ok(db: AsyncSession) -> str | None:
    """Return None when the database answers, else the error text."""
    try:
        await db.execute(text("SELECT 1"))
        return None
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return str(e)


async def _redis_ok(redis_client: redis.Redis) -> str | None:
    try:
        await redis_client.ping()
        return None
    except RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return str(e)


@router.get("/")
async def health_check() -> dict[str, str]:
    """Liveness: the process is up."""
    return {"status": "healthy"}


@router.get("/db")
async def health_check_db(response: Response, db: AsyncSession = Depends(get_db)) -> dict[str, str]:
    error = await _database_ok(db)
    if error:
        response.status_code = 503
        return {"status": "unhealthy", "database": "disconnected", "error": error}
    return {"status": "healthy", "database": "connected"}


@router.get("/redis")
async def health_check_redis(
    response: Response, redis_client: redis.Redis = Depends(get_redis_client)
) -> dict[str, str]:
    error = await _redis_ok(redis_client)
    if error:
        response.status_code = 503
        return {"status": "unhealthy", "redis": "disconnected", "error": error}
    return {"status": "healthy", "redis": "connected"}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client),
) -> dict[str, str]:
    """
    Readiness: reports and sanctions need the database; report submits need Redis.

    Returns 503 when either store is unreachable.
    """
    checks = {"database": await _database_ok(db), "redis": await _redis_ok(redis_client)}
    ready = not any(checks.values())
    if not ready:
        response.status_code = 503
    return {"status": "ready" if ready else "unavailable"} | {
        name: "connected" if error is None else "disconnected" for name, error in checks.items()
    }
