import redis.asyncio as redis

from core.config import settings

_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    global _redis_client
    if _redis_client is None:
        _redis_client = await redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def acquire_rate_limit(key: str, window_seconds: int) -> bool:
    """
    Claim a fixed rate-limit window for ``key``.

    Returns:
        True if the caller may proceed, False if the window is already taken
    """
    client = await get_redis()
    return bool(await client.set(key, "1", nx=True, ex=window_seconds))
