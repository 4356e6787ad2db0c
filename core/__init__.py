"""Core modules for the application."""

from core.clock import utcnow
from core.config import settings
from core.db import Base, engine, get_db
from core.redis import close_redis, get_redis

__all__ = ["settings", "Base", "get_db", "engine", "get_redis", "close_redis", "utcnow"]
