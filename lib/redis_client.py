# =============================================================================
# lib/redis_client.py - Redis Client Wrapper
# =============================================================================
# Singleton synchronous Redis client shared by the rate limiter and the
# notification event publisher. Mirrors SupabaseClient so tests can swap the
# instance in one place.
#
# Usage:
#   from lib.redis_client import RedisClient
#   RedisClient.get_client().incr("some:key")
# =============================================================================

from __future__ import annotations

import logging

import redis

from app.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Lazily created, process-wide Redis connection."""

    _instance: redis.Redis | None = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        if cls._instance is None:
            cls._instance = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
            )
            logger.info("Redis client initialized")
        return cls._instance

    @classmethod
    def ping(cls) -> bool:
        """Return True if Redis answers PING."""
        return bool(cls.get_client().ping())
