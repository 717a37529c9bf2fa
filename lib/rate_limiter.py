# =============================================================================
# lib/rate_limiter.py - Fixed Window Rate Limiter
# =============================================================================
# Counts hits per key in Redis using INCR + EXPIRE. The first hit in a window
# sets the expiry, so the window starts with the first attempt.
#
# Usage:
#   limiter = RateLimiter(prefix="login")
#   result = limiter.hit("ada@example.com:10.0.0.1", limit=5, window_seconds=300)
#   if not result.allowed:
#       ...
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

from lib.redis_client import RedisClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single hit."""
    allowed: bool
    count: int
    limit: int
    retry_after: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


class RateLimiter:
    """
    Fixed window counter keyed by an arbitrary string.

    If Redis is unreachable the limiter fails open and logs a warning, so an
    outage degrades protection rather than availability.
    """

    def __init__(self, prefix: str):
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"agora:ratelimit:{self.prefix}:{key}"

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Record one attempt and report whether it is within the limit."""
        redis_key = self._key(key)
        try:
            client = RedisClient.get_client()
            count = int(client.incr(redis_key))
            if count == 1:
                client.expire(redis_key, window_seconds)
            ttl = int(client.ttl(redis_key))
        except Exception as e:
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return RateLimitResult(allowed=True, count=0, limit=limit, retry_after=0)

        if ttl < 0:
            # Key lost its expiry (e.g. crash between INCR and EXPIRE)
            client.expire(redis_key, window_seconds)
            ttl = window_seconds

        allowed = count <= limit
        if not allowed:
            logger.warning(f"Rate limit exceeded for {self.prefix}:{key} ({count}/{limit})")
        return RateLimitResult(
            allowed=allowed,
            count=count,
            limit=limit,
            retry_after=0 if allowed else ttl,
        )

    def reset(self, key: str) -> None:
        """Clear the counter, e.g. after a successful login."""
        try:
            RedisClient.get_client().delete(self._key(key))
        except Exception as e:
            logger.warning(f"Failed to reset rate limit for {self.prefix}:{key}: {e}")
