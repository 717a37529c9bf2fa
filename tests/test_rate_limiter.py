# =============================================================================
# tests/test_rate_limiter.py - Fixed Window Rate Limiter Tests
# =============================================================================

from unittest.mock import patch

from lib.rate_limiter import RateLimiter


class TestRateLimiter:

    def test_allows_up_to_limit(self):
        limiter = RateLimiter(prefix="test")

        results = [limiter.hit("k", limit=3, window_seconds=60) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert results[2].remaining == 0
        assert results[3].retry_after > 0

    def test_keys_are_independent(self):
        limiter = RateLimiter(prefix="test")
        for _ in range(3):
            limiter.hit("a", limit=3, window_seconds=60)

        assert limiter.hit("b", limit=3, window_seconds=60).allowed

    def test_reset_clears_counter(self, fake_redis):
        limiter = RateLimiter(prefix="test")
        for _ in range(5):
            limiter.hit("k", limit=3, window_seconds=60)

        limiter.reset("k")

        assert limiter.hit("k", limit=3, window_seconds=60).count == 1
        assert "agora:ratelimit:test:k" in fake_redis.values

    def test_fails_open_when_redis_is_down(self):
        limiter = RateLimiter(prefix="test")

        with patch("lib.rate_limiter.RedisClient.get_client", side_effect=ConnectionError("down")):
            result = limiter.hit("k", limit=1, window_seconds=60)

        assert result.allowed
