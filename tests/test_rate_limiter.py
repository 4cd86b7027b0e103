import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from place_import.core.exceptions import RateLimitExceededError
from place_import.core.rate_limiter import (
    MemoryRateLimitStore,
    RateLimiter,
    RedisRateLimitStore,
    create_rate_limit_store,
)
from conftest import make_settings


class TestRateLimiter:
    """Test cases for the per-user fixed window."""

    def test_init_with_settings(self):
        mock_settings = MagicMock()
        mock_settings.RATE_LIMIT_ENABLED = True
        mock_settings.RATE_LIMIT_REQUESTS = 50
        mock_settings.RATE_LIMIT_TIMEFRAME = 1800

        limiter = RateLimiter(settings=mock_settings)

        assert limiter.enabled is True
        assert limiter.requests == 50
        assert limiter.timeframe == 1800

    def test_defaults(self, settings):
        limiter = RateLimiter(settings=settings)
        assert limiter.requests == 10
        assert limiter.timeframe == 60

    async def test_ten_allowed_eleventh_rejected(self, rate_limiter):
        results = [await rate_limiter.allow("user-1") for _ in range(11)]
        assert results == [True] * 10 + [False]

    async def test_users_are_independent(self, rate_limiter):
        for _ in range(10):
            await rate_limiter.allow("user-1")

        assert await rate_limiter.allow("user-1") is False
        assert await rate_limiter.allow("user-2") is True

    async def test_window_rolls_over(self, rate_limiter, clock):
        for _ in range(10):
            assert await rate_limiter.allow("user-1") is True
        assert await rate_limiter.allow("user-1") is False

        clock.advance(60.5)
        assert await rate_limiter.allow("user-1") is True

    async def test_window_still_closed_at_deadline(self, rate_limiter, clock):
        for _ in range(10):
            await rate_limiter.allow("user-1")

        clock.advance(60)
        assert await rate_limiter.allow("user-1") is False

    async def test_rejected_calls_do_not_extend_window(self, rate_limiter, clock):
        for _ in range(15):
            await rate_limiter.allow("user-1")

        clock.advance(61)
        results = [await rate_limiter.allow("user-1") for _ in range(11)]
        assert results == [True] * 10 + [False]

    async def test_concurrent_callers_share_budget(self, rate_limiter):
        results = await asyncio.gather(*(rate_limiter.allow("user-1") for _ in range(25)))
        assert results.count(True) == 10

    async def test_check_raises(self, rate_limiter):
        for _ in range(10):
            await rate_limiter.check("user-1")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await rate_limiter.check("user-1")
        assert exc_info.value.code == "RATE_LIMITED"
        assert exc_info.value.status_code == 429

    async def test_disabled(self, clock):
        limiter = RateLimiter(MemoryRateLimitStore(clock=clock), make_settings(RATE_LIMIT_ENABLED=False))
        results = [await limiter.allow("user-1") for _ in range(20)]
        assert all(results)


class TestRedisRateLimitStore:
    """Test cases for the Redis store with a mocked client."""

    async def test_first_hit_sets_expiry(self):
        client = MagicMock()
        client.incr = AsyncMock(return_value=1)
        client.expire = AsyncMock()
        store = RedisRateLimitStore(client)

        assert await store.hit("user:1", limit=10, window=60) is True
        client.expire.assert_awaited_once_with("place_import:rate:user:1", 60)

    async def test_over_limit(self):
        client = MagicMock()
        client.incr = AsyncMock(return_value=11)
        client.expire = AsyncMock()
        store = RedisRateLimitStore(client)

        assert await store.hit("user:1", limit=10, window=60) is False
        client.expire.assert_not_awaited()

    async def test_redis_error_admits(self):
        client = MagicMock()
        client.incr = AsyncMock(side_effect=ConnectionError("down"))
        store = RedisRateLimitStore(client)

        assert await store.hit("user:1", limit=10, window=60) is True


def test_create_store_without_redis(settings):
    assert isinstance(create_rate_limit_store(settings), MemoryRateLimitStore)
