"""
Per-user rate limiting for place imports.

Each user gets a fixed window: the first request opens a window of
RATE_LIMIT_TIMEFRAME seconds, and at most RATE_LIMIT_REQUESTS requests
are admitted until it closes. The next request after the window closes
opens a new one with a count of 1.

Storage Backends:
-----------------
1. In-Memory (default): an asyncio.Lock guards the counter map, so
   concurrent requests for the same user never both take the last slot.
   State is not shared across processes.

2. Redis: when REDIS_URL is configured, counters live in Redis using
   INCR with EXPIRE, so every instance sees the same budget.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

from place_import.core.config import get_settings, Settings
from place_import.core.exceptions import RateLimitExceededError

# Configure logger
logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class RateLimitStore(ABC):
    """Counter storage for the fixed-window limiter."""

    @abstractmethod
    async def hit(self, key: str, limit: int, window: int) -> bool:
        """
        Record one request for ``key``.

        Args:
            key: The rate limit key
            limit: Maximum requests per window
            window: Window length in seconds

        Returns:
            bool: True if the request is admitted
        """

    async def reset(self) -> None:
        """Forget all counters."""

    async def close(self) -> None:
        """Release store resources."""


class MemoryRateLimitStore(RateLimitStore):
    """In-process counter map."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or time.time
        # Format: {key: (requests_count, reset_at)}
        self._store: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, limit: int, window: int) -> bool:
        now = self._clock()

        async with self._lock:
            entry = self._store.get(key)

            # Missing or closed window: start a new one
            if entry is None or now > entry[1]:
                self._store[key] = (1, now + window)
                return True

            count, reset_at = entry
            if count >= limit:
                return False

            self._store[key] = (count + 1, reset_at)
            return True

    async def reset(self) -> None:
        async with self._lock:
            self._store.clear()


class RedisRateLimitStore(RateLimitStore):
    """
    Redis-backed counters shared by every instance.

    Uses INCR followed by EXPIRE on the first hit of a window. Redis
    errors admit the request rather than failing the import.
    """

    def __init__(self, client: Any, prefix: str = "place_import:rate:"):
        self._client = client
        self._prefix = prefix

    async def hit(self, key: str, limit: int, window: int) -> bool:
        redis_key = f"{self._prefix}{key}"
        try:
            count = await self._client.incr(redis_key)
            if count == 1:
                await self._client.expire(redis_key, window)
        except Exception as e:
            logger.error(f"Redis rate limit error: {e}. Admitting request.")
            return True
        return count <= limit

    async def reset(self) -> None:
        async for key in self._client.scan_iter(match=f"{self._prefix}*"):
            await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


class RateLimiter:
    """
    Rate limiter for place imports, keyed by user id.
    """

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the rate limiter.

        Args:
            store: Counter storage (defaults to in-memory)
            settings: Optional settings instance
        """
        self.settings = settings or get_settings()
        self.store = store or MemoryRateLimitStore()
        self.requests = self.settings.RATE_LIMIT_REQUESTS
        self.timeframe = self.settings.RATE_LIMIT_TIMEFRAME
        self.enabled = self.settings.RATE_LIMIT_ENABLED

    async def allow(self, user_id: str) -> bool:
        """
        Count a request for ``user_id`` and report whether it is admitted.

        Args:
            user_id: The authenticated user

        Returns:
            bool: True if the request fits in the current window
        """
        if not self.enabled:
            return True
        return await self.store.hit(f"user:{user_id}", self.requests, self.timeframe)

    async def check(self, user_id: str) -> None:
        """
        Admit a request or raise.

        Raises:
            RateLimitExceededError: If the user's window is exhausted
        """
        if not await self.allow(user_id):
            logger.warning(
                "Rate limit exceeded",
                extra={"user_id": user_id, "limit": self.requests, "timeframe": self.timeframe}
            )
            raise RateLimitExceededError(limit=self.requests, timeframe=self.timeframe)

    async def close(self) -> None:
        await self.store.close()


def create_rate_limit_store(settings: Optional[Settings] = None) -> RateLimitStore:
    """
    Build the configured counter store.

    Uses Redis when REDIS_URL is set, otherwise the in-memory store.
    """
    settings = settings or get_settings()
    if settings.REDIS_URL:
        import redis.asyncio as redis

        logger.info("Using Redis rate limit store")
        return RedisRateLimitStore(redis.from_url(str(settings.REDIS_URL)))

    logger.debug("Using in-memory rate limit store")
    return MemoryRateLimitStore()
