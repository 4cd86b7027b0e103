"""
Storage backends for the place response cache.

The in-process store is the default; the Redis store is used when
several instances must share one cache. Both implement CacheBackend,
so the pipeline never knows which one it talks to.

Entries are never swept in the background: validity is checked when an
entry is read, by comparing the current time with its insertion time.
"""
import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CacheBackend(ABC):
    """
    Key-value store with per-entry TTL.

    All operations are async; values must be JSON-compatible.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Args:
            key: The cache key

        Returns:
            The cached value or None if missing or expired
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """
        Set a value in the cache.

        Args:
            key: The cache key
            value: The value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a value from the cache.

        Args:
            key: The cache key

        Returns:
            True if key existed and was deleted, False otherwise
        """

    @abstractmethod
    async def clear(self) -> int:
        """
        Clear every value owned by this backend.

        Returns:
            Number of keys deleted
        """

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Counters reported by the detailed health check."""

    async def close(self) -> None:
        """Release backend resources."""


class MemoryCacheBackend(CacheBackend):
    """
    Dictionary store guarded by an asyncio.Lock.

    Safe under concurrent access from multiple requests through an
    asyncio.Lock. Suitable for single-process deployments; the state is
    lost on restart.
    """

    def __init__(self, clock: Optional[Clock] = None):
        """
        Initialize the memory cache backend.

        Args:
            clock: Time source in seconds, injectable for tests
        """
        self._clock = clock or time.time
        # Format: {key: (value, inserted_at, ttl)}
        self._store: Dict[str, Tuple[Any, float, int]] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0

    async def get(self, key: str) -> Optional[Any]:
        """Return the value if it is younger than its TTL."""
        async with self._lock:
            if key in self._store:
                value, inserted_at, ttl = self._store[key]

                if self._clock() - inserted_at < ttl:
                    self._hits += 1
                    logger.debug(f"Memory cache hit: {key}")
                    return value

                # Expired entries are dropped on read
                del self._store[key]

            self._misses += 1
            logger.debug(f"Memory cache miss: {key}")
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a value stamped with the current clock reading."""
        async with self._lock:
            self._store[key] = (value, self._clock(), ttl)
            self._sets += 1
            logger.debug(f"Memory cache set: {key}, TTL: {ttl}s")
            return True

    async def delete(self, key: str) -> bool:
        """Drop one entry."""
        async with self._lock:
            if key in self._store:
                del self._store[key]
                logger.debug(f"Memory cache delete: {key}")
                return True
            return False

    async def clear(self) -> int:
        """Drop every entry."""
        async with self._lock:
            count = len(self._store)
            self._store.clear()
            logger.debug(f"Memory cache clear: {count} keys deleted")
            return count

    def get_stats(self) -> Dict[str, Any]:
        """Hit, miss and size counters."""
        total = self._hits + self._misses
        return {
            "backend": "memory",
            "size": len(self._store),
            "hits": self._hits,
            "misses": self._misses,
            "sets": self._sets,
            "hit_rate": (self._hits / total * 100) if total else 0.0,
        }


class RedisCacheBackend(CacheBackend):
    """
    Redis cache backend for multi-process deployments.

    Values are stored as JSON strings with a Redis-side expiry. Redis
    failures are logged and reported as misses so a cache outage never
    fails a resolution.
    """

    def __init__(self, client: Any, prefix: str = "place_import:cache:"):
        """
        Wrap an existing client.

        Args:
            client: A ``redis.asyncio.Redis`` instance
            prefix: Key prefix owned by this backend
        """
        self._client = client
        self._prefix = prefix
        self._hits = 0
        self._misses = 0

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Read and decode a JSON value."""
        try:
            raw = await self._client.get(self._key(key))
        except Exception as e:
            logger.error(f"Redis error in get: {str(e)}")
            self._misses += 1
            return None
        if raw is None:
            self._misses += 1
            return None
        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding undecodable cache entry: {key}")
            self._misses += 1
            return None
        self._hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set a value in Redis with expiry."""
        try:
            await self._client.set(self._key(key), json.dumps(value), ex=ttl)
            return True
        except Exception as e:
            logger.error(f"Redis error in set: {str(e)}")
            return False

    async def delete(self, key: str) -> bool:
        """Drop one key."""
        try:
            return bool(await self._client.delete(self._key(key)))
        except Exception as e:
            logger.error(f"Redis error in delete: {str(e)}")
            return False

    async def clear(self) -> int:
        """Delete every key under this backend's prefix."""
        count = 0
        try:
            async for key in self._client.scan_iter(match=f"{self._prefix}*"):
                count += await self._client.delete(key)
        except Exception as e:
            logger.error(f"Redis error in clear: {str(e)}")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Hit and miss counters for this process."""
        total = self._hits + self._misses
        return {
            "backend": "redis",
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": (self._hits / total * 100) if total else 0.0,
        }

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()
