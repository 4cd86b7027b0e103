"""
Response cache for normalized places.

Memoizes NormalizedPlace results by place identifier for a fixed window
so that repeated imports of the same place skip the details request.
The cache is best-effort: a miss is always acceptable, and resolution
steps (search, nearby, geocode) are never cached individually.
"""
from typing import Any, Dict, Optional
import logging

from place_import.core.config import get_settings, Settings
from place_import.core.cache_backends import CacheBackend, MemoryCacheBackend, RedisCacheBackend
from place_import.schemas.places import NormalizedPlace

# Configure logger
logger = logging.getLogger(__name__)


class PlaceCache:
    """
    Cache of NormalizedPlace values keyed by place identifier.

    Values are stored as plain JSON structures, so callers always get a
    fresh model instance and can never mutate a cached entry in place.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the place cache.

        Args:
            backend: Storage backend (defaults to in-memory)
            settings: Optional settings instance
        """
        self.settings = settings or get_settings()
        self.backend = backend or MemoryCacheBackend()
        self.enabled = self.settings.ENABLE_CACHE
        self.ttl = self.settings.CACHE_TTL

    async def get(self, place_id: str) -> Optional[NormalizedPlace]:
        """
        Look up a cached place.

        Args:
            place_id: The place identifier

        Returns:
            Optional[NormalizedPlace]: The cached place, or None on miss
        """
        if not self.enabled:
            return None

        data = await self.backend.get(place_id)
        if data is None:
            logger.debug(f"Place cache miss: {place_id}")
            return None

        logger.debug(f"Place cache hit: {place_id}")
        return NormalizedPlace.model_validate(data)

    async def put(self, place_id: str, place: NormalizedPlace) -> bool:
        """
        Store a normalized place.

        Args:
            place_id: The place identifier
            place: The normalized place

        Returns:
            bool: True if stored
        """
        if not self.enabled:
            return False

        return await self.backend.set(place_id, place.model_dump(mode="json"), self.ttl)

    async def clear(self) -> int:
        """Drop every cached place."""
        return await self.backend.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Backend counters plus the configured TTL."""
        return {**self.backend.get_stats(), "ttl_seconds": self.ttl}

    async def close(self) -> None:
        """Release backend resources."""
        await self.backend.close()


def create_cache_backend(settings: Optional[Settings] = None) -> CacheBackend:
    """
    Build the configured cache backend.

    Uses Redis when REDIS_URL is set, otherwise the in-memory store.

    Args:
        settings: Optional settings instance

    Returns:
        CacheBackend: The backend to use
    """
    settings = settings or get_settings()
    if settings.REDIS_URL:
        import redis.asyncio as redis

        logger.info("Using Redis place cache")
        return RedisCacheBackend(redis.from_url(str(settings.REDIS_URL)))

    logger.info("Using in-memory place cache")
    return MemoryCacheBackend()
