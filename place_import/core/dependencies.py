"""
Centralized dependency injection functions.

This module wires the pipeline together from settings and exposes the
pieces as FastAPI dependencies, so tests can swap any of them through
``app.dependency_overrides`` or ``set_service_dependencies``.
"""
from typing import Optional

from place_import.core.auth import AuthProvider, SupabaseAuthProvider
from place_import.core.cache_manager import PlaceCache, create_cache_backend
from place_import.core.config import get_settings, Settings
from place_import.core.http_client import HTTPClientManager, get_http_client_manager
from place_import.core.rate_limiter import RateLimiter, create_rate_limit_store
from place_import.services.google_places_client import GooglePlacesClient
from place_import.services.place_import_service import PlaceImportService


# Settings dependency
def get_app_settings() -> Settings:
    """
    Get application settings.

    Returns:
        Settings: Application settings
    """
    return get_settings()


class ServiceDependencies:
    """
    Container class for service dependencies.

    Components are built lazily on first use and shared for the life of
    the container, so the cache and the rate limiter keep their state
    across requests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[HTTPClientManager] = None,
        cache: Optional[PlaceCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        places_client: Optional[GooglePlacesClient] = None,
        auth_provider: Optional[AuthProvider] = None
    ):
        self._settings = settings
        self._http_client = http_client
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._places_client = places_client
        self._auth_provider = auth_provider
        self._service: Optional[PlaceImportService] = None

    @property
    def settings(self) -> Settings:
        """Get settings instance."""
        return self._settings or get_settings()

    @property
    def http_client(self) -> HTTPClientManager:
        """Get HTTP client manager instance."""
        return self._http_client or get_http_client_manager()

    @property
    def cache(self) -> PlaceCache:
        """Get the place cache."""
        if self._cache is None:
            self._cache = PlaceCache(create_cache_backend(self.settings), self.settings)
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        """Get the rate limiter."""
        if self._rate_limiter is None:
            self._rate_limiter = RateLimiter(create_rate_limit_store(self.settings), self.settings)
        return self._rate_limiter

    @property
    def places_client(self) -> GooglePlacesClient:
        """Get the Google Places client."""
        if self._places_client is None:
            self._places_client = GooglePlacesClient(self.settings, self.http_client)
        return self._places_client

    @property
    def auth_provider(self) -> AuthProvider:
        """Get the auth provider."""
        if self._auth_provider is None:
            self._auth_provider = SupabaseAuthProvider(self.settings, self.http_client)
        return self._auth_provider

    @property
    def place_import_service(self) -> PlaceImportService:
        """Get the pipeline."""
        if self._service is None:
            self._service = PlaceImportService(
                self.places_client,
                self.cache,
                self.rate_limiter,
                self.settings,
            )
        return self._service

    async def close(self) -> None:
        """Release store connections."""
        if self._cache is not None:
            await self._cache.close()
        if self._rate_limiter is not None:
            await self._rate_limiter.close()


_default_dependencies: Optional[ServiceDependencies] = None


def get_service_dependencies() -> ServiceDependencies:
    """
    Get the service dependencies container.

    Returns:
        ServiceDependencies: Container with service dependencies
    """
    global _default_dependencies
    if _default_dependencies is None:
        _default_dependencies = ServiceDependencies()
    return _default_dependencies


def set_service_dependencies(deps: Optional[ServiceDependencies]) -> None:
    """
    Set custom service dependencies (primarily for testing).

    Args:
        deps: Custom dependencies container
    """
    global _default_dependencies
    _default_dependencies = deps


def reset_service_dependencies() -> None:
    """Reset to default dependencies."""
    global _default_dependencies
    _default_dependencies = None


# FastAPI dependencies

def get_place_import_service() -> PlaceImportService:
    """Dependency provider for the pipeline."""
    return get_service_dependencies().place_import_service


def get_places_client() -> GooglePlacesClient:
    """Dependency provider for the Google Places client."""
    return get_service_dependencies().places_client


def get_auth_provider() -> AuthProvider:
    """Dependency provider for the auth provider."""
    return get_service_dependencies().auth_provider
