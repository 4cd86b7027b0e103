"""
Service configuration.

Every tunable lives on ``Settings`` and is read from the environment (or
a ``.env`` file) by pydantic-settings. List values such as
``NEARBY_SEARCH_RADII`` are given as JSON in the environment, e.g.
``NEARBY_SEARCH_RADII='[10, 50, 100, 200]'``; comma-separated strings are
accepted when passed to the constructor.
"""
from typing import List, Optional, Union
from pydantic import RedisDsn, field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

from place_import.__version__ import __version__ as app_version


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """
    Settings for the resolution pipeline and its HTTP surface.

    Defaults are production values except the optional behaviours
    (coordinate-only results, reverse geocoding), which are off.
    """
    # Google Maps Platform
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    PLACES_API_BASE_URL: str = "https://places.googleapis.com/v1"
    GEOCODING_API_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    LEGACY_PHOTO_API_URL: str = "https://maps.googleapis.com/maps/api/place/photo"

    # Resolution tuning
    TEXT_SEARCH_BIAS_RADIUS: float = 100.0  # meters
    NEARBY_SEARCH_RADII: List[float] = [10.0, 50.0, 100.0, 200.0]  # meters
    SEARCH_MAX_RESULTS: int = 5
    MIN_QUERY_LENGTH: int = 2
    MAX_QUERY_LENGTH: int = 2048
    PHOTO_MAX_WIDTH: int = 800
    MAX_PHOTOS: int = 6
    ALLOW_COORDINATE_ONLY: bool = False
    REVERSE_GEOCODE_FALLBACK: bool = False

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 10
    RATE_LIMIT_TIMEFRAME: int = 60  # seconds

    # Caching
    ENABLE_CACHE: bool = True
    CACHE_TTL: int = 3600  # seconds
    REDIS_URL: Optional[RedisDsn] = None

    # Connection Pooling settings
    HTTP_CONNECTION_POOL_SIZE: int = 20
    HTTP_MAX_KEEPALIVE_CONNECTIONS: int = 10
    HTTP_CONNECTION_TIMEOUT: float = 10.0
    HTTP_READ_TIMEOUT: float = 15.0

    # Authentication
    ENABLE_AUTH: bool = True
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    DEV_USER_ID: str = "local-dev-user"

    # CORS settings
    CORS_ORIGINS: List[str] = ["*"]
    CORS_METHODS: List[str] = ["*"]
    CORS_HEADERS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    PROJECT_NAME: str = "Place Import"
    VERSION: str = app_version
    DESCRIPTION: str = "Resolve Google Maps links, place names and addresses to normalized places"

    @field_validator("NEARBY_SEARCH_RADII", mode="before")
    @classmethod
    def assemble_radii(cls, v: Union[str, List[float]]) -> List[float]:
        """Radii in meters, smallest first as they are tried."""
        if isinstance(v, str):
            return [float(radius) for radius in _split_csv(v)]
        return v

    @field_validator("CORS_ORIGINS", "CORS_METHODS", "CORS_HEADERS", mode="before")
    @classmethod
    def assemble_cors_lists(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @property
    def google_api_configured(self) -> bool:
        """Whether a Google Maps Platform key is available."""
        return bool(self.GOOGLE_MAPS_API_KEY and self.GOOGLE_MAPS_API_KEY.strip())

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, loaded on first call.

    Components accept an explicit ``Settings`` so tests can bypass this.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Drop the cached settings and load them again.

    Objects already holding the old instance keep it.
    """
    get_settings.cache_clear()
    return get_settings()
