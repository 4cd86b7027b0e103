"""
Shared pytest fixtures and configuration for all tests.
"""

import os
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"

# Keep developer machine settings out of the tests
for key in ["GOOGLE_MAPS_API_KEY", "REDIS_URL", "CORS_ORIGINS", "NEARBY_SEARCH_RADII"]:
    os.environ.pop(key, None)

from place_import.core.cache_backends import MemoryCacheBackend
from place_import.core.cache_manager import PlaceCache
from place_import.core.config import Settings
from place_import.core.exceptions import ProviderRequestError
from place_import.core.rate_limiter import MemoryRateLimitStore, RateLimiter
from place_import.schemas.places import CandidateMatch, LatLng
from place_import.services.place_import_service import PlaceImportService


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (full application stack, no network)"
    )


# ============================================================================
# Settings Fixtures
# ============================================================================

def make_settings(**overrides) -> Settings:
    """Build real Settings that ignore the environment file."""
    values = {
        "GOOGLE_MAPS_API_KEY": "test-key",
        "REDIS_URL": None,
        "ENABLE_AUTH": False,
        "DEV_USER_ID": "test-user",
        "LOG_FORMAT": "text",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    """Provide settings with a configured API key and auth disabled."""
    return make_settings()


@pytest.fixture
def mock_settings():
    """Provide mock settings for components that only read a few fields."""
    settings = MagicMock(spec=Settings)
    settings.ENVIRONMENT = "test"
    settings.DEBUG = True
    settings.ENABLE_CACHE = True
    settings.CACHE_TTL = 3600
    settings.REDIS_URL = None
    settings.RATE_LIMIT_ENABLED = True
    settings.RATE_LIMIT_REQUESTS = 10
    settings.RATE_LIMIT_TIMEFRAME = 60
    settings.HTTP_CONNECTION_POOL_SIZE = 10
    settings.HTTP_MAX_KEEPALIVE_CONNECTIONS = 5
    settings.HTTP_CONNECTION_TIMEOUT = 10.0
    settings.HTTP_READ_TIMEOUT = 15.0
    return settings


# ============================================================================
# Deterministic Clock
# ============================================================================

class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Fake Google Places Client
# ============================================================================

def candidate(place_id: str, name: str = "Somewhere", lat: float = 48.21, lng: float = 16.36) -> CandidateMatch:
    """Build a search candidate."""
    return CandidateMatch(
        place_id=place_id,
        name=name,
        formatted_address=f"{name}, Vienna, Austria",
        location=LatLng(lat=lat, lng=lng),
    )


def details_record(place_id: str = "ChIJcafe", **overrides) -> Dict[str, Any]:
    """Build a v1 details record."""
    record = {
        "id": place_id,
        "displayName": {"text": "Cafe Central", "languageCode": "de"},
        "formattedAddress": "Herrengasse 14, 1010 Wien, Austria",
        "websiteUri": "https://cafecentral.wien",
        "nationalPhoneNumber": "01 5333763",
        "rating": 4.3,
        "userRatingCount": 30512,
        "types": ["cafe", "coffee_shop", "restaurant", "food"],
        "location": {"latitude": 48.2104, "longitude": 16.3655},
        "priceLevel": "PRICE_LEVEL_MODERATE",
        "regularOpeningHours": {
            "weekdayDescriptions": ["Monday: 8:00 AM - 9:00 PM"],
            "periods": [{"open": {"day": 1, "hour": 8, "minute": 0}}],
        },
        "addressComponents": [
            {"longText": "Innere Stadt", "shortText": "Innere Stadt", "types": ["sublocality_level_1", "sublocality"]},
            {"longText": "Wien", "shortText": "Wien", "types": ["locality", "political"]},
            {"longText": "Wien", "shortText": "Wien", "types": ["administrative_area_level_1"]},
            {"longText": "Austria", "shortText": "AT", "types": ["country", "political"]},
        ],
        "photos": [
            {"name": f"places/{place_id}/photos/AbCdEf1"},
            {"name": f"places/{place_id}/photos/AbCdEf2"},
        ],
    }
    record.update(overrides)
    return record


class FakePlacesClient:
    """
    In-memory stand-in for GooglePlacesClient.

    Responses are configured per call type; a response that is an
    exception instance is raised instead of returned. Every call is
    recorded in ``calls`` as ``(method, args)``.
    """

    def __init__(self):
        self.text_results: Dict[str, Any] = {}
        self.default_text_result: Any = []
        self.nearby_results: Dict[float, Any] = {}
        self.geocode_result: Any = None
        self.reverse_geocode_result: Any = None
        self.details: Dict[str, Any] = {}
        self.calls: List[tuple] = []

    def calls_to(self, method: str) -> List[tuple]:
        return [args for name, args in self.calls if name == method]

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, BaseException):
            raise value
        return value

    async def search_text(self, text_query: str, bias: Optional[LatLng] = None):
        self.calls.append(("search_text", (text_query, bias)))
        return self._answer(self.text_results.get(text_query, self.default_text_result))

    async def search_nearby(self, center: LatLng, radius: float):
        self.calls.append(("search_nearby", (center, radius)))
        return self._answer(self.nearby_results.get(radius, []))

    async def geocode(self, address: str):
        self.calls.append(("geocode", (address,)))
        return self._answer(self.geocode_result)

    async def reverse_geocode(self, point: LatLng):
        self.calls.append(("reverse_geocode", (point,)))
        return self._answer(self.reverse_geocode_result)

    async def get_details(self, place_id: str):
        self.calls.append(("get_details", (place_id,)))
        if place_id not in self.details:
            raise ProviderRequestError("Place details failed", status_code=404)
        return self._answer(self.details[place_id])

    def photo_url(self, reference: str, max_width: Optional[int] = None) -> str:
        return f"https://photos.test/{reference}?w={max_width or 800}"


@pytest.fixture
def places_client() -> FakePlacesClient:
    return FakePlacesClient()


# ============================================================================
# Pipeline Fixtures
# ============================================================================

@pytest.fixture
def place_cache(settings, clock) -> PlaceCache:
    return PlaceCache(MemoryCacheBackend(clock=clock), settings)


@pytest.fixture
def rate_limiter(settings, clock) -> RateLimiter:
    return RateLimiter(MemoryRateLimitStore(clock=clock), settings)


@pytest.fixture
def service(places_client, place_cache, rate_limiter, settings) -> PlaceImportService:
    return PlaceImportService(places_client, place_cache, rate_limiter, settings)
