"""
End-to-end tests for the place import pipeline with a fake Places client.
"""
import asyncio

import pytest

from place_import.core.cache_backends import MemoryCacheBackend
from place_import.core.cache_manager import PlaceCache
from place_import.core.exceptions import (
    InvalidInputError,
    PlaceNotFoundError,
    ProviderError,
    ProviderRequestError,
    RateLimitExceededError,
    UnconfiguredError,
)
from place_import.core.rate_limiter import MemoryRateLimitStore, RateLimiter
from place_import.services.place_import_service import DETAILS_ERROR_MESSAGES, PlaceImportService
from conftest import candidate, details_record, make_settings

USER = "user-1"


def build_service(places_client, clock, **overrides):
    settings = make_settings(**overrides)
    return PlaceImportService(
        places_client,
        PlaceCache(MemoryCacheBackend(clock=clock), settings),
        RateLimiter(MemoryRateLimitStore(clock=clock), settings),
        settings,
    )


class TestResolution:
    """Test cases for each resolution path."""

    async def test_place_id_url_skips_search(self, service, places_client):
        places_client.details["ABC123"] = details_record("ABC123")

        place = await service.import_place("https://maps.google.com/?q=place_id:ABC123", USER)

        assert place.place_id == "ABC123"
        assert places_client.calls_to("search_text") == []
        assert places_client.calls_to("search_nearby") == []
        assert places_client.calls_to("get_details") == [("ABC123",)]

    async def test_place_id_prefix_query(self, service, places_client):
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        place = await service.import_place("place_id:ChIJcafe", USER)

        assert place.place_id == "ChIJcafe"
        assert places_client.calls_to("search_text") == []

    async def test_text_search(self, service, places_client):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe"), candidate("ChIJother")]
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        place = await service.import_place("  Cafe Central ", USER)

        assert place.place_id == "ChIJcafe"
        assert place.name == "Cafe Central"
        assert place.query == "Cafe Central"
        assert place.google_maps_url == "https://www.google.com/maps/place/?q=place_id:ChIJcafe"
        assert places_client.calls_to("get_details") == [("ChIJcafe",)]
        assert place.photos[0].url == "https://photos.test/places/ChIJcafe/photos/AbCdEf1?w=800"

    async def test_coordinate_url_escalates_radius(self, service, places_client):
        url = "https://www.google.com/maps/@48.2104,16.3655,17z"
        places_client.nearby_results[50.0] = [candidate("ChIJnear")]
        places_client.details["ChIJnear"] = details_record("ChIJnear")

        place = await service.import_place(url, USER)

        assert place.place_id == "ChIJnear"
        assert place.google_maps_url == url
        radii = [args[1] for args in places_client.calls_to("search_nearby")]
        assert radii == [10.0, 50.0]
        center = places_client.calls_to("search_nearby")[0][0]
        assert (center.lat, center.lng) == (48.2104, 16.3655)

    async def test_address_geocode_fallback(self, service, places_client):
        address = "123 Main St, Springfield, IL 62701"
        places_client.geocode_result = {"geometry": {"location": {"lat": 39.78, "lng": -89.65}}}
        places_client.nearby_results[10.0] = [candidate("ChIJmain")]
        places_client.details["ChIJmain"] = details_record("ChIJmain")

        place = await service.import_place(address, USER)

        assert place.place_id == "ChIJmain"
        assert places_client.calls_to("geocode") == [(address,)]

    async def test_place_name_is_not_geocoded(self, service, places_client):
        with pytest.raises(PlaceNotFoundError):
            await service.import_place("Cafe Central", USER)

        assert places_client.calls_to("geocode") == []

    async def test_custom_address_predicate(self, places_client, place_cache, rate_limiter, settings):
        service = PlaceImportService(
            places_client, place_cache, rate_limiter, settings, address_predicate=lambda text: True
        )

        with pytest.raises(PlaceNotFoundError):
            await service.import_place("Cafe Central", USER)

        assert places_client.calls_to("geocode") == [("Cafe Central",)]


class TestNotFound:
    """Test cases for exhausted resolution."""

    async def test_text_not_found(self, service, places_client):
        with pytest.raises(PlaceNotFoundError) as exc_info:
            await service.import_place("Nowhere Cafe", USER)

        error = exc_info.value
        assert error.code == "PLACE_NOT_FOUND"
        assert error.status_code == 404
        assert error.message == PlaceNotFoundError.TEXT_MESSAGE
        assert error.to_dict()["source"] == "text"
        assert places_client.calls_to("get_details") == []

    async def test_url_not_found(self, service, places_client):
        with pytest.raises(PlaceNotFoundError) as exc_info:
            await service.import_place("https://example.com/somewhere", USER)

        assert exc_info.value.message == PlaceNotFoundError.URL_MESSAGE
        assert exc_info.value.to_dict()["source"] == "url"

    async def test_coordinate_only_from_geocoding(self, places_client, clock):
        service = build_service(places_client, clock, ALLOW_COORDINATE_ONLY=True)
        places_client.geocode_result = {
            "formatted_address": "123 Main St, Springfield, IL 62701, USA",
            "geometry": {"location": {"lat": 39.78, "lng": -89.65}},
        }

        place = await service.import_place("123 Main St, Springfield, IL 62701", USER)

        assert place.is_coordinate_only is True
        assert place.place_id is None
        assert (place.lat, place.lng) == (39.78, -89.65)
        assert places_client.calls_to("get_details") == []

    async def test_coordinate_only_from_url(self, places_client, clock):
        service = build_service(places_client, clock, ALLOW_COORDINATE_ONLY=True)
        url = "https://www.google.com/maps/place/Hidden+Spot/@10.5,20.25,17z"

        place = await service.import_place(url, USER)

        assert place.is_coordinate_only is True
        assert place.name == "Hidden Spot"
        assert (place.lat, place.lng) == (10.5, 20.25)

    async def test_coordinate_only_disabled_by_default(self, service, places_client):
        with pytest.raises(PlaceNotFoundError):
            await service.import_place("https://www.google.com/maps/@10.5,20.25,17z", USER)


class TestValidationAndLimits:
    """Test cases for checks that run before any provider call."""

    @pytest.mark.parametrize("query", [None, "", "   "])
    async def test_empty_query(self, service, places_client, query):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.import_place(query, USER)

        assert exc_info.value.code == "INVALID_INPUT"
        assert places_client.calls == []

    async def test_too_short(self, service, places_client):
        with pytest.raises(InvalidInputError):
            await service.import_place("a", USER)

    async def test_too_long(self, service, places_client):
        with pytest.raises(InvalidInputError):
            await service.import_place("x" * 3000, USER)

    async def test_rate_limit_before_network(self, service, places_client):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        for _ in range(10):
            await service.import_place("Cafe Central", USER)
        calls_before = len(places_client.calls)

        with pytest.raises(RateLimitExceededError):
            await service.import_place("Cafe Central", USER)

        assert len(places_client.calls) == calls_before

    async def test_rate_limit_is_per_user(self, service, places_client):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        for _ in range(10):
            await service.import_place("Cafe Central", USER)

        place = await service.import_place("Cafe Central", "user-2")
        assert place.place_id == "ChIJcafe"

    async def test_unconfigured(self, places_client, clock):
        service = build_service(places_client, clock, GOOGLE_MAPS_API_KEY=None)

        with pytest.raises(UnconfiguredError) as exc_info:
            await service.import_place("Cafe Central", USER)

        assert exc_info.value.code == "UNCONFIGURED"
        assert places_client.calls == []


class TestDetails:
    """Test cases for the details step."""

    async def test_permission_denied(self, service, places_client):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = ProviderRequestError("denied", status_code=403)

        with pytest.raises(ProviderError) as exc_info:
            await service.import_place("Cafe Central", USER)

        assert exc_info.value.code == "PROVIDER_ERROR"
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == DETAILS_ERROR_MESSAGES[403]

    async def test_unknown_status_uses_generic_message(self, service, places_client):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = ProviderRequestError("boom", status_code=503)

        with pytest.raises(ProviderError) as exc_info:
            await service.import_place("Cafe Central", USER)

        assert exc_info.value.message == ProviderError.detail

    async def test_failure_is_not_cached(self, service, places_client, place_cache):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = ProviderRequestError("boom", status_code=500)

        with pytest.raises(ProviderError):
            await service.import_place("Cafe Central", USER)

        assert await place_cache.get("ChIJcafe") is None

    async def test_cancellation_leaves_cache_untouched(self, service, places_client, place_cache):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await service.import_place("Cafe Central", USER)

        assert await place_cache.get("ChIJcafe") is None


class TestCaching:
    """Test cases for the place response cache."""

    async def test_second_call_served_from_cache(self, service, places_client):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        first = await service.import_place("Cafe Central", USER)
        second = await service.import_place("Cafe Central", USER)

        assert second == first
        assert len(places_client.calls_to("get_details")) == 1

    async def test_cache_hit_restamps_query_and_url(self, service, places_client):
        url = "https://maps.google.com/?q=place_id:ChIJcafe"
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        await service.import_place("Cafe Central", USER)
        place = await service.import_place(url, USER)

        assert place.query == url
        assert place.google_maps_url == url
        assert len(places_client.calls_to("get_details")) == 1

    async def test_expired_entry_refetched(self, service, places_client, clock):
        places_client.text_results["Cafe Central"] = [candidate("ChIJcafe")]
        places_client.details["ChIJcafe"] = details_record("ChIJcafe")

        await service.import_place("Cafe Central", USER)
        clock.advance(3600)
        await service.import_place("Cafe Central", USER)

        assert len(places_client.calls_to("get_details")) == 2

    async def test_coordinate_only_not_cached(self, places_client, clock):
        service = build_service(places_client, clock, ALLOW_COORDINATE_ONLY=True)
        url = "https://www.google.com/maps/@10.5,20.25,17z"

        await service.import_place(url, USER)
        await service.import_place(url, USER)

        assert len(places_client.calls_to("search_nearby")) == 8
