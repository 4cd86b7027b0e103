"""
Place import pipeline.

PlaceImportService turns one user-supplied query into one NormalizedPlace:

    validate -> rate limit -> classify -> identifier from URL
        -> text search (-> nearby search around the URL's coordinates)
        -> geocoding (address-shaped text only) -> nearby search
    -> cache check -> details fetch -> normalize -> cache put

Each call awaits its provider requests strictly in order and stops at the
first success. The rate limiter and the cache are the only state shared
between calls.
"""
import logging
from typing import Any, Dict, Optional

from place_import.core.cache_manager import PlaceCache
from place_import.core.config import get_settings, Settings
from place_import.core.exceptions import (
    InvalidInputError,
    PlaceNotFoundError,
    ProviderError,
    ProviderRequestError,
    UnconfiguredError,
)
from place_import.core.logging_config import truncate_for_log
from place_import.core.rate_limiter import RateLimiter
from place_import.schemas.places import LatLng, NormalizedPlace, ResolutionQuery
from place_import.services.address_heuristic import AddressPredicate, looks_like_address
from place_import.services.google_places_client import GooglePlacesClient
from place_import.services.identifier_extractor import extract_identifier, extract_place_id_prefix
from place_import.services.input_classifier import classify
from place_import.services.normalizer import maps_url_for_place, normalize, normalize_coordinate_only
from place_import.services.place_resolvers import (
    CoordinateResolver,
    GeocodingResolver,
    TextResolver,
    place_name_from_url,
)

logger = logging.getLogger(__name__)

DETAILS_ERROR_MESSAGES = {
    400: "The place identifier is not in a valid format. Try pasting the Google Maps link again.",
    403: "The Google Maps API key does not have permission to use the Places API.",
    404: "Google no longer has details for this place. Try searching for it by name.",
}


class PlaceImportService:
    """
    Resolve a query to a place and return its normalized details.
    """

    def __init__(
        self,
        client: GooglePlacesClient,
        cache: PlaceCache,
        rate_limiter: RateLimiter,
        settings: Optional[Settings] = None,
        address_predicate: AddressPredicate = looks_like_address
    ):
        """
        Initialize the service.

        Args:
            client: Google Places client
            cache: Response cache keyed by place id
            rate_limiter: Per-user rate limiter
            settings: Optional settings instance
            address_predicate: Decides whether text is geocoded on failure
        """
        self.settings = settings or get_settings()
        self.client = client
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.address_predicate = address_predicate

        self.coordinate_resolver = CoordinateResolver(client, self.settings)
        self.text_resolver = TextResolver(client, self.coordinate_resolver, self.settings)
        self.geocoding_resolver = GeocodingResolver(client, self.coordinate_resolver)

    def _validate(self, query: Optional[str]) -> str:
        text = (query or "").strip()
        if not text:
            raise InvalidInputError()
        if len(text) < self.settings.MIN_QUERY_LENGTH:
            raise InvalidInputError(detail="The query is too short. Enter at least a place name.")
        if len(text) > self.settings.MAX_QUERY_LENGTH:
            raise InvalidInputError(detail="The query is too long. Paste a single Google Maps link or place name.")
        return text

    async def import_place(self, query: Optional[str], user_id: str) -> NormalizedPlace:
        """
        Run the full pipeline for one query.

        Args:
            query: Google Maps URL, place name or address
            user_id: The authenticated user, used for rate limiting

        Returns:
            NormalizedPlace: The resolved place

        Raises:
            InvalidInputError: Empty or oversized query
            RateLimitExceededError: The user's window is exhausted
            UnconfiguredError: No Google Maps API key
            PlaceNotFoundError: Every resolution strategy failed
            ProviderError: The details request failed
        """
        text = self._validate(query)
        await self.rate_limiter.check(user_id)

        if not self.settings.google_api_configured:
            logger.error("GOOGLE_MAPS_API_KEY is not configured")
            raise UnconfiguredError()

        logger.info("Importing place", extra={"user_id": user_id, "query": truncate_for_log(text)})

        resolution = classify(text)
        place_id = extract_place_id_prefix(text)
        fallback_location: Optional[LatLng] = resolution.hint
        geocode_result: Optional[Dict[str, Any]] = None

        if place_id is None and resolution.is_url:
            place_id = extract_identifier(text)
            if place_id:
                logger.info("Place id extracted from URL", extra={"place_id": place_id})

        if place_id is None:
            place_id = await self.text_resolver.resolve_from_text(
                resolution.raw, hint=resolution.hint, is_url=resolution.is_url
            )

        if place_id is None and self._should_geocode(resolution):
            logger.info("Query looks like an address, trying geocoding")
            outcome = await self.geocoding_resolver.geocode_and_resolve(resolution.raw)
            place_id = outcome.place_id
            fallback_location = fallback_location or outcome.location
            geocode_result = outcome.geocode_result

        if place_id is None:
            return self._unresolved(resolution, fallback_location, geocode_result)

        cached = await self.cache.get(place_id)
        if cached is not None:
            logger.info("Serving place from cache", extra={"place_id": place_id})
            return cached.model_copy(update={
                "query": text,
                "google_maps_url": text if resolution.is_url else maps_url_for_place(place_id),
            })

        raw = await self.fetch_details(place_id)
        place = normalize(
            raw,
            text,
            resolution.is_url,
            self.client.photo_url,
            max_photos=self.settings.MAX_PHOTOS,
        )
        await self.cache.put(place_id, place)

        logger.info("Imported place", extra={"place_id": place_id, "user_id": user_id})
        return place

    def _should_geocode(self, resolution: ResolutionQuery) -> bool:
        return (
            not resolution.is_url
            and resolution.hint is None
            and self.address_predicate(resolution.raw)
        )

    def _unresolved(
        self,
        resolution: ResolutionQuery,
        location: Optional[LatLng],
        geocode_result: Optional[Dict[str, Any]]
    ) -> NormalizedPlace:
        """Return a coordinate-only place when allowed, otherwise raise."""
        if self.settings.ALLOW_COORDINATE_ONLY and location is not None:
            logger.info(
                "No place found, returning coordinate-only location",
                extra={"lat": location.lat, "lng": location.lng}
            )
            place = normalize_coordinate_only(location.lat, location.lng, resolution.raw, geocode_result)
            if geocode_result is None and resolution.is_url:
                place = place.model_copy(update={"name": place_name_from_url(resolution.raw)})
            return place

        logger.warning(
            "Could not resolve place",
            extra={"query": truncate_for_log(resolution.raw), "is_url": resolution.is_url}
        )
        raise PlaceNotFoundError.for_query(resolution.is_url)

    async def fetch_details(self, place_id: str) -> Dict[str, Any]:
        """
        Fetch the raw details record for a resolved identifier.

        Raises:
            ProviderError: On any failure, with a status-specific message
        """
        try:
            return await self.client.get_details(place_id)
        except ProviderRequestError as e:
            logger.error(
                f"Place details failed: {e}",
                extra={"place_id": place_id, "status_code": e.status_code, "provider_body": str(e.body)[:500]}
            )
            detail = DETAILS_ERROR_MESSAGES.get(e.status_code)
            raise ProviderError(detail=detail) from e
