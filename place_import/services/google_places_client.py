"""
Google Maps Platform client.

Thin async wrapper over the Places API (v1) and the Geocoding API. Each
method performs exactly one request through the shared pooled HTTP
client. Failures of any kind (transport error, timeout, non-200 status,
malformed body) are raised as ProviderRequestError; callers decide
whether a failure is fatal.

Endpoints:
- Text search: POST {PLACES_API_BASE_URL}/places:searchText
- Nearby search: POST {PLACES_API_BASE_URL}/places:searchNearby
- Details: GET {PLACES_API_BASE_URL}/places/{id}
- Geocoding: GET {GEOCODING_API_URL}?address=... / ?latlng=...
- Photo media: URL construction only, never fetched here
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from place_import.core.config import get_settings, Settings
from place_import.core.exceptions import ProviderRequestError
from place_import.core.http_client import HTTPClientManager, get_http_client_manager
from place_import.core.logging_config import truncate_for_log
from place_import.schemas.places import CandidateMatch, LatLng
from place_import.services.identifier_extractor import strip_resource_prefix

logger = logging.getLogger(__name__)

SEARCH_FIELD_MASK = "places.id,places.displayName,places.formattedAddress,places.location"
DETAILS_FIELD_MASK = (
    "id,displayName,formattedAddress,websiteUri,nationalPhoneNumber,rating,"
    "userRatingCount,regularOpeningHours,types,photos,location,addressComponents,priceLevel"
)

# Geocoding statuses that mean "no result" rather than "request failed"
GEOCODE_EMPTY_STATUSES = {"ZERO_RESULTS"}


def _display_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("text")
    if isinstance(value, str):
        return value
    return None


def _candidate_from_place(place: Dict[str, Any]) -> Optional[CandidateMatch]:
    place_id = place.get("id")
    if not place_id or not isinstance(place_id, str):
        return None

    location = None
    raw_location = place.get("location") or {}
    try:
        if "latitude" in raw_location and "longitude" in raw_location:
            location = LatLng(lat=raw_location["latitude"], lng=raw_location["longitude"])
    except (TypeError, ValueError):
        location = None

    return CandidateMatch(
        place_id=strip_resource_prefix(place_id),
        name=_display_name(place.get("displayName")),
        formatted_address=place.get("formattedAddress"),
        location=location,
    )


class GooglePlacesClient:
    """
    Client for the Google Places and Geocoding APIs.

    Search methods return candidates in provider order; callers use only
    the first one.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[HTTPClientManager] = None
    ):
        """
        Initialize the client.

        Args:
            settings: Optional settings instance
            http_client: Optional HTTP client manager (defaults to the shared one)
        """
        self.settings = settings or get_settings()
        self.http_client = http_client or get_http_client_manager()

    @property
    def api_key(self) -> str:
        return (self.settings.GOOGLE_MAPS_API_KEY or "").strip()

    def _places_headers(self, field_mask: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
        }

    async def _request(self, operation: str, url: str, **kwargs) -> Dict[str, Any]:
        """
        Perform one request and return its JSON body.

        Raises:
            ProviderRequestError: On any failure
        """
        result = await self.http_client.make_request(url, **kwargs)

        if not result.get("success"):
            status_code = result.get("status_code")
            body = result.get("content", result.get("error"))
            logger.warning(
                f"{operation} request failed",
                extra={"status_code": status_code, "provider_body": str(body)[:500]}
            )
            raise ProviderRequestError(f"{operation} failed", status_code=status_code, body=body)

        content = result.get("content")
        if not isinstance(content, dict):
            logger.warning(f"{operation} returned a non-JSON body")
            raise ProviderRequestError(f"{operation} returned a malformed body", status_code=200, body=content)

        return content

    def _candidates(self, operation: str, content: Dict[str, Any]) -> List[CandidateMatch]:
        places = content.get("places") or []
        if not isinstance(places, list):
            raise ProviderRequestError(f"{operation} returned a malformed body", status_code=200, body=content)
        candidates = [_candidate_from_place(place) for place in places if isinstance(place, dict)]
        return [candidate for candidate in candidates if candidate is not None]

    async def search_text(
        self,
        text_query: str,
        bias: Optional[LatLng] = None
    ) -> List[CandidateMatch]:
        """
        Run a text search.

        Args:
            text_query: Free-text query
            bias: Optional point to bias results toward

        Returns:
            List[CandidateMatch]: Candidates in provider order
        """
        body: Dict[str, Any] = {
            "textQuery": text_query,
            "maxResultCount": self.settings.SEARCH_MAX_RESULTS,
        }
        if bias is not None:
            body["locationBias"] = {
                "circle": {
                    "center": {"latitude": bias.lat, "longitude": bias.lng},
                    "radius": self.settings.TEXT_SEARCH_BIAS_RADIUS,
                }
            }

        logger.info(
            "Text search",
            extra={"query": truncate_for_log(text_query), "has_bias": bias is not None}
        )
        content = await self._request(
            "Text search",
            f"{self.settings.PLACES_API_BASE_URL}/places:searchText",
            method="POST",
            headers=self._places_headers(SEARCH_FIELD_MASK),
            json=body,
        )
        return self._candidates("Text search", content)

    async def search_nearby(self, center: LatLng, radius: float) -> List[CandidateMatch]:
        """
        Run a nearby search restricted to a circle.

        Args:
            center: Circle center
            radius: Circle radius in meters

        Returns:
            List[CandidateMatch]: Candidates in provider order
        """
        body = {
            "maxResultCount": self.settings.SEARCH_MAX_RESULTS,
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": center.lat, "longitude": center.lng},
                    "radius": radius,
                }
            },
        }

        logger.info("Nearby search", extra={"lat": center.lat, "lng": center.lng, "radius": radius})
        content = await self._request(
            "Nearby search",
            f"{self.settings.PLACES_API_BASE_URL}/places:searchNearby",
            method="POST",
            headers=self._places_headers(SEARCH_FIELD_MASK),
            json=body,
        )
        return self._candidates("Nearby search", content)

    async def _geocode(self, operation: str, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        content = await self._request(
            operation,
            self.settings.GEOCODING_API_URL,
            method="GET",
            params={**params, "key": self.api_key},
        )

        status = content.get("status")
        results = content.get("results") or []
        if status == "OK" and isinstance(results, list) and results:
            return results[0]
        if status in GEOCODE_EMPTY_STATUSES or (status == "OK" and not results):
            return None

        logger.warning(
            f"{operation} returned status {status}",
            extra={"error_message": content.get("error_message")}
        )
        raise ProviderRequestError(f"{operation} returned status {status}", status_code=200, body=content)

    async def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Geocode an address.

        Args:
            address: Free-text address

        Returns:
            Optional[Dict[str, Any]]: The first geocoding result, or None
        """
        logger.info("Geocoding address", extra={"query": truncate_for_log(address)})
        return await self._geocode("Geocoding", {"address": address})

    async def reverse_geocode(self, point: LatLng) -> Optional[Dict[str, Any]]:
        """
        Reverse-geocode a point.

        Returns:
            Optional[Dict[str, Any]]: The first geocoding result, or None
        """
        logger.info("Reverse geocoding", extra={"lat": point.lat, "lng": point.lng})
        return await self._geocode("Reverse geocoding", {"latlng": f"{point.lat},{point.lng}"})

    async def get_details(self, place_id: str) -> Dict[str, Any]:
        """
        Fetch the raw details record for a place.

        Args:
            place_id: Place identifier, with or without ``places/`` prefix

        Returns:
            Dict[str, Any]: The raw record, guaranteed to carry ``id``

        Raises:
            ProviderRequestError: On failure or when ``id`` is missing
        """
        place_id = strip_resource_prefix(place_id)
        content = await self._request(
            "Place details",
            f"{self.settings.PLACES_API_BASE_URL}/places/{quote(place_id, safe='')}",
            method="GET",
            headers=self._places_headers(DETAILS_FIELD_MASK),
        )
        if not content.get("id"):
            logger.error("Place details response has no id", extra={"place_id": place_id})
            raise ProviderRequestError("Place details response has no id", status_code=200, body=content)
        return content

    def photo_url(self, reference: str, max_width: Optional[int] = None) -> str:
        """
        Build a media URL for a photo reference.

        ``places/.../photos/...`` resource names use the v1 media endpoint;
        bare references use the legacy photo endpoint.

        Args:
            reference: Photo resource name or legacy reference
            max_width: Maximum width in pixels

        Returns:
            str: The media URL
        """
        max_width = max_width or self.settings.PHOTO_MAX_WIDTH
        if reference.startswith("places/"):
            query = urlencode({"maxWidthPx": max_width, "key": self.api_key})
            return f"{self.settings.PLACES_API_BASE_URL}/{reference}/media?{query}"

        query = urlencode({"maxwidth": max_width, "photo_reference": reference, "key": self.api_key})
        return f"{self.settings.LEGACY_PHOTO_API_URL}?{query}"
