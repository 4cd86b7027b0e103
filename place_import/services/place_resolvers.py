"""
Place resolution strategies.

Three resolvers turn a query into a place identifier when the query
does not carry one directly:

- TextResolver: text search over a small ordered list of query variations,
  falling back to the CoordinateResolver when a coordinate hint exists.
- CoordinateResolver: nearby search at progressively wider radii.
- GeocodingResolver: geocodes address-shaped text and hands the point to
  the CoordinateResolver.

Every attempt is awaited in order and stops at the first success. A
failed attempt (ProviderRequestError) is logged and treated as "no
result"; it never aborts the resolution.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlsplit

from place_import.core.config import get_settings, Settings
from place_import.core.exceptions import ProviderRequestError
from place_import.core.logging_config import truncate_for_log
from place_import.schemas.places import LatLng
from place_import.services.google_places_client import GooglePlacesClient

logger = logging.getLogger(__name__)

PLACE_NAME_SEGMENT = re.compile(r"/place/([^/@]+)")
URL_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
WWW_PREFIX = re.compile(r"^www\.", re.IGNORECASE)


def place_name_from_url(url: str) -> Optional[str]:
    """
    Decode the place name out of a ``/place/<name>/`` path segment.

    >>> place_name_from_url("https://www.google.com/maps/place/Cafe+Central/@48.21,16.36,17z")
    'Cafe Central'
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return None
    match = PLACE_NAME_SEGMENT.search(path)
    if not match:
        return None
    name = unquote(match.group(1).replace("+", " "))
    name = " ".join(name.split())
    return name or None


def build_query_variations(query: str, is_url: bool, min_length: int = 2) -> List[str]:
    """
    Build the ordered, de-duplicated list of text-search queries.

    Args:
        query: The raw query
        is_url: Whether the query is a URL
        min_length: Variations shorter than this are dropped

    Returns:
        List[str]: Variations in the order they are tried
    """
    trimmed = (query or "").strip()
    candidates = [trimmed]

    if is_url:
        candidates.append(WWW_PREFIX.sub("", URL_SCHEME.sub("", trimmed)))
        place_name = place_name_from_url(trimmed)
        if place_name:
            candidates.append(place_name)

    variations: List[str] = []
    for candidate in candidates:
        if len(candidate) >= min_length and candidate not in variations:
            variations.append(candidate)
    return variations


class CoordinateResolver:
    """Find the place nearest to a point with widening nearby searches."""

    def __init__(self, client: GooglePlacesClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    async def resolve_by_coordinates(self, lat: float, lng: float) -> Optional[str]:
        """
        Search nearby at each configured radius, smallest first.

        Args:
            lat: Latitude
            lng: Longitude

        Returns:
            Optional[str]: The first candidate of the first non-empty radius
        """
        center = LatLng(lat=lat, lng=lng)

        for radius in self.settings.NEARBY_SEARCH_RADII:
            try:
                candidates = await self.client.search_nearby(center, radius)
            except ProviderRequestError as e:
                logger.warning(f"Nearby search failed at radius {radius}m: {e}")
                continue

            if candidates:
                place_id = candidates[0].place_id
                logger.info(
                    "Found place via nearby search",
                    extra={"place_id": place_id, "radius": radius, "total_results": len(candidates)}
                )
                return place_id

        if self.settings.REVERSE_GEOCODE_FALLBACK:
            return await self._resolve_by_reverse_geocoding(center)

        logger.info("Nearby search found nothing", extra={"lat": lat, "lng": lng})
        return None

    async def _resolve_by_reverse_geocoding(self, center: LatLng) -> Optional[str]:
        """Reverse-geocode the point and text-search its address once."""
        try:
            result = await self.client.reverse_geocode(center)
            address = (result or {}).get("formatted_address")
            if not address:
                return None
            candidates = await self.client.search_text(address)
        except ProviderRequestError as e:
            logger.warning(f"Reverse geocoding fallback failed: {e}")
            return None

        if candidates:
            logger.info("Found place via reverse geocoding", extra={"place_id": candidates[0].place_id})
            return candidates[0].place_id
        return None


class TextResolver:
    """Resolve free text (or a URL without an identifier) by text search."""

    def __init__(
        self,
        client: GooglePlacesClient,
        coordinate_resolver: CoordinateResolver,
        settings: Optional[Settings] = None
    ):
        self.client = client
        self.coordinate_resolver = coordinate_resolver
        self.settings = settings or get_settings()

    async def resolve_from_text(
        self,
        query: str,
        hint: Optional[LatLng] = None,
        is_url: bool = False
    ) -> Optional[str]:
        """
        Try each query variation in order; fall back to the hint.

        Args:
            query: The raw query
            hint: Optional coordinates used as search bias and fallback
            is_url: Whether the query is a URL

        Returns:
            Optional[str]: The place identifier, or None
        """
        variations = build_query_variations(query, is_url, self.settings.MIN_QUERY_LENGTH)
        if not variations:
            return None

        for variation in variations:
            try:
                candidates = await self.client.search_text(variation, bias=hint)
            except ProviderRequestError as e:
                logger.warning(
                    f"Text search failed for variation: {e}",
                    extra={"query": truncate_for_log(variation)}
                )
                continue

            if candidates:
                place_id = candidates[0].place_id
                logger.info(
                    "Found place via text search",
                    extra={
                        "place_id": place_id,
                        "query": truncate_for_log(variation),
                        "total_results": len(candidates),
                    }
                )
                return place_id

        if hint is not None:
            logger.info("Text search exhausted, trying coordinates", extra={"lat": hint.lat, "lng": hint.lng})
            return await self.coordinate_resolver.resolve_by_coordinates(hint.lat, hint.lng)

        logger.info(
            "Text search found nothing",
            extra={"variations": [truncate_for_log(v, 50) for v in variations]}
        )
        return None


@dataclass
class GeocodeResolution:
    """Outcome of geocoding an address and searching around it."""
    place_id: Optional[str] = None
    location: Optional[LatLng] = None
    geocode_result: Optional[Dict[str, Any]] = None


class GeocodingResolver:
    """Resolve an address through geocoding and nearby search."""

    def __init__(self, client: GooglePlacesClient, coordinate_resolver: CoordinateResolver):
        self.client = client
        self.coordinate_resolver = coordinate_resolver

    async def geocode_and_resolve(self, address: str) -> GeocodeResolution:
        """
        Geocode an address, then resolve the point.

        The geocoded location is kept even when no place is found near it.
        """
        try:
            result = await self.client.geocode(address)
        except ProviderRequestError as e:
            logger.warning(f"Geocoding failed: {e}", extra={"query": truncate_for_log(address)})
            return GeocodeResolution()

        location = _geocode_location(result)
        if location is None:
            logger.info("Geocoding returned no usable location", extra={"query": truncate_for_log(address)})
            return GeocodeResolution()

        logger.info(
            "Got coordinates from geocoding",
            extra={"lat": location.lat, "lng": location.lng}
        )
        place_id = await self.coordinate_resolver.resolve_by_coordinates(location.lat, location.lng)
        return GeocodeResolution(place_id=place_id, location=location, geocode_result=result)

    async def geocode_then_resolve(self, address: str) -> Optional[str]:
        """
        Geocode an address and return the place nearest to it.

        Returns:
            Optional[str]: The place identifier, or None on any failure
        """
        return (await self.geocode_and_resolve(address)).place_id


def _geocode_location(result: Optional[Dict[str, Any]]) -> Optional[LatLng]:
    if not result:
        return None
    location = (result.get("geometry") or {}).get("location") or {}
    try:
        return LatLng(lat=location["lat"], lng=location["lng"])
    except (KeyError, TypeError, ValueError):
        return None
