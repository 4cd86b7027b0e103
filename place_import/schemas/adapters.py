"""
Caller-facing payload adapters.

The pipeline produces one NormalizedPlace. Existing callers expect two
different field layouts: the "import" flavor used by the place form and
the "preview" flavor used by the preview card. These adapters only
rename and reshape; they never resolve anything.
"""
from typing import Any, Dict, List, Optional

from place_import.schemas.places import NormalizedPlace

PREVIEW_DESCRIPTION_TYPES = 3


def _opening_hours(place: NormalizedPlace) -> Optional[Dict[str, Any]]:
    if place.opening_hours is None:
        return None
    return {
        "weekdayText": list(place.opening_hours.weekday_text),
        "periods": list(place.opening_hours.periods),
    }


def to_import_payload(place: NormalizedPlace) -> Dict[str, Any]:
    """
    Render a place in the import flavor.

    Aliased fields (``business_name``, ``address``, ``latitude`` ...) carry
    the same values as their canonical counterparts.
    """
    photo_urls: List[str] = [photo.url for photo in place.photos]
    return {
        "name": place.name,
        "business_name": place.name,
        "formatted_address": place.formatted_address,
        "address": place.formatted_address,
        "website": place.website,
        "phone": place.phone,
        "rating": place.rating,
        "reviews_count": place.rating_count,
        "user_ratings_total": place.rating_count,
        "opening_hours": _opening_hours(place),
        "price_level": place.price_level,
        "category": place.category,
        "types": list(place.types),
        "categories": list(place.types),
        "place_id": place.place_id,
        "google_place_id": place.place_id,
        "google_maps_url": place.google_maps_url,
        "lat": place.lat,
        "lng": place.lng,
        "latitude": place.lat,
        "longitude": place.lng,
        "city": place.city,
        "city_state": place.state,
        "city_country": place.country,
        "photos": [photo.model_dump() for photo in place.photos],
        "photo_urls": photo_urls,
        "query": place.query,
        "is_coordinate_only": place.is_coordinate_only,
    }


def describe_types(types: List[str], limit: int = PREVIEW_DESCRIPTION_TYPES) -> Optional[str]:
    """
    Turn place types into a short description.

    >>> describe_types(["coffee_shop", "cafe", "food", "store"])
    'coffee shop, cafe, food'
    """
    words = [t.replace("_", " ") for t in types[:limit]]
    return ", ".join(words) or None


def to_preview_payload(place: NormalizedPlace) -> Dict[str, Any]:
    """Render a place in the preview flavor."""
    return {
        "title": place.name,
        "address": place.formatted_address,
        "description": describe_types(place.types),
        "photos": [photo.model_dump() for photo in place.photos],
        "lat": place.lat,
        "lng": place.lng,
        "google_place_id": place.place_id,
        "google_maps_url": place.google_maps_url,
        "is_coordinate_only": place.is_coordinate_only,
    }
