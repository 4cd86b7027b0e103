"""
Normalization of raw provider records into NormalizedPlace.

Two generations of the Places API coexist and disagree on field names
and shapes (``displayName.text`` vs ``name``, ``addressComponents`` with
``longText`` vs ``address_components`` with ``long_name``, and so on).
Every reader here accepts both and returns None when a field is missing
or unusable; normalization never raises on a partial record.
"""
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from place_import.schemas.places import NormalizedPlace, OpeningHours, PlacePhoto

logger = logging.getLogger(__name__)

PhotoUrlBuilder = Callable[[str], str]

MAX_PHOTOS = 6

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}

# (component types in priority order, prefer short name)
CITY_TYPES = (("locality",), ("postal_town",), ("sublocality", "sublocality_level_1"))
STATE_TYPES = (("administrative_area_level_1",), ("administrative_area_level_2",))
COUNTRY_TYPES = (("country",),)


def maps_url_for_place(place_id: str) -> str:
    return f"https://www.google.com/maps/place/?q=place_id:{place_id}"


def maps_url_for_coordinates(lat: float, lng: float) -> str:
    return f"https://www.google.com/maps/place/?q={lat},{lng}"


def _text(value: Any) -> Optional[str]:
    """Unwrap a string or a ``{text: ...}`` wrapper."""
    if isinstance(value, dict):
        value = value.get("text")
    if isinstance(value, str) and value.strip():
        return value
    return None


def _first_text(raw: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = _text(raw.get(key))
        if value is not None:
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _coordinates(raw: Dict[str, Any]):
    location = raw.get("location")
    if isinstance(location, dict) and "latitude" in location:
        return _to_float(location.get("latitude")), _to_float(location.get("longitude"))

    geometry = raw.get("geometry")
    if isinstance(geometry, dict) and isinstance(geometry.get("location"), dict):
        legacy = geometry["location"]
        return _to_float(legacy.get("lat")), _to_float(legacy.get("lng"))

    return None, None


def _component_name(component: Dict[str, Any], prefer_short: bool) -> Optional[str]:
    long_name = component.get("longText") or component.get("long_name")
    short_name = component.get("shortText") or component.get("short_name")
    if prefer_short:
        return short_name or long_name
    return long_name or short_name


def _pick_component(
    components: Sequence[Dict[str, Any]],
    priority: Iterable[Sequence[str]],
    prefer_short: bool = False
) -> Optional[str]:
    """Return the first component matching the highest-priority type group."""
    for type_group in priority:
        for component in components:
            types = component.get("types") or []
            if any(t in types for t in type_group):
                name = _component_name(component, prefer_short)
                if name:
                    return name
    return None


def extract_locality(raw: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Read city, state and country from address components.

    City prefers locality, then postal_town, then sublocality. State
    prefers administrative_area_level_1 over level_2 and uses the short
    name. Country uses the long name.
    """
    components = raw.get("addressComponents") or raw.get("address_components") or []
    components = [c for c in components if isinstance(c, dict)]
    return {
        "city": _pick_component(components, CITY_TYPES),
        "state": _pick_component(components, STATE_TYPES, prefer_short=True),
        "country": _pick_component(components, COUNTRY_TYPES),
    }


def _opening_hours(raw: Dict[str, Any]) -> Optional[OpeningHours]:
    hours = raw.get("regularOpeningHours")
    if isinstance(hours, dict):
        weekday_text = hours.get("weekdayDescriptions") or []
    else:
        hours = raw.get("opening_hours")
        if not isinstance(hours, dict):
            return None
        weekday_text = hours.get("weekday_text") or []

    periods = hours.get("periods") or []
    return OpeningHours(
        weekday_text=[line for line in weekday_text if isinstance(line, str)],
        periods=[period for period in periods if isinstance(period, dict)],
    )


def _price_level(value: Any) -> Optional[int]:
    if isinstance(value, str):
        if value in PRICE_LEVELS:
            return PRICE_LEVELS[value]
    level = _to_int(value)
    if level is not None and 0 <= level <= 4:
        return level
    return None


def _types(raw: Dict[str, Any]) -> List[str]:
    types = raw.get("types") or []
    return [t for t in types if isinstance(t, str)]


def _photo_name(photo: Any) -> Optional[str]:
    if isinstance(photo, str):
        return photo or None
    if isinstance(photo, dict):
        return photo.get("name") or photo.get("photo_reference")
    return None


def _photos(
    raw: Dict[str, Any],
    photo_url_builder: PhotoUrlBuilder,
    max_photos: int
) -> List[PlacePhoto]:
    photos: List[PlacePhoto] = []
    for photo in raw.get("photos") or []:
        if len(photos) >= max_photos:
            break
        name = _photo_name(photo)
        if not name:
            continue
        reference = name.split("/photos/", 1)[1] if "/photos/" in name else name
        photos.append(PlacePhoto(
            id=f"photo_{len(photos)}",
            url=photo_url_builder(name),
            reference=reference,
        ))
    return photos


def normalize(
    raw: Dict[str, Any],
    original_query: str,
    was_url: bool,
    photo_url_builder: PhotoUrlBuilder,
    max_photos: int = MAX_PHOTOS
) -> NormalizedPlace:
    """
    Map a raw details record onto NormalizedPlace.

    Args:
        raw: The details record (either API generation)
        original_query: The query the caller supplied
        was_url: Whether that query was a URL
        photo_url_builder: Turns a photo reference into a media URL
        max_photos: Maximum number of photos kept

    Returns:
        NormalizedPlace: The canonical record
    """
    place_id = raw.get("id") or raw.get("place_id")
    if isinstance(place_id, str) and place_id.startswith("places/"):
        place_id = place_id[len("places/"):]

    lat, lng = _coordinates(raw)
    types = _types(raw)

    if was_url:
        google_maps_url = original_query
    elif place_id:
        google_maps_url = maps_url_for_place(place_id)
    else:
        google_maps_url = None

    name = _text(raw.get("displayName"))
    legacy_name = _text(raw.get("name"))
    # v1 records use "name" for the places/<id> resource name
    if name is None and legacy_name and not legacy_name.startswith("places/"):
        name = legacy_name

    return NormalizedPlace(
        place_id=place_id,
        name=name,
        formatted_address=_first_text(raw, "formattedAddress", "formatted_address"),
        website=_first_text(raw, "websiteUri", "website"),
        phone=_first_text(raw, "nationalPhoneNumber", "formatted_phone_number"),
        rating=_to_float(raw.get("rating")),
        rating_count=_to_int(raw.get("userRatingCount", raw.get("user_ratings_total"))),
        opening_hours=_opening_hours(raw),
        price_level=_price_level(raw.get("priceLevel", raw.get("price_level"))),
        category=types[0] if types else None,
        types=types,
        lat=lat,
        lng=lng,
        google_maps_url=google_maps_url,
        photos=_photos(raw, photo_url_builder, max_photos),
        query=original_query,
        **extract_locality(raw),
    )


def normalize_coordinate_only(
    lat: float,
    lng: float,
    original_query: str,
    geocode_result: Optional[Dict[str, Any]] = None
) -> NormalizedPlace:
    """
    Build a record for a location that has no place identifier.

    The name is the first comma-separated part of the geocoded address,
    or the query when there is no address.
    """
    geocode_result = geocode_result or {}
    formatted_address = _first_text(geocode_result, "formatted_address", "formattedAddress")
    name = formatted_address.split(",")[0].strip() if formatted_address else original_query
    types = _types(geocode_result)

    return NormalizedPlace(
        name=name,
        formatted_address=formatted_address,
        category=types[0] if types else None,
        types=types,
        lat=lat,
        lng=lng,
        google_maps_url=maps_url_for_coordinates(lat, lng),
        query=original_query,
        is_coordinate_only=True,
        **extract_locality(geocode_result),
    )
