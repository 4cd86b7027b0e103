"""
Input classification for place queries.

Decides whether a raw query is a URL or free text and, for URLs, reads
an embedded coordinate pair that later steps can use as a search hint.
No network I/O happens here.
"""
import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from place_import.schemas.places import LatLng, ResolutionQuery

logger = logging.getLogger(__name__)

# /place/Name/@lat,lng,zoom or /@lat,lng
PATH_COORDINATES = re.compile(r"@(-?\d+\.?\d*),(-?\d+\.?\d*)")
# ?q=lat,lng or ?ll=lat,lng
PARAM_COORDINATES = re.compile(r"^(-?\d+\.?\d*),(-?\d+\.?\d*)$")


def is_url(raw: str) -> bool:
    """
    Check whether a string parses as an absolute URL.

    Both a scheme and a network location are required, so strings such
    as ``place_id:abc`` or ``mailto:x`` count as text.
    """
    try:
        parts = urlsplit(raw.strip())
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


def _to_latlng(lat_text: str, lng_text: str) -> Optional[LatLng]:
    try:
        lat = float(lat_text)
        lng = float(lng_text)
    except ValueError:
        return None
    if -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0:
        return LatLng(lat=lat, lng=lng)
    return None


def extract_coordinates(url: str) -> Optional[LatLng]:
    """
    Read a coordinate pair from a Maps URL.

    The path form ``@lat,lng`` is tried first, then the ``q`` and ``ll``
    query parameters. Out-of-range pairs are ignored.

    Args:
        url: An absolute URL

    Returns:
        Optional[LatLng]: The coordinates, or None
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    match = PATH_COORDINATES.search(parts.path)
    if match:
        coordinates = _to_latlng(match.group(1), match.group(2))
        if coordinates:
            return coordinates

    params = parse_qs(parts.query)
    for name in ("q", "ll"):
        values = params.get(name)
        if not values:
            continue
        match = PARAM_COORDINATES.match(values[0].strip())
        if match:
            coordinates = _to_latlng(match.group(1), match.group(2))
            if coordinates:
                return coordinates

    return None


def classify(raw: str) -> ResolutionQuery:
    """
    Classify a raw query string.

    Never raises: anything that does not parse as a URL is free text.

    Args:
        raw: The query as supplied by the caller

    Returns:
        ResolutionQuery: The classified query
    """
    text = (raw or "").strip()
    if not is_url(text):
        return ResolutionQuery(raw=text, is_url=False)

    hint = extract_coordinates(text)
    if hint:
        logger.debug(f"Coordinate hint found in URL: {hint.lat},{hint.lng}")
    return ResolutionQuery(raw=text, is_url=True, hint=hint)
