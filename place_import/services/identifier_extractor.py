"""
Place identifier extraction from Google Maps URLs.

Rules are tried in a fixed order and the first match wins. Returning
None is the common case and simply means the query has to be resolved
by search.
"""
import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

logger = logging.getLogger(__name__)

PLACE_ID_PREFIX = "place_id:"

# Encoded data segments, matched against the whole URL
DATA_SEGMENT_PATTERNS = (
    re.compile(r"data=!4m[^!]*!3m1!1s([A-Za-z0-9_-]+)"),
    re.compile(r"data=!3m[^!]*!1s([A-Za-z0-9_-]+)"),
    re.compile(r"data=![^!]*!1s([A-Za-z0-9_-]+)"),
    re.compile(r"/data=!.*?!1s([A-Za-z0-9_-]+)"),
)

# Patterns for a data= query parameter
DATA_PARAM_PATTERNS = (
    re.compile(r"!1s([A-Za-z0-9_-]+)"),
    re.compile(r"!3m1!1s([A-Za-z0-9_-]+)"),
    re.compile(r"!4m[^!]*!3m1!1s([A-Za-z0-9_-]+)"),
)

SHORT_LINK_HOSTS = ("goo.gl",)


def strip_resource_prefix(place_id: str) -> str:
    """Drop the ``places/`` resource prefix used by the v1 API."""
    if place_id.startswith("places/"):
        return place_id[len("places/"):]
    return place_id


def extract_place_id_prefix(text: str) -> Optional[str]:
    """
    Recognize a query typed as ``place_id:<id>``.

    Args:
        text: A free-text query

    Returns:
        Optional[str]: The identifier, or None
    """
    text = (text or "").strip()
    if not text.startswith(PLACE_ID_PREFIX):
        return None
    place_id = text[len(PLACE_ID_PREFIX):].strip()
    return strip_resource_prefix(place_id) or None


def extract_identifier(url: str) -> Optional[str]:
    """
    Pull a place identifier out of a known Maps URL shape.

    Rules, in order:
        1. ``q=place_id:<id>``
        2. an encoded ``data=`` segment in the URL
        3. a ``data=`` query parameter

    ``maps.google.com`` links with a ``cid`` parameter and short links
    carry no usable identifier and yield None. Never raises.

    Args:
        url: The URL to inspect

    Returns:
        Optional[str]: The place identifier, or None
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    host = (parts.hostname or "").lower()
    params = parse_qs(parts.query)

    if "maps.google.com" in host and "cid" in params:
        logger.debug("CID link has no usable place id")
        return None

    if any(short in host for short in SHORT_LINK_HOSTS):
        logger.debug("Short link has no usable place id")
        return None

    q_values = params.get("q")
    if q_values and q_values[0].startswith(PLACE_ID_PREFIX):
        place_id = q_values[0][len(PLACE_ID_PREFIX):].strip()
        if place_id:
            return strip_resource_prefix(place_id)

    for pattern in DATA_SEGMENT_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)

    data_values = params.get("data")
    if data_values:
        for pattern in DATA_PARAM_PATTERNS:
            match = pattern.search(data_values[0])
            if match:
                return match.group(1)

    return None
