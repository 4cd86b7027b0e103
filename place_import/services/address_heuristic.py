"""
"Looks like a postal address" predicate.

Address-shaped text that text search cannot resolve is geocoded instead.
The check is deliberately loose and is injected into the pipeline as a
plain callable so it can be replaced without touching resolution code.
"""
import re
from typing import Callable

AddressPredicate = Callable[[str], bool]

HAS_NUMBER = re.compile(r"\d+")
STREET_KEYWORDS = re.compile(
    r"\b(street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|place|pl"
    r"|court|ct|circle|cir|highway|hwy|parkway|pkwy)\b",
    re.IGNORECASE,
)
UNIT_KEYWORDS = re.compile(r"\b(suite|ste|unit|apt|apartment|#|number|no\.?)\b", re.IGNORECASE)
# ", IL 62701" or ", IL"
STATE_SUFFIX = (
    re.compile(r",\s*[A-Z]{2}\s+\d{5}", re.IGNORECASE),
    re.compile(r",\s*[A-Z]{2}\b", re.IGNORECASE),
)


def looks_like_address(text: str) -> bool:
    """
    Default address predicate.

    Requires a number and at least one of a street keyword, a unit
    keyword or a trailing state abbreviation.

    >>> looks_like_address("123 Main St, Springfield, IL 62701")
    True
    >>> looks_like_address("Cafe Central")
    False
    """
    if not text or not HAS_NUMBER.search(text):
        return False
    if STREET_KEYWORDS.search(text) or UNIT_KEYWORDS.search(text):
        return True
    return any(pattern.search(text) for pattern in STATE_SUFFIX)
