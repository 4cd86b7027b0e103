"""
Services package for the Place Import API.

This package contains the resolution pipeline and its building blocks,
keeping the API routers thin and focused on HTTP concerns.

Services:
    - input_classifier: URL vs. free text detection and coordinate hints
    - identifier_extractor: place identifiers embedded in Maps URLs
    - address_heuristic: "looks like a postal address" predicate
    - google_places_client: Places / Geocoding HTTP calls
    - place_resolvers: text, coordinate and geocoding resolution
    - normalizer: raw provider records to NormalizedPlace
    - place_import_service: the orchestrating pipeline

Usage:
    from place_import.services.place_import_service import PlaceImportService
"""

__all__ = [
    "input_classifier",
    "identifier_extractor",
    "address_heuristic",
    "google_places_client",
    "place_resolvers",
    "normalizer",
    "place_import_service",
]
