"""
Places API package.

Exposes the place import and preview endpoints.
"""
from place_import.api.places.places_api import places_router

__all__ = ["places_router"]
