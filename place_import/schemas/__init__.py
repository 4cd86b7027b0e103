"""
Central schemas package for place models and caller-facing payloads.

The adapters live in their own module:
    from place_import.schemas.adapters import to_import_payload
"""
from place_import.schemas.places import (
    CandidateMatch,
    ErrorResponse,
    LatLng,
    NormalizedPlace,
    OpeningHours,
    PhotoUrlResponse,
    PlaceImportRequest,
    PlacePhoto,
    PlacePreviewRequest,
    ResolutionQuery,
)

__all__ = [
    # Places
    "LatLng",
    "ResolutionQuery",
    "CandidateMatch",
    "PlacePhoto",
    "OpeningHours",
    "NormalizedPlace",
    # Requests / responses
    "PlaceImportRequest",
    "PlacePreviewRequest",
    "PhotoUrlResponse",
    "ErrorResponse",
]
