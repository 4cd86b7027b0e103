"""
Place import API endpoints.

- POST /import: resolve a query and return the import-flavor payload
- POST /preview: resolve a query and return the preview-flavor payload
- GET /photo: build a photo media URL server-side; the key stays out of
  client code but is part of the returned URL

Both resolve endpoints run the same pipeline; only the response shape
differs.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request

from place_import.core.auth import AuthProvider, authenticate_request
from place_import.core.config import Settings
from place_import.core.dependencies import (
    get_app_settings,
    get_auth_provider,
    get_place_import_service,
    get_places_client,
)
from place_import.core.exceptions import InvalidInputError, UnconfiguredError
from place_import.schemas.adapters import to_import_payload, to_preview_payload
from place_import.schemas.places import (
    ErrorResponse,
    PhotoUrlResponse,
    PlaceImportRequest,
    PlacePreviewRequest,
)
from place_import.services.google_places_client import GooglePlacesClient
from place_import.services.place_import_service import PlaceImportService

logger = logging.getLogger(__name__)

# Create router
places_router = APIRouter(tags=["Places"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "Missing or invalid session"},
    404: {"model": ErrorResponse, "description": "Place not found"},
    429: {"model": ErrorResponse, "description": "Rate limited"},
    500: {"model": ErrorResponse, "description": "Service not configured"},
    502: {"model": ErrorResponse, "description": "Google Places error"},
}


@places_router.post(
    "/import",
    summary="Import a place",
    response_model=Dict[str, Any],
    responses=ERROR_RESPONSES,
)
async def import_place(
    request: Request,
    body: PlaceImportRequest,
    service: PlaceImportService = Depends(get_place_import_service),
    auth_provider: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_app_settings),
):
    """
    Resolve a Google Maps link, place name or address to a place.

    Accepts ``query`` or its alias ``google_url``.
    """
    user_id = await authenticate_request(request, auth_provider, body.access_token, settings)
    place = await service.import_place(body.effective_query, user_id)
    return to_import_payload(place)


@places_router.post(
    "/preview",
    summary="Preview a place",
    response_model=Dict[str, Any],
    responses=ERROR_RESPONSES,
)
async def preview_place(
    request: Request,
    body: PlacePreviewRequest,
    service: PlaceImportService = Depends(get_place_import_service),
    auth_provider: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_app_settings),
):
    """Resolve a query and return the preview card fields."""
    user_id = await authenticate_request(request, auth_provider, body.access_token, settings)
    place = await service.import_place(body.effective_query, user_id)
    return to_preview_payload(place)


@places_router.get(
    "/photo",
    summary="Build a photo URL",
    response_model=PhotoUrlResponse,
    responses={400: ERROR_RESPONSES[400], 500: ERROR_RESPONSES[500]},
)
async def photo_url(
    reference: str = Query("", description="Photo resource name or legacy reference"),
    maxwidth: int = Query(800, ge=1, le=4800, description="Maximum width in pixels"),
    client: GooglePlacesClient = Depends(get_places_client),
    settings: Settings = Depends(get_app_settings),
):
    """Return a media URL for a photo reference."""
    if not reference.strip():
        raise InvalidInputError(detail="Photo reference is required.")
    if not settings.google_api_configured:
        raise UnconfiguredError()
    return PhotoUrlResponse(url=client.photo_url(reference.strip(), maxwidth))
