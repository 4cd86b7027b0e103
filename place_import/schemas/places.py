"""
Pydantic models for the place resolution pipeline.

Defines the internal shapes passed between pipeline stages and the
request bodies accepted by the HTTP surface.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============ Resolution Models ============

class LatLng(BaseModel):
    """Geographic coordinates."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude")
    lng: float = Field(..., ge=-180.0, le=180.0, description="Longitude")


class ResolutionQuery(BaseModel):
    """A classified query. Immutable for the duration of one call."""
    model_config = ConfigDict(frozen=True)

    raw: str = Field(..., description="The query as supplied by the caller")
    is_url: bool = Field(False, description="Whether the query parses as a URL")
    hint: Optional[LatLng] = Field(None, description="Coordinates embedded in the URL")


class CandidateMatch(BaseModel):
    """One search result. Only the first candidate of a search is ever used."""
    place_id: str = Field(..., description="Place identifier without resource prefix")
    name: Optional[str] = Field(None, description="Display name")
    formatted_address: Optional[str] = Field(None, description="Formatted address")
    location: Optional[LatLng] = Field(None, description="Coordinates")


# ============ Normalized Place ============

class PlacePhoto(BaseModel):
    """A photo with a directly usable media URL."""
    id: str = Field(..., description="Positional id, e.g. photo_0")
    url: str = Field(..., description="Resolved media URL")
    reference: str = Field(..., description="Raw provider photo reference")


class OpeningHours(BaseModel):
    """Regular opening hours."""
    weekday_text: List[str] = Field(default_factory=list, description="One line per weekday")
    periods: List[Dict[str, Any]] = Field(default_factory=list, description="Raw open/close periods")


class NormalizedPlace(BaseModel):
    """
    Canonical place record.

    Every field is independently optional except the echoed query. A
    record without ``place_id`` is only valid when ``is_coordinate_only``
    is set and both coordinates are present.
    """
    place_id: Optional[str] = Field(None, description="Google Place ID")
    name: Optional[str] = Field(None, description="Place name")
    formatted_address: Optional[str] = Field(None, description="Full address")
    website: Optional[str] = Field(None, description="Website URL")
    phone: Optional[str] = Field(None, description="National phone number")

    # Ratings
    rating: Optional[float] = Field(None, description="Average rating")
    rating_count: Optional[int] = Field(None, description="Number of ratings")

    opening_hours: Optional[OpeningHours] = Field(None, description="Opening hours")
    price_level: Optional[int] = Field(None, ge=0, le=4, description="Price level 0-4")

    # Category
    category: Optional[str] = Field(None, description="Primary type")
    types: List[str] = Field(default_factory=list, description="All types")

    # Location
    lat: Optional[float] = Field(None, description="Latitude")
    lng: Optional[float] = Field(None, description="Longitude")
    city: Optional[str] = Field(None, description="City")
    state: Optional[str] = Field(None, description="State or region")
    country: Optional[str] = Field(None, description="Country")

    google_maps_url: Optional[str] = Field(None, description="Canonical Google Maps URL")
    photos: List[PlacePhoto] = Field(default_factory=list, description="At most six photos")

    query: str = Field(..., description="The query this record was resolved from")
    is_coordinate_only: bool = Field(False, description="No place id, coordinates only")

    @model_validator(mode="after")
    def check_identity(self) -> "NormalizedPlace":
        if self.place_id:
            return self
        if self.is_coordinate_only and self.lat is not None and self.lng is not None:
            return self
        raise ValueError("a place needs a place_id or coordinate-only coordinates")


# ============ Request Models ============

class PlaceImportRequest(BaseModel):
    """Request body for the import endpoint."""
    query: Optional[str] = Field(
        None,
        description="Google Maps link, place name or address",
        examples=["https://maps.google.com/?q=place_id:ChIJN1t_tDeuEmsRUsoyG83frY4", "Cafe Central, Vienna"]
    )
    google_url: Optional[str] = Field(None, description="Alias of query")
    access_token: Optional[str] = Field(None, description="Session token when no Authorization header is sent")

    @property
    def effective_query(self) -> str:
        return (self.query or self.google_url or "").strip()


class PlacePreviewRequest(BaseModel):
    """Request body for the preview endpoint."""
    query: Optional[str] = Field(None, description="Google Maps link, place name or address")
    access_token: Optional[str] = Field(None, description="Session token when no Authorization header is sent")

    @property
    def effective_query(self) -> str:
        return (self.query or "").strip()


class PhotoUrlResponse(BaseModel):
    """Response for the photo URL endpoint."""
    url: str = Field(..., description="Media URL for the photo reference")


class ErrorResponse(BaseModel):
    """
    Standard error response model.

    ``code`` and ``message`` are what callers act on; the remaining
    fields follow RFC7807.
    """
    code: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Short, actionable message")
    type: Optional[str] = Field(None, description="Problem type URI")
    title: Optional[str] = Field(None, description="HTTP status title")
    status: Optional[int] = Field(None, description="HTTP status code")
    detail: Optional[str] = Field(None, description="Same as message")
