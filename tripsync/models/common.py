"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, Field


class Location(BaseModel):
    """Named point with WGS84 coordinates."""

    address: str = ""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LatLng(BaseModel):
    """Bare map coordinate."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class MapBounds(BaseModel):
    """Rectangular map region."""

    northeast: LatLng
    southwest: LatLng


class TripStatus(str, Enum):
    """Trip lifecycle status."""

    draft = "draft"
    planned = "planned"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
