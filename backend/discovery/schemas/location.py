# backend/discovery/schemas/location.py
"""
Pydantic schemas for coordinates, resolved places and user-owned locations.

PlaceRecord and Coordinate are frozen: once a lookup produces them they are
shared through the geocode caches and must not change.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.place import SavedPlaceType


class Coordinate(BaseModel):
    """WGS-84 latitude/longitude pair in degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class PlaceRecord(BaseModel):
    """Canonical location produced by geocoding or reverse geocoding."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    address: str
    city: str
    region: str
    country: str
    postal_code: Optional[str] = None
    place_id: Optional[str] = None
    formatted_address: Optional[str] = None


class PlaceSearchHit(BaseModel):
    """A single free-text place search result."""

    place_id: str
    name: str
    address: str
    coordinate: Coordinate
    types: List[str] = Field(default_factory=list)
    rating: Optional[float] = None
    vicinity: Optional[str] = None


class PermissionState(str, Enum):
    NOT_ASKED = "not_asked"
    GRANTED = "granted"
    DENIED = "denied"


class AccuracyHint(str, Enum):
    HIGH = "high"
    BALANCED = "balanced"
    LOW = "low"


class SavedPlaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    place_type: SavedPlaceType = SavedPlaceType.FAVORITE
    place: PlaceRecord

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()


class SavedPlaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    place_type: Optional[SavedPlaceType] = None
    place: Optional[PlaceRecord] = None


class SavedPlaceResponse(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    name: str
    place_type: SavedPlaceType
    place: PlaceRecord
    created_at: datetime
    updated_at: datetime


class LocationHistoryResponse(BaseModel):
    id: str
    user_id: str
    coordinate: Coordinate
    address: str
    search_query: Optional[str] = None
    accessed_at: datetime
