# backend/discovery/schemas/responses.py
"""Request and response bodies used only by the HTTP routes."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..core.exceptions import LocationUnavailableReason
from .location import AccuracyHint, Coordinate, PermissionState, PlaceSearchHit
from .search import (
    CategorySummary,
    ListingResult,
    OfferResult,
    PopularSearchTerm,
    SearchPage,
    SearchTrendPoint,
)


class SearchMoreRequest(BaseModel):
    """The filters of the list being extended and the last page it received."""

    spec: Dict[str, Any] = Field(default_factory=dict)
    page: SearchPage


class CategoriesResponse(BaseModel):
    categories: List[CategorySummary]


class TrendingOffersResponse(BaseModel):
    offers: List[OfferResult]


class RecommendationsResponse(BaseModel):
    listings: List[ListingResult]


class PopularSearchTermsResponse(BaseModel):
    days: int
    terms: List[PopularSearchTerm]


class SearchTrendsResponse(BaseModel):
    days: int
    trends: List[SearchTrendPoint]


class CurrentLocationRequest(BaseModel):
    """
    Position as observed by the client.

    With source="device" the client forwards what its positioning API
    reported (coordinate, or permission state / error). With source="ip" the
    caller's IP address is used and the other fields are ignored.
    """

    source: Literal["device", "ip"] = "device"
    coordinate: Optional[Coordinate] = None
    permission: PermissionState = PermissionState.GRANTED
    error: Optional[LocationUnavailableReason] = None
    accuracy_hint: AccuracyHint = AccuracyHint.HIGH


class PlaceSearchResponse(BaseModel):
    results: List[PlaceSearchHit]


class AddressSuggestionsResponse(BaseModel):
    suggestions: List[str]


class DistanceResponse(BaseModel):
    distance_km: float
    formatted: str


class DeleteResponse(BaseModel):
    deleted: int
