# backend/discovery/schemas/search.py
"""
Pydantic schemas for listing search, suggestions and discovery sections.

Defines the filter contract (FilterSpecification), the store-agnostic raw
rows the engine works on (ListingRecord, OfferRecord) and the annotated
results returned to callers.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.listing import DiscountType, ListingStatus, OfferStatus
from .location import Coordinate


class SortMode(str, Enum):
    RELEVANCE = "relevance"
    DISTANCE = "distance"
    RATING = "rating"
    NEWEST = "newest"
    POPULAR = "popular"


class LocationFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    radius_km: Optional[float] = Field(None, gt=0, description="Defaults to 50km when omitted")


class NumericRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "NumericRange":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must not exceed max")
        return self

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


class FilterSpecification(BaseModel):
    """Every constraint, sort and pagination parameter for one search."""

    model_config = ConfigDict(frozen=True)

    query: Optional[str] = Field(None, max_length=200)
    categories: Optional[List[str]] = None
    location: Optional[LocationFilter] = None
    price_range: Optional[NumericRange] = None
    rating_range: Optional[NumericRange] = None
    sort_by: SortMode = SortMode.RELEVANCE
    limit: Optional[int] = Field(None, gt=0)
    offset: int = Field(0, ge=0)
    open_now: bool = False
    has_active_offers: bool = False

    @field_validator("query", mode="before")
    @classmethod
    def _blank_query_is_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("categories", mode="before")
    @classmethod
    def _clean_categories(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        cleaned: List[str] = []
        for item in v:
            name = str(item).strip()
            if name and name not in cleaned:
                cleaned.append(name)
        return cleaned or None

    @field_validator("sort_by", mode="before")
    @classmethod
    def _accept_popularity_alias(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() == "popularity":
            return SortMode.POPULAR
        return v

    @model_validator(mode="after")
    def _distance_requires_origin(self) -> "FilterSpecification":
        if self.sort_by == SortMode.DISTANCE and self.location is None:
            raise ValueError("sort_by=distance requires a location")
        return self

    @property
    def origin(self) -> Optional[Coordinate]:
        return self.location.coordinate if self.location else None


class OfferRecord(BaseModel):
    """Offer row as returned by the listing store (or the fallback dataset)."""

    id: str
    listing_id: str
    title: str
    description: str = ""
    discount_type: DiscountType
    discount_value: float
    minimum_order_value: Optional[float] = None
    terms_conditions: Optional[str] = None
    valid_from: datetime
    valid_until: datetime
    usage_limit: int = Field(..., ge=0)
    used_count: int = Field(0, ge=0)
    status: OfferStatus

    @model_validator(mode="after")
    def _check_invariants(self) -> "OfferRecord":
        if self.used_count > self.usage_limit:
            raise ValueError("used_count cannot exceed usage_limit")
        if self.valid_from >= self.valid_until:
            raise ValueError("valid_from must be before valid_until")
        return self


class ListingBase(BaseModel):
    id: str
    name: str
    description: str = ""
    category: str
    tags: List[str] = Field(default_factory=list)
    address: str = ""
    city: str = ""
    state: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    operating_hours: Optional[Dict[str, Any]] = None
    average_price: Optional[float] = None
    status: ListingStatus = ListingStatus.ACTIVE
    created_at: datetime
    updated_at: datetime


class ListingRecord(ListingBase):
    """Listing row with the raw review ratings and offers attached to it."""

    review_ratings: List[float] = Field(default_factory=list)
    offers: List[OfferRecord] = Field(default_factory=list)


class ListingResult(ListingBase):
    """Listing enriched with fields computed at query time. Never persisted."""

    model_config = ConfigDict(use_enum_values=True)

    distance_km: Optional[float] = None
    rating: float = 0.0
    review_count: int = 0
    is_open: bool = False
    active_offers_count: int = 0
    popularity: int = 0
    is_favorited: bool = False


class OfferResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    listing_id: str
    listing_name: str
    listing_logo: Optional[str] = None
    title: str
    description: str = ""
    discount_type: DiscountType
    discount_value: float
    minimum_order_value: Optional[float] = None
    terms_conditions: Optional[str] = None
    valid_from: datetime
    valid_until: datetime
    usage_limit: int
    used_count: int
    status: OfferStatus
    is_trending: bool = False
    popularity_score: int = 0


class SearchPage(BaseModel):
    results: List[ListingResult]
    total: int
    has_more: bool
    offset: int
    limit: int
    degraded: bool = Field(False, description="True when served from the bundled sample dataset")


class CategorySummary(BaseModel):
    name: str
    count: int
    description: Optional[str] = None
    icon: Optional[str] = None


class SuggestionType(str, Enum):
    LISTING = "listing"
    CATEGORY = "category"
    LOCATION_TEXT = "location_text"
    FREE_TEXT = "free_text"


class Suggestion(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: SuggestionType
    text: str
    count: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class SuggestionBatch(BaseModel):
    """Suggestions for one keystroke; stale batches were superseded before completing."""

    generation: int
    query: str
    stale: bool = False
    suggestions: List[Suggestion] = Field(default_factory=list)


class DiscoverySectionType(str, Enum):
    TRENDING = "trending"
    NEARBY = "nearby"
    NEW = "new"
    RECOMMENDED = "recommended"
    CATEGORY = "category"


class DiscoverySection(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str
    type: DiscoverySectionType
    listings: List[ListingResult] = Field(default_factory=list)
    offers: Optional[List[OfferResult]] = None


class PopularSearchTerm(BaseModel):
    term: str
    search_count: int
    unique_users: int
    average_results: float
    last_searched: Optional[datetime] = None


class SearchTrendPoint(BaseModel):
    date: date
    searches: int
