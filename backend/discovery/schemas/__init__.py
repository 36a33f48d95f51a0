from .location import (
    AccuracyHint,
    Coordinate,
    LocationHistoryResponse,
    PermissionState,
    PlaceRecord,
    PlaceSearchHit,
    SavedPlaceCreate,
    SavedPlaceResponse,
    SavedPlaceUpdate,
)
from .search import (
    CategorySummary,
    DiscoverySection,
    DiscoverySectionType,
    FilterSpecification,
    ListingRecord,
    ListingResult,
    LocationFilter,
    NumericRange,
    OfferRecord,
    OfferResult,
    SearchPage,
    SortMode,
    Suggestion,
    SuggestionBatch,
    SuggestionType,
)

__all__ = [
    "AccuracyHint",
    "CategorySummary",
    "Coordinate",
    "DiscoverySection",
    "DiscoverySectionType",
    "FilterSpecification",
    "ListingRecord",
    "ListingResult",
    "LocationFilter",
    "LocationHistoryResponse",
    "NumericRange",
    "OfferRecord",
    "OfferResult",
    "PermissionState",
    "PlaceRecord",
    "PlaceSearchHit",
    "SavedPlaceCreate",
    "SavedPlaceResponse",
    "SavedPlaceUpdate",
    "SearchPage",
    "SortMode",
    "Suggestion",
    "SuggestionBatch",
    "SuggestionType",
]
