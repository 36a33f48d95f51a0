"""
Database models for the discovery engine.

The models are organized by functionality:
- Listings with their reviews, offers and category metadata
- User-owned saved places and location history
- User favorites (read by search and discovery for personalization)
- Search events (append-only analytics log)
"""

from .favorite import UserFavorite
from .listing import (
    DiscountType,
    Listing,
    ListingCategory,
    ListingReview,
    ListingStatus,
    Offer,
    OfferStatus,
)
from .place import LocationHistoryEntry, SavedPlace, SavedPlaceType
from .search_event import SearchEvent

__all__ = [
    "DiscountType",
    "Listing",
    "ListingCategory",
    "ListingReview",
    "ListingStatus",
    "LocationHistoryEntry",
    "Offer",
    "OfferStatus",
    "SavedPlace",
    "SavedPlaceType",
    "SearchEvent",
    "UserFavorite",
]
