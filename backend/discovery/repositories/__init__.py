"""
Repository layer for the discovery engine.

Repositories are synchronous and take a SQLAlchemy Session; async services
call them through asyncio.to_thread with a fresh session per call.
"""

from .base_repository import BaseRepository
from .favorites_repository import FavoritesRepository
from .listing_repository import ListingRepository
from .place_repository import LocationHistoryRepository, SavedPlaceRepository
from .search_event_repository import SearchEventRepository

__all__ = [
    "BaseRepository",
    "FavoritesRepository",
    "ListingRepository",
    "LocationHistoryRepository",
    "SavedPlaceRepository",
    "SearchEventRepository",
]
