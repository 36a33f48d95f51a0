# backend/discovery/services/search/ranking.py
"""
Sort orders for search results.

Every order is total: the last key is always the listing id, so two runs over
the same rows paginate identically.
"""

from datetime import datetime
import math
from typing import Callable, Dict, List, Tuple

from ...schemas.search import ListingResult, SortMode
from .annotation import as_utc

SortKey = Callable[[ListingResult], Tuple]


def _created_desc(result: ListingResult) -> float:
    created: datetime = as_utc(result.created_at)
    return -created.timestamp()


def _distance_key(result: ListingResult) -> Tuple:
    # Listings without a distance sort last
    distance = result.distance_km if result.distance_km is not None else math.inf
    return (distance, result.name.lower(), result.id)


_SORT_KEYS: Dict[SortMode, SortKey] = {
    SortMode.DISTANCE: _distance_key,
    SortMode.RATING: lambda r: (-r.rating, -r.review_count, r.id),
    SortMode.NEWEST: lambda r: (_created_desc(r), r.id),
    SortMode.POPULAR: lambda r: (-r.popularity, r.id),
}


def sort_results(results: List[ListingResult], sort_by: SortMode) -> List[ListingResult]:
    """Order results for the requested mode; relevance keeps the store order."""
    if sort_by == SortMode.RELEVANCE:
        return list(results)
    return sorted(results, key=_SORT_KEYS[sort_by])
