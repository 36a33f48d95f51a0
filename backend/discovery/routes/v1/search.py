# backend/discovery/routes/v1/search.py
"""
Search routes - API v1

Versioned search endpoints under /api/v1/search.
All business logic delegated to SearchQueryEngine, SuggestionEngine and
SearchAnalytics.

Endpoints:
    GET /                    → Filtered, ranked, paginated search (query parameters)
    POST /                   → Same search with a FilterSpecification body
    POST /more               → Next page of an existing result list
    GET /categories          → Active listing counts per category
    GET /offers/trending     → Active offers, most used first
    GET /suggestions         → Autocomplete for partially typed text
    GET /popular             → Most searched terms over a recent window
    GET /trends              → Searches per day over a recent window
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from ...api.dependencies import (
    get_search_analytics,
    get_search_engine,
    get_suggestion_engine,
    get_user_id,
)
from ...core.exceptions import DomainException
from ...schemas.responses import (
    CategoriesResponse,
    PopularSearchTermsResponse,
    SearchMoreRequest,
    SearchTrendsResponse,
    TrendingOffersResponse,
)
from ...schemas.search import SearchPage, SortMode, SuggestionBatch
from ...services.search.config import get_search_config
from ...services.search.query_engine import SearchQueryEngine
from ...services.search.search_analytics import SearchAnalytics
from ...services.search.suggestion_engine import SuggestionEngine

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["search-v1"])


def _range(low: Optional[float], high: Optional[float]) -> Optional[Dict[str, float]]:
    if low is None and high is None:
        return None
    bounds: Dict[str, float] = {}
    if low is not None:
        bounds["min"] = low
    if high is not None:
        bounds["max"] = high
    return bounds


def build_spec_from_query(
    q: Optional[str] = Query(None, max_length=200, description="Free-text query"),
    category: Optional[List[str]] = Query(None, description="Category filter (repeatable)"),
    lat: Optional[float] = Query(None, description="Origin latitude"),
    lng: Optional[float] = Query(None, description="Origin longitude"),
    radius_km: Optional[float] = Query(None, description="Search radius, defaults to 50km"),
    min_price: Optional[float] = Query(None),
    max_price: Optional[float] = Query(None),
    min_rating: Optional[float] = Query(None),
    max_rating: Optional[float] = Query(None),
    sort_by: SortMode = Query(SortMode.RELEVANCE),
    limit: Optional[int] = Query(None, description="Page size, defaults to 20"),
    offset: int = Query(0),
    open_now: bool = Query(False),
    has_active_offers: bool = Query(False),
) -> Dict[str, Any]:
    """Query parameters as a raw spec mapping; the engine validates it."""
    spec: Dict[str, Any] = {
        "query": q,
        "categories": category,
        "sort_by": sort_by,
        "offset": offset,
        "open_now": open_now,
        "has_active_offers": has_active_offers,
        "price_range": _range(min_price, max_price),
        "rating_range": _range(min_rating, max_rating),
    }
    if limit is not None:
        spec["limit"] = limit
    if lat is not None or lng is not None:
        spec["location"] = {
            "coordinate": {"latitude": lat, "longitude": lng},
            "radius_km": radius_km,
        }
    return spec


@router.get("", response_model=SearchPage)
async def search_listings(
    spec: Dict[str, Any] = Depends(build_spec_from_query),
    user_id: Optional[str] = Depends(get_user_id),
    engine: SearchQueryEngine = Depends(get_search_engine),
) -> SearchPage:
    """
    Search listings with query-string filters.

    A degraded page (served from the sample dataset) is still a 200; the
    `degraded` flag tells the client.
    """
    try:
        return await engine.search(spec, user_id=user_id)
    except DomainException as e:
        raise e.to_http_exception()


@router.post("", response_model=SearchPage)
async def search_listings_with_body(
    spec: Dict[str, Any] = Body(...),
    user_id: Optional[str] = Depends(get_user_id),
    engine: SearchQueryEngine = Depends(get_search_engine),
) -> SearchPage:
    try:
        return await engine.search(spec, user_id=user_id)
    except DomainException as e:
        raise e.to_http_exception()


@router.post("/more", response_model=SearchPage)
async def search_more(
    payload: SearchMoreRequest,
    user_id: Optional[str] = Depends(get_user_id),
    engine: SearchQueryEngine = Depends(get_search_engine),
) -> SearchPage:
    try:
        return await engine.search_more(payload.spec, payload.page, user_id=user_id)
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/categories", response_model=CategoriesResponse)
async def list_categories(
    engine: SearchQueryEngine = Depends(get_search_engine),
) -> CategoriesResponse:
    try:
        return CategoriesResponse(categories=await engine.list_categories())
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/offers/trending", response_model=TrendingOffersResponse)
async def trending_offers(
    limit: int = Query(10, ge=0, le=100),
    engine: SearchQueryEngine = Depends(get_search_engine),
) -> TrendingOffersResponse:
    try:
        return TrendingOffersResponse(offers=await engine.trending_offers(limit))
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/suggestions", response_model=SuggestionBatch)
async def search_suggestions(
    q: str = Query("", max_length=200, description="Partially typed search text"),
    limit: Optional[int] = Query(None, ge=1, le=20),
    engine: SuggestionEngine = Depends(get_suggestion_engine),
) -> SuggestionBatch:
    """Autocomplete; fewer than two characters yields an empty batch."""
    try:
        return await engine.suggest(q, limit=limit)
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/popular", response_model=PopularSearchTermsResponse)
async def popular_search_terms(
    limit: Optional[int] = Query(None, ge=1, le=50, description="Defaults to 10 terms"),
    days: Optional[int] = Query(None, ge=1, le=365, description="Window in days, defaults to 30"),
    analytics: SearchAnalytics = Depends(get_search_analytics),
) -> PopularSearchTermsResponse:
    """Most searched terms, most searched first; empty when analytics are unavailable."""
    config = get_search_config()
    if days is None:
        days = config.popular_terms_days
    if limit is None:
        limit = config.popular_terms_limit
    terms = await analytics.popular_terms(limit=limit, days=days)
    return PopularSearchTermsResponse(days=days, terms=terms)


@router.get("/trends", response_model=SearchTrendsResponse)
async def search_trends(
    days: Optional[int] = Query(None, ge=1, le=365, description="Window in days, defaults to 30"),
    analytics: SearchAnalytics = Depends(get_search_analytics),
) -> SearchTrendsResponse:
    """Searches per day, oldest first; days without searches are absent."""
    if days is None:
        days = get_search_config().popular_terms_days
    return SearchTrendsResponse(days=days, trends=await analytics.search_trends(days=days))
