# backend/discovery/routes/v1/discovery.py
"""
Discovery routes - API v1

Endpoints:
    GET /sections          → Discovery screen sections (nearby only with lat/lng)
    GET /recommendations   → Personalized listings for the caller
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_discovery_composer, get_user_id
from ...core.exceptions import DomainException, ValidationException
from ...schemas.location import Coordinate
from ...schemas.responses import RecommendationsResponse
from ...schemas.search import DiscoverySection
from ...services.search.discovery_composer import DiscoveryComposer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["discovery-v1"])


@router.get("/sections", response_model=List[DiscoverySection])
async def discovery_sections(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Caller latitude"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="Caller longitude"),
    user_id: Optional[str] = Depends(get_user_id),
    composer: DiscoveryComposer = Depends(get_discovery_composer),
) -> List[DiscoverySection]:
    """
    Sections in fixed order: trending, nearby, new, recommended, hot-deals.

    Sections that fail are left out rather than failing the request.
    """
    try:
        if (lat is None) != (lng is None):
            raise ValidationException("lat and lng must be provided together", code="INVALID_ORIGIN")
        origin = Coordinate(latitude=lat, longitude=lng) if lat is not None else None
        return await composer.compose(origin=origin, user_id=user_id)
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/recommendations", response_model=RecommendationsResponse)
async def recommendations(
    limit: Optional[int] = Query(None, ge=1, le=50),
    user_id: Optional[str] = Depends(get_user_id),
    composer: DiscoveryComposer = Depends(get_discovery_composer),
) -> RecommendationsResponse:
    try:
        return RecommendationsResponse(listings=await composer.recommendations(user_id, limit=limit))
    except DomainException as e:
        raise e.to_http_exception()
