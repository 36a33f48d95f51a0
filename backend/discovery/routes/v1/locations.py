# backend/discovery/routes/v1/locations.py
"""
Location routes - API v1

Versioned location endpoints under /api/v1/locations.
All business logic delegated to LocationResolver.

Endpoints:
    POST /current                 → Current position (client-reported or IP based)
    GET /geocode                  → Address text → PlaceRecord
    GET /reverse                  → Coordinate → PlaceRecord
    GET /places/search            → Free-text place search
    GET /suggestions              → Address autocomplete
    GET /distance                 → Great-circle distance between two points
    GET /places                   → List saved places
    POST /places                  → Save a place
    PATCH /places/{place_id}      → Update a saved place
    DELETE /places/{place_id}     → Delete a saved place
    GET /history                  → Recent location history
    DELETE /history               → Clear location history
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ...api.dependencies import get_ip_from_request, get_location_resolver, get_user_id
from ...core.exceptions import DomainException
from ...models.place import SavedPlaceType
from ...schemas.location import (
    Coordinate,
    LocationHistoryResponse,
    PlaceRecord,
    SavedPlaceCreate,
    SavedPlaceResponse,
    SavedPlaceUpdate,
)
from ...schemas.responses import (
    AddressSuggestionsResponse,
    CurrentLocationRequest,
    DeleteResponse,
    DistanceResponse,
    PlaceSearchResponse,
)
from ...services.location.device_location import (
    ClientReportedLocationProvider,
    DeviceLocationProvider,
    IpGeolocationProvider,
)
from ...services.location.location_resolver import LocationResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["locations-v1"])


def require_user_id(user_id: Optional[str] = Depends(get_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Id header required")
    return user_id


def _bias(lat: Optional[float], lng: Optional[float]) -> Optional[Coordinate]:
    if lat is None or lng is None:
        return None
    return Coordinate(latitude=lat, longitude=lng)


@router.post("/current", response_model=PlaceRecord)
async def current_location(
    payload: CurrentLocationRequest,
    request: Request,
    user_id: Optional[str] = Depends(get_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> PlaceRecord:
    """
    Resolve the caller's current position into a place.

    Permission denied maps to 403, other device failures to 503. A position
    that cannot be reverse geocoded still succeeds with "Unknown" fields.
    """
    device: DeviceLocationProvider
    if payload.source == "ip":
        device = IpGeolocationProvider(get_ip_from_request(request))
    else:
        device = ClientReportedLocationProvider(
            payload.coordinate,
            permission=payload.permission,
            error=payload.error,
        )
    try:
        return await resolver.resolve_current_position(
            device, accuracy_hint=payload.accuracy_hint, user_id=user_id
        )
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/geocode", response_model=PlaceRecord)
async def geocode(
    address: str = Query(..., max_length=500),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> PlaceRecord:
    try:
        return await resolver.geocode(address)
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/reverse", response_model=PlaceRecord)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> PlaceRecord:
    try:
        return await resolver.reverse_geocode(Coordinate(latitude=lat, longitude=lng))
    except DomainException as e:
        raise e.to_http_exception()


@router.get("/places/search", response_model=PlaceSearchResponse)
async def search_places(
    q: str = Query(..., min_length=1, max_length=200),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    limit: int = Query(10, ge=1, le=20),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> PlaceSearchResponse:
    results = await resolver.search_places(q, bias=_bias(lat, lng), limit=limit)
    return PlaceSearchResponse(results=results)


@router.get("/suggestions", response_model=AddressSuggestionsResponse)
async def address_suggestions(
    q: str = Query("", max_length=200),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> AddressSuggestionsResponse:
    suggestions = await resolver.address_suggestions(q, bias=_bias(lat, lng))
    return AddressSuggestionsResponse(suggestions=suggestions)


@router.get("/distance", response_model=DistanceResponse)
def distance(
    from_lat: float = Query(..., ge=-90, le=90),
    from_lng: float = Query(..., ge=-180, le=180),
    to_lat: float = Query(..., ge=-90, le=90),
    to_lng: float = Query(..., ge=-180, le=180),
) -> DistanceResponse:
    km = LocationResolver.distance_km(
        Coordinate(latitude=from_lat, longitude=from_lng),
        Coordinate(latitude=to_lat, longitude=to_lng),
    )
    return DistanceResponse(distance_km=km, formatted=LocationResolver.format_distance(km))


# Saved places


@router.get("/places", response_model=List[SavedPlaceResponse])
async def list_saved_places(
    place_type: Optional[SavedPlaceType] = Query(None),
    user_id: str = Depends(require_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> List[SavedPlaceResponse]:
    try:
        return await resolver.list_places(user_id, place_type)
    except DomainException as e:
        raise e.to_http_exception()


@router.post("/places", response_model=SavedPlaceResponse, status_code=status.HTTP_201_CREATED)
async def save_place(
    payload: SavedPlaceCreate,
    user_id: str = Depends(require_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> SavedPlaceResponse:
    try:
        return await resolver.save_place(user_id, payload)
    except DomainException as e:
        raise e.to_http_exception()


@router.patch("/places/{place_id}", response_model=SavedPlaceResponse)
async def update_place(
    place_id: str,
    payload: SavedPlaceUpdate,
    user_id: str = Depends(require_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> SavedPlaceResponse:
    try:
        return await resolver.update_place(user_id, place_id, payload)
    except DomainException as e:
        raise e.to_http_exception()


@router.delete("/places/{place_id}", response_model=DeleteResponse)
async def delete_place(
    place_id: str,
    user_id: str = Depends(require_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> DeleteResponse:
    try:
        deleted = await resolver.delete_place(user_id, place_id)
    except DomainException as e:
        raise e.to_http_exception()
    return DeleteResponse(deleted=int(deleted))


# History


@router.get("/history", response_model=List[LocationHistoryResponse])
async def location_history(
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(require_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> List[LocationHistoryResponse]:
    try:
        return await resolver.list_history(user_id, limit)
    except DomainException as e:
        raise e.to_http_exception()


@router.delete("/history", response_model=DeleteResponse)
async def clear_location_history(
    user_id: str = Depends(require_user_id),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> DeleteResponse:
    try:
        return DeleteResponse(deleted=await resolver.clear_history(user_id))
    except DomainException as e:
        raise e.to_http_exception()
