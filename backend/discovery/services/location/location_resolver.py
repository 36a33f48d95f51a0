# backend/discovery/services/location/location_resolver.py
"""
LocationResolver: converts between coordinates and human-readable places.

Responsibilities:
- Current device position, reverse geocoded into a PlaceRecord
- Forward and reverse geocoding through a pluggable provider, with caches
- Free-text place search and address suggestions (uncached)
- Distance math and formatting
- Owner-scoped saved places and append-only location history

Geocode caches only ever hold successful lookups. A no-match or an
unreachable provider leaves the cache untouched so the next call retries.
"""

import asyncio
import logging
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...core.config import settings
from ...core.exceptions import (
    GeocodingUnavailableException,
    NoMatchException,
    NotFoundException,
    RepositoryException,
    StoreUnavailableException,
    ValidationException,
)
from ...database import SessionLocal
from ...models.place import LocationHistoryEntry, SavedPlace, SavedPlaceType
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...repositories.place_repository import LocationHistoryRepository, SavedPlaceRepository
from ...schemas.location import (
    AccuracyHint,
    Coordinate,
    LocationHistoryResponse,
    PlaceRecord,
    PlaceSearchHit,
    SavedPlaceCreate,
    SavedPlaceResponse,
    SavedPlaceUpdate,
)
from ..base import BaseService
from ..geocoding.base import GeocodingProvider
from . import geo
from .device_location import DeviceLocationProvider
from .place_cache import InMemoryPlaceCache, PlaceCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

ADDRESS_SUGGESTION_MIN_CHARS = 3
DEFAULT_HISTORY_LIMIT = 10


def normalize_address_key(address: str) -> str:
    """Case- and whitespace-insensitive cache key for forward geocoding."""
    return " ".join(address.lower().split())


def coordinate_key(coordinate: Coordinate, precision: int) -> str:
    return f"{coordinate.latitude:.{precision}f},{coordinate.longitude:.{precision}f}"


def unknown_place(coordinate: Coordinate) -> PlaceRecord:
    """Bare record for a position that could not be reverse geocoded."""
    return PlaceRecord(
        coordinate=coordinate,
        address="Unknown Location",
        city="Unknown City",
        region="Unknown State",
        country="Unknown Country",
    )


class LocationResolver(BaseService):
    def __init__(
        self,
        provider: GeocodingProvider,
        *,
        session_factory: Optional[sessionmaker] = None,
        forward_cache: Optional[PlaceCache] = None,
        reverse_cache: Optional[PlaceCache] = None,
        reverse_precision: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.provider = provider
        self.session_factory = session_factory or SessionLocal
        self.forward_cache = forward_cache if forward_cache is not None else InMemoryPlaceCache()
        self.reverse_cache = reverse_cache if reverse_cache is not None else InMemoryPlaceCache()
        self.reverse_precision = (
            reverse_precision if reverse_precision is not None else settings.reverse_geocode_precision
        )

    # Current position

    @BaseService.measure_operation("resolve_current_position")
    async def resolve_current_position(
        self,
        device: DeviceLocationProvider,
        accuracy_hint: AccuracyHint = AccuracyHint.HIGH,
        user_id: Optional[str] = None,
    ) -> PlaceRecord:
        """
        Read the device position and reverse geocode it.

        Raises:
            LocationUnavailableException: the device provider could not supply a coordinate
        """
        coordinate = await device.current_coordinate(accuracy_hint)

        try:
            place = await self.reverse_geocode(coordinate)
        except (NoMatchException, GeocodingUnavailableException) as exc:
            self.logger.warning(f"Reverse geocoding failed for current position: {exc.message}")
            place = unknown_place(coordinate)

        if user_id:
            try:
                await self.append_history(user_id, coordinate, place.address)
            except StoreUnavailableException as exc:
                self.logger.warning(f"Could not record location history for {user_id}: {exc.message}")

        return place

    # Geocoding

    @BaseService.measure_operation("geocode")
    async def geocode(self, address_text: str) -> PlaceRecord:
        key = normalize_address_key(address_text or "")
        if not key:
            raise ValidationException("Address must not be empty", code="EMPTY_ADDRESS")

        cached = await self.forward_cache.get(key)
        prometheus_metrics.record_geocode_cache("forward", hit=cached is not None)
        if cached is not None:
            self.logger.debug(f"Geocode cache hit for '{key}'")
            return cached

        place = await self.provider.geocode(address_text.strip())
        if place is None:
            raise NoMatchException(address_text.strip())

        await self.forward_cache.put(key, place)
        return place

    @BaseService.measure_operation("reverse_geocode")
    async def reverse_geocode(self, coordinate: Coordinate) -> PlaceRecord:
        key = coordinate_key(coordinate, self.reverse_precision)

        cached = await self.reverse_cache.get(key)
        prometheus_metrics.record_geocode_cache("reverse", hit=cached is not None)
        if cached is not None:
            self.logger.debug(f"Reverse geocode cache hit for {key}")
            return cached

        place = await self.provider.reverse_geocode(coordinate.latitude, coordinate.longitude)
        if place is None:
            raise NoMatchException(key)

        await self.reverse_cache.put(key, place)
        return place

    @BaseService.measure_operation("search_places")
    async def search_places(
        self, query_text: str, bias: Optional[Coordinate] = None, limit: int = 10
    ) -> List[PlaceSearchHit]:
        """Free-text place search. Provider failures and empty answers both yield []."""
        if not query_text or not query_text.strip():
            return []
        try:
            return await self.provider.search_places(query_text.strip(), bias=bias, limit=limit)
        except GeocodingUnavailableException as exc:
            self.logger.warning(f"Place search failed for '{query_text}': {exc.message}")
            return []

    async def address_suggestions(self, text: str, bias: Optional[Coordinate] = None) -> List[str]:
        if not text or len(text.strip()) < ADDRESS_SUGGESTION_MIN_CHARS:
            return []
        hits = await self.search_places(text, bias=bias, limit=5)
        return [hit.address for hit in hits]

    # Distance helpers

    @staticmethod
    def distance_km(a: Coordinate, b: Coordinate) -> float:
        return geo.distance_km(a, b)

    @staticmethod
    def format_distance(km: float) -> str:
        return geo.format_distance(km)

    # Saved places

    @BaseService.measure_operation("save_place")
    async def save_place(
        self, user_id: Optional[str], data: SavedPlaceCreate
    ) -> Optional[SavedPlaceResponse]:
        if not user_id:
            return None

        def work(db: Session) -> SavedPlaceResponse:
            repo = SavedPlaceRepository(db)
            with repo.transaction():
                row = repo.create(
                    user_id=user_id,
                    name=data.name,
                    place_type=SavedPlaceType(data.place_type).value,
                    **self._place_columns(data.place),
                )
            return self._saved_place_response(row)

        return await self._run_in_session(work)

    @BaseService.measure_operation("update_place")
    async def update_place(
        self, user_id: Optional[str], place_id: str, data: SavedPlaceUpdate
    ) -> Optional[SavedPlaceResponse]:
        if not user_id:
            return None

        def work(db: Session) -> SavedPlaceResponse:
            repo = SavedPlaceRepository(db)
            row = repo.get_for_user(user_id, place_id)
            if row is None:
                raise NotFoundException(f"Saved place {place_id} not found", code="PLACE_NOT_FOUND")

            changes: dict = {}
            if data.name is not None:
                changes["name"] = data.name.strip()
            if data.place_type is not None:
                changes["place_type"] = SavedPlaceType(data.place_type).value
            if data.place is not None:
                changes.update(self._place_columns(data.place))

            with repo.transaction():
                repo.update(row, **changes)
            return self._saved_place_response(row)

        return await self._run_in_session(work)

    @BaseService.measure_operation("delete_place")
    async def delete_place(self, user_id: Optional[str], place_id: str) -> bool:
        if not user_id:
            return False

        def work(db: Session) -> bool:
            repo = SavedPlaceRepository(db)
            row = repo.get_for_user(user_id, place_id)
            if row is None:
                raise NotFoundException(f"Saved place {place_id} not found", code="PLACE_NOT_FOUND")
            with repo.transaction():
                repo.delete(row)
            return True

        return await self._run_in_session(work)

    @BaseService.measure_operation("list_places")
    async def list_places(
        self, user_id: Optional[str], place_type: Optional[SavedPlaceType] = None
    ) -> List[SavedPlaceResponse]:
        if not user_id:
            return []
        type_value = SavedPlaceType(place_type).value if place_type else None

        def work(db: Session) -> List[SavedPlaceResponse]:
            rows = SavedPlaceRepository(db).list_for_user(user_id, type_value)
            return [self._saved_place_response(row) for row in rows]

        return await self._run_in_session(work)

    # History

    @BaseService.measure_operation("append_history")
    async def append_history(
        self,
        user_id: Optional[str],
        coordinate: Coordinate,
        address: str,
        search_query: Optional[str] = None,
    ) -> Optional[LocationHistoryResponse]:
        if not user_id:
            return None

        def work(db: Session) -> LocationHistoryResponse:
            repo = LocationHistoryRepository(db)
            with repo.transaction():
                row = repo.create(
                    user_id=user_id,
                    latitude=coordinate.latitude,
                    longitude=coordinate.longitude,
                    address=address,
                    search_query=search_query,
                )
            return self._history_response(row)

        return await self._run_in_session(work)

    @BaseService.measure_operation("list_history")
    async def list_history(
        self, user_id: Optional[str], limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[LocationHistoryResponse]:
        if not user_id or limit <= 0:
            return []

        def work(db: Session) -> List[LocationHistoryResponse]:
            rows = LocationHistoryRepository(db).recent_for_user(user_id, limit)
            return [self._history_response(row) for row in rows]

        return await self._run_in_session(work)

    @BaseService.measure_operation("clear_history")
    async def clear_history(self, user_id: Optional[str]) -> int:
        """Delete every history entry of the user; returns how many were removed."""
        if not user_id:
            return 0

        def work(db: Session) -> int:
            repo = LocationHistoryRepository(db)
            with repo.transaction():
                return repo.delete_for_user(user_id)

        return await self._run_in_session(work)

    # Internals

    async def _run_in_session(self, work: Callable[[Session], T]) -> T:
        """Run a repository unit of work in a worker thread with its own session."""

        def run() -> T:
            db = self.session_factory()
            try:
                return work(db)
            finally:
                db.close()

        try:
            return await asyncio.to_thread(run)
        except (RepositoryException, SQLAlchemyError) as exc:
            self.logger.error(f"Location store operation failed: {str(exc)}")
            raise StoreUnavailableException("Location store is unavailable") from exc

    @staticmethod
    def _place_columns(place: PlaceRecord) -> dict:
        return {
            "latitude": place.coordinate.latitude,
            "longitude": place.coordinate.longitude,
            "address": place.formatted_address or place.address,
            "city": place.city,
            "region": place.region,
            "country": place.country,
            "postal_code": place.postal_code,
            "provider_place_id": place.place_id,
        }

    @staticmethod
    def _saved_place_response(row: SavedPlace) -> SavedPlaceResponse:
        return SavedPlaceResponse(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            place_type=SavedPlaceType(row.place_type),
            place=PlaceRecord(
                coordinate=Coordinate(latitude=row.latitude, longitude=row.longitude),
                address=row.address,
                city=row.city,
                region=row.region,
                country=row.country,
                postal_code=row.postal_code,
                place_id=row.provider_place_id,
                formatted_address=row.address or None,
            ),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _history_response(row: LocationHistoryEntry) -> LocationHistoryResponse:
        return LocationHistoryResponse(
            id=row.id,
            user_id=row.user_id,
            coordinate=Coordinate(latitude=row.latitude, longitude=row.longitude),
            address=row.address,
            search_query=row.search_query,
            accessed_at=row.accessed_at,
        )
