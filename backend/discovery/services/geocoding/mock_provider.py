"""Mock geocoding provider for unit tests and local development (no network calls)."""

from typing import List, Optional

from ...schemas.location import Coordinate, PlaceRecord, PlaceSearchHit
from .base import GeocodingProvider

TIMES_SQUARE = Coordinate(latitude=40.7580, longitude=-73.9855)


class MockGeocodingProvider(GeocodingProvider):
    """
    Deterministic answers for any input.

    Addresses listed in ``no_match`` geocode to nothing, which lets callers
    exercise the no-match path without a network.
    """

    name = "mock"

    def __init__(self, no_match: Optional[set[str]] = None) -> None:
        self.no_match = {a.lower() for a in (no_match or set())}

    async def geocode(self, address: str) -> Optional[PlaceRecord]:
        if address.strip().lower() in self.no_match:
            return None
        return PlaceRecord(
            coordinate=TIMES_SQUARE,
            address=address or "1 Mock St, New York, NY 10036, USA",
            city="New York",
            region="NY",
            country="US",
            postal_code="10036",
            place_id="mock:geocode",
            formatted_address=address or "1 Mock St, New York, NY 10036, USA",
        )

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[PlaceRecord]:
        return PlaceRecord(
            coordinate=Coordinate(latitude=lat, longitude=lng),
            address="Reverse Mock Address, New York, NY 10036, USA",
            city="New York",
            region="NY",
            country="US",
            postal_code="10036",
            place_id="mock:reverse",
            formatted_address="Reverse Mock Address, New York, NY 10036, USA",
        )

    async def search_places(
        self, query: str, bias: Optional[Coordinate] = None, limit: int = 10
    ) -> List[PlaceSearchHit]:
        base = [
            PlaceSearchHit(
                place_id="mock:times_square",
                name="Times Square",
                address="Times Square, New York, NY 10036, USA",
                coordinate=TIMES_SQUARE,
                types=["poi"],
                vicinity="Midtown",
            ),
            PlaceSearchHit(
                place_id="mock:union_square",
                name="Union Square",
                address="Union Square, New York, NY 10003, USA",
                coordinate=Coordinate(latitude=40.7359, longitude=-73.9911),
                types=["poi"],
                vicinity="Union Square",
            ),
        ]
        return base[:limit]
