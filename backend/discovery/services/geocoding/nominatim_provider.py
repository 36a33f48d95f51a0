"""OpenStreetMap Nominatim geocoding provider (no API key required)."""

import logging
from typing import Any, List, Optional

import httpx

from ...core.config import settings
from ...schemas.location import Coordinate, PlaceRecord, PlaceSearchHit
from .base import HttpGeocodingProvider

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class NominatimProvider(HttpGeocodingProvider):
    name = "nominatim"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url or settings.nominatim_base_url,
            timeout=timeout or settings.geocoding_timeout_seconds,
            # Nominatim's usage policy rejects requests without an identifying User-Agent
            headers={"User-Agent": user_agent or settings.nominatim_user_agent},
            transport=transport,
        )

    async def geocode(self, address: str) -> Optional[PlaceRecord]:
        data = await self._get_json(
            "/search", {"format": "json", "q": address, "limit": 1, "addressdetails": 1}
        )
        if not isinstance(data, list) or not data:
            return None
        result = data[0]
        try:
            coordinate = Coordinate(latitude=float(result["lat"]), longitude=float(result["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Nominatim result without usable coordinates for '{address}'")
            return None
        return self._to_place(result, coordinate)

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[PlaceRecord]:
        data = await self._get_json(
            "/reverse", {"format": "json", "lat": lat, "lon": lng, "addressdetails": 1}
        )
        # Nominatim answers 200 with {"error": "Unable to geocode"} when nothing is there
        if not isinstance(data, dict) or not data or "error" in data:
            return None
        return self._to_place(data, Coordinate(latitude=lat, longitude=lng))

    async def search_places(
        self, query: str, bias: Optional[Coordinate] = None, limit: int = 10
    ) -> List[PlaceSearchHit]:
        params: dict[str, Any] = {"format": "json", "q": query, "limit": limit, "addressdetails": 1}
        if bias is not None:
            params["lat"] = bias.latitude
            params["lon"] = bias.longitude
        data = await self._get_json("/search", params)
        if not isinstance(data, list):
            return []

        hits: List[PlaceSearchHit] = []
        for result in data[:limit]:
            try:
                coordinate = Coordinate(latitude=float(result["lat"]), longitude=float(result["lon"]))
            except (KeyError, TypeError, ValueError):
                continue
            display_name = result.get("display_name", "")
            address = result.get("address") or {}
            hits.append(
                PlaceSearchHit(
                    place_id=str(result.get("place_id", "")),
                    name=result.get("name") or display_name.split(",")[0],
                    address=display_name,
                    coordinate=coordinate,
                    types=[result["type"]] if result.get("type") else [],
                    vicinity=address.get("neighbourhood") or address.get("suburb"),
                )
            )
        return hits

    @staticmethod
    def _to_place(result: dict[str, Any], coordinate: Coordinate) -> PlaceRecord:
        address = result.get("address") or {}
        display_name = result.get("display_name", "")
        place_id = result.get("place_id")
        return PlaceRecord(
            coordinate=coordinate,
            address=display_name,
            city=address.get("city") or address.get("town") or address.get("village") or UNKNOWN,
            region=address.get("state") or address.get("region") or UNKNOWN,
            country=address.get("country") or UNKNOWN,
            postal_code=address.get("postcode"),
            place_id=str(place_id) if place_id is not None else None,
            formatted_address=display_name or None,
        )
