"""Google Maps geocoding provider."""

import logging
from typing import Any, List, Optional

import httpx

from ...core.config import settings
from ...schemas.location import Coordinate, PlaceRecord, PlaceSearchHit
from .base import HttpGeocodingProvider

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class GoogleMapsProvider(HttpGeocodingProvider):
    name = "google"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            "https://maps.googleapis.com/maps/api",
            timeout=timeout or settings.geocoding_timeout_seconds,
            transport=transport,
        )
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key

    async def geocode(self, address: str) -> Optional[PlaceRecord]:
        data = await self._get_json("/geocode/json", {"address": address, "key": self.api_key})
        if not data or not data.get("results"):
            return None
        return self._parse_result(data["results"][0])

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[PlaceRecord]:
        data = await self._get_json(
            "/geocode/json", {"latlng": f"{lat},{lng}", "key": self.api_key}
        )
        if not data or not data.get("results"):
            return None
        return self._parse_result(data["results"][0], coordinate=Coordinate(latitude=lat, longitude=lng))

    async def search_places(
        self, query: str, bias: Optional[Coordinate] = None, limit: int = 10
    ) -> List[PlaceSearchHit]:
        params: dict[str, Any] = {"query": query, "key": self.api_key}
        if bias is not None:
            params["location"] = f"{bias.latitude},{bias.longitude}"
            params["radius"] = 50000
        data = await self._get_json("/place/textsearch/json", params)
        if not data:
            return []

        hits: List[PlaceSearchHit] = []
        for result in data.get("results", [])[:limit]:
            loc = result.get("geometry", {}).get("location", {})
            if "lat" not in loc or "lng" not in loc:
                continue
            hits.append(
                PlaceSearchHit(
                    place_id=self._format_provider_id(result.get("place_id", "")),
                    name=result.get("name") or result.get("formatted_address", "").split(",")[0],
                    address=result.get("formatted_address") or result.get("vicinity", ""),
                    coordinate=Coordinate(latitude=loc["lat"], longitude=loc["lng"]),
                    types=result.get("types", []),
                    rating=result.get("rating"),
                    vicinity=result.get("vicinity"),
                )
            )
        return hits

    def _parse_result(
        self, result: dict[str, Any], coordinate: Optional[Coordinate] = None
    ) -> Optional[PlaceRecord]:
        comps: dict[str, str] = {}
        short_comps: dict[str, str] = {}
        for c in result.get("address_components") or []:
            long_name = c.get("long_name")
            short_name = c.get("short_name")
            for t in c.get("types", []):
                if isinstance(long_name, str) and long_name:
                    comps[t] = long_name
                if isinstance(short_name, str) and short_name:
                    short_comps[t] = short_name

        if coordinate is None:
            loc = result.get("geometry", {}).get("location", {})
            if "lat" not in loc or "lng" not in loc:
                logger.warning("Google geocode result without geometry; ignoring")
                return None
            coordinate = Coordinate(latitude=loc["lat"], longitude=loc["lng"])

        formatted = result.get("formatted_address", "")
        return PlaceRecord(
            coordinate=coordinate,
            address=formatted,
            city=comps.get("locality") or comps.get("postal_town") or comps.get("sublocality") or UNKNOWN,
            region=short_comps.get("administrative_area_level_1")
            or comps.get("administrative_area_level_1")
            or UNKNOWN,
            country=comps.get("country") or UNKNOWN,
            postal_code=comps.get("postal_code"),
            place_id=self._format_provider_id(result.get("place_id", "")) or None,
            formatted_address=formatted or None,
        )

    @staticmethod
    def _format_provider_id(place_id: str) -> str:
        if not place_id:
            return ""
        return place_id if place_id.startswith("google:") else f"google:{place_id}"
