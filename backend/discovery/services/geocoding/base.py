"""Provider-agnostic geocoding interfaces."""

from abc import ABC, abstractmethod
import logging
from typing import Any, List, Optional

import httpx

from ...core.exceptions import GeocodingUnavailableException
from ...schemas.location import Coordinate, PlaceRecord, PlaceSearchHit

logger = logging.getLogger(__name__)


class GeocodingProvider(ABC):
    """
    Forward/reverse geocoding and free-text place search.

    Implementations return None (or []) when the provider answers without a
    match or with a non-200 status, and raise GeocodingUnavailableException
    when the provider cannot be reached at all.
    """

    name: str = "base"

    @abstractmethod
    async def geocode(self, address: str) -> Optional[PlaceRecord]:
        pass

    @abstractmethod
    async def reverse_geocode(self, lat: float, lng: float) -> Optional[PlaceRecord]:
        pass

    @abstractmethod
    async def search_places(
        self, query: str, bias: Optional[Coordinate] = None, limit: int = 10
    ) -> List[PlaceSearchHit]:
        pass


class HttpGeocodingProvider(GeocodingProvider):
    """Shared httpx plumbing for providers backed by a JSON HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport

    async def _get_json(self, path: str, params: dict[str, Any]) -> Optional[Any]:
        """GET {base_url}{path}; None on non-200 or undecodable bodies."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, headers=self.headers, transport=self._transport
            ) as client:
                resp = await client.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as exc:
            logger.warning(f"{self.name} geocoding request to {path} failed: {exc}")
            raise GeocodingUnavailableException(
                f"Geocoding provider '{self.name}' is unreachable",
                details={"provider": self.name},
            ) from exc

        if resp.status_code != 200:
            logger.info(f"{self.name} geocoding returned HTTP {resp.status_code} for {path}")
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning(f"{self.name} geocoding returned a non-JSON body for {path}")
            return None
