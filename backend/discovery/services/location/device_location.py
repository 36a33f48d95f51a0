# backend/discovery/services/location/device_location.py
"""
Device location providers.

A provider answers "where is the caller right now?" with a Coordinate or
raises LocationUnavailableException with one of the fixed reasons. Two
sources are supported:

- ClientReportedLocationProvider: the client sends the coordinate its own
  positioning API produced, together with the permission state it observed.
- IpGeolocationProvider: coarse position from the caller's IP address
  (ipapi.co, falling back to ip-api.com).
"""

from abc import ABC, abstractmethod
import ipaddress
import logging
from typing import Any, Optional

import httpx

from ...core.config import settings
from ...core.exceptions import LocationUnavailableException, LocationUnavailableReason
from ...schemas.location import AccuracyHint, Coordinate, PermissionState
from .geo import is_valid_coordinate

logger = logging.getLogger(__name__)


class DeviceLocationProvider(ABC):
    @property
    @abstractmethod
    def permission_state(self) -> PermissionState:
        pass

    @abstractmethod
    async def current_coordinate(self, accuracy_hint: AccuracyHint = AccuracyHint.HIGH) -> Coordinate:
        """Raises LocationUnavailableException when no coordinate can be produced."""


class ClientReportedLocationProvider(DeviceLocationProvider):
    """Coordinate (or failure reason) reported by the client device."""

    def __init__(
        self,
        coordinate: Optional[Coordinate] = None,
        *,
        permission: PermissionState = PermissionState.GRANTED,
        error: Optional[LocationUnavailableReason] = None,
    ) -> None:
        self._coordinate = coordinate
        self._permission = permission
        self._error = error

    @property
    def permission_state(self) -> PermissionState:
        return self._permission

    async def current_coordinate(self, accuracy_hint: AccuracyHint = AccuracyHint.HIGH) -> Coordinate:
        if self._permission == PermissionState.DENIED:
            raise LocationUnavailableException(LocationUnavailableReason.PERMISSION_DENIED)
        if self._error is not None:
            raise LocationUnavailableException(self._error)
        if self._coordinate is None:
            raise LocationUnavailableException(LocationUnavailableReason.POSITION_UNAVAILABLE)
        return self._coordinate


class IpGeolocationProvider(DeviceLocationProvider):
    """
    City-level position from an IP address.

    The accuracy hint is accepted but ignored; IP lookups never do better than
    city level. Private and loopback addresses have no public position.
    """

    IPAPI_URL = "https://ipapi.co/{ip}/json/"
    IP_API_URL = "http://ip-api.com/json/{ip}"

    def __init__(
        self,
        ip_address: str,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.ip_address = ip_address
        self.timeout = timeout or settings.ip_geolocation_timeout_seconds
        self._transport = transport

    @property
    def permission_state(self) -> PermissionState:
        return PermissionState.GRANTED

    async def current_coordinate(self, accuracy_hint: AccuracyHint = AccuracyHint.LOW) -> Coordinate:
        if not self._is_valid_ip(self.ip_address):
            logger.warning(f"Invalid IP address format: {self.ip_address}")
            raise LocationUnavailableException(LocationUnavailableReason.UNSUPPORTED)
        if self._is_private_ip(self.ip_address):
            logger.debug(f"Skipping private IP: {self.ip_address}")
            raise LocationUnavailableException(
                LocationUnavailableReason.POSITION_UNAVAILABLE,
                "No public position for a private or loopback address",
            )

        timed_out = False
        for lookup in (self._lookup_ipapi, self._lookup_ipapi_com):
            try:
                coordinate = await lookup(self.ip_address)
            except httpx.TimeoutException as e:
                logger.warning(f"{lookup.__name__} timed out: {str(e)}")
                timed_out = True
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"{lookup.__name__} failed: {str(e)}")
                continue
            if coordinate is not None:
                logger.info(f"Geolocation lookup successful for {self.ip_address[:8]}...")
                return coordinate

        raise LocationUnavailableException(
            LocationUnavailableReason.TIMEOUT
            if timed_out
            else LocationUnavailableReason.POSITION_UNAVAILABLE
        )

    async def _get(self, url: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

    async def _lookup_ipapi(self, ip_address: str) -> Optional[Coordinate]:
        data = await self._get(self.IPAPI_URL.format(ip=ip_address))
        if data.get("error"):
            logger.warning(f"ipapi.co error: {data.get('reason', 'Unknown error')}")
            return None
        return self._coordinate(data.get("latitude"), data.get("longitude"))

    async def _lookup_ipapi_com(self, ip_address: str) -> Optional[Coordinate]:
        data = await self._get(self.IP_API_URL.format(ip=ip_address))
        if data.get("status") != "success":
            logger.warning(f"ip-api.com error: {data.get('message', 'Unknown error')}")
            return None
        return self._coordinate(data.get("lat"), data.get("lon"))

    @staticmethod
    def _coordinate(lat: Any, lng: Any) -> Optional[Coordinate]:
        if not is_valid_coordinate(lat, lng):
            return None
        return Coordinate(latitude=lat, longitude=lng)

    @staticmethod
    def _is_valid_ip(ip_address: str) -> bool:
        try:
            ipaddress.ip_address(ip_address)
            return True
        except ValueError:
            return False

    @staticmethod
    def _is_private_ip(ip_address: str) -> bool:
        try:
            ip = ipaddress.ip_address(ip_address)
            return ip.is_private or ip.is_loopback or ip.is_link_local
        except ValueError:
            return True
