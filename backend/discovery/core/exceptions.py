# backend/discovery/core/exceptions.py
"""
Domain-specific exceptions for the discovery engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.

Read paths (search, categories, suggestions, discovery sections) recover from
StoreUnavailableException locally; write paths let every exception here reach
the caller unchanged.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when a filter specification or other input is malformed. Never retried."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class NoMatchException(NotFoundException):
    """Raised when geocoding or reverse geocoding finds nothing."""

    def __init__(self, lookup: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=f"No location matched '{lookup}'",
            code="NO_MATCH",
            details={"lookup": lookup, **(details or {})},
        )
        self.lookup = lookup


class LocationUnavailableReason(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    POSITION_UNAVAILABLE = "position_unavailable"
    UNSUPPORTED = "unsupported"


_LOCATION_MESSAGES = {
    LocationUnavailableReason.PERMISSION_DENIED: "Location access denied by user",
    LocationUnavailableReason.TIMEOUT: "Location request timed out",
    LocationUnavailableReason.POSITION_UNAVAILABLE: "Location information unavailable",
    LocationUnavailableReason.UNSUPPORTED: "Location is not supported by this client",
}


class LocationUnavailableException(DomainException):
    """Raised when the device location provider cannot supply a coordinate."""

    def __init__(
        self,
        reason: LocationUnavailableReason,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message or _LOCATION_MESSAGES[reason],
            code="LOCATION_UNAVAILABLE",
            details={"reason": reason.value},
        )
        self.reason = reason

    @property
    def is_permission_denied(self) -> bool:
        return self.reason == LocationUnavailableReason.PERMISSION_DENIED

    def to_http_exception(self) -> HTTPException:
        self.status_code = (
            status.HTTP_403_FORBIDDEN
            if self.is_permission_denied
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return super().to_http_exception()


class ServiceException(DomainException):
    """Raised when a service operation fails."""


class GeocodingUnavailableException(ServiceException):
    """Raised when the geocoding provider cannot be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StoreUnavailableException(ServiceException):
    """Raised when the listing store is unreachable or returns an unexpected shape."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Listing store is unavailable", **kwargs: Any) -> None:
        super().__init__(message, code=kwargs.pop("code", "STORE_UNAVAILABLE"), **kwargs)


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
