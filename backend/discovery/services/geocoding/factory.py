"""Factory for geocoding providers."""

import logging
from typing import Optional

from ...core.config import settings
from .base import GeocodingProvider
from .google_provider import GoogleMapsProvider
from .mock_provider import MockGeocodingProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)


def create_geocoding_provider(provider_override: Optional[str] = None) -> GeocodingProvider:
    name = (provider_override or settings.geocoding_provider or "nominatim").lower()
    provider: GeocodingProvider
    if name == "google":
        provider = GoogleMapsProvider()
    elif name == "mock":
        provider = MockGeocodingProvider()
    elif name == "nominatim":
        provider = NominatimProvider()
    else:
        logger.warning(f"Unknown geocoding provider '{name}', using nominatim")
        provider = NominatimProvider()
    return provider
