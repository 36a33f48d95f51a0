from .base import GeocodingProvider
from .factory import create_geocoding_provider

__all__ = ["GeocodingProvider", "create_geocoding_provider"]
