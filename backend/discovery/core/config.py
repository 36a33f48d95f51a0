# backend/discovery/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


FallbackPolicy = Literal["on_failure_or_empty", "on_failure", "disabled"]


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    # Listing store
    database_url: str = Field(
        default="sqlite:///./discovery.db",
        description="SQLAlchemy URL of the listing store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Geocoding/Maps providers
    geocoding_provider: str = Field(
        default="nominatim", description="Geocoding provider: google|nominatim|mock"
    )
    google_maps_api_key: str = Field(
        default="", description="Google Maps API key for geocoding/places"
    )
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL of the Nominatim (OpenStreetMap) API",
    )
    nominatim_user_agent: str = Field(
        default="listing-discovery/1.0",
        description="User-Agent sent to Nominatim (required by its usage policy)",
    )
    geocoding_timeout_seconds: float = Field(default=10.0, gt=0)
    reverse_geocode_precision: int = Field(
        default=4,
        ge=0,
        le=7,
        description="Decimal places used to round coordinates for the reverse geocode cache key",
    )

    # Geocode caches
    place_cache_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Backend for geocode caches: memory|redis"
    )
    redis_url: str = "redis://localhost:6379"
    place_cache_ttl_seconds: int = Field(default=60 * 60 * 24 * 7, ge=0)  # 7 days

    # IP geolocation (device location fallback)
    ip_geolocation_timeout_seconds: float = Field(default=5.0, gt=0)

    # Search
    search_default_limit: int = Field(default=20, gt=0)
    search_max_limit: int = Field(default=100, gt=0)
    search_default_radius_km: float = Field(default=50.0, gt=0)
    search_fallback_policy: FallbackPolicy = Field(
        default="on_failure_or_empty",
        description=(
            "When reads switch to the bundled sample dataset: on_failure_or_empty|on_failure|disabled"
        ),
    )
    listing_timezone: str = Field(
        default="America/New_York",
        description="Timezone used to evaluate listing operating hours",
    )
    store_failure_threshold: int = Field(default=5, gt=0)
    store_recovery_seconds: float = Field(default=30.0, gt=0)

    # Discovery
    nearby_radius_km: float = Field(default=5.0, gt=0)
    discovery_section_limit: int = Field(default=8, gt=0)
    recommendation_limit: int = Field(default=10, gt=0)
    trending_offers_limit: int = Field(default=8, gt=0)

    # Suggestions
    suggestion_min_chars: int = Field(default=2, ge=1)
    suggestion_limit: int = Field(default=5, gt=0)
    popular_term_suggestions: int = Field(
        default=2,
        ge=0,
        description="Popular search terms appended to suggestions as free text (0 disables)",
    )

    # Search analytics
    search_analytics_enabled: bool = Field(default=True, description="Record text searches")
    popular_terms_days: int = Field(default=30, gt=0)
    popular_terms_limit: int = Field(default=10, gt=0)

    is_testing: bool = Field(default=False, description="Set by the test suite")

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("geocoding_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or "nominatim"
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


settings = Settings()
