# backend/discovery/services/search/config.py
"""
Tunables for search, suggestions and discovery sections.

A SearchConfig is a snapshot of the relevant Settings fields taken when an
engine is built; tests construct one directly to change behavior without
touching the environment.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any, Dict, Optional

from ...core.config import FallbackPolicy, settings


@dataclass
class SearchConfig:
    """Configuration for listing search and discovery."""

    default_limit: int = 20
    max_limit: int = 100
    default_radius_km: float = 50.0
    fallback_policy: FallbackPolicy = "on_failure_or_empty"
    listing_timezone: str = "America/New_York"

    # Listing store circuit
    store_failure_threshold: int = 5
    store_recovery_seconds: float = 30.0

    # Discovery sections
    nearby_radius_km: float = 5.0
    section_limit: int = 8
    recommendation_limit: int = 10
    trending_offers_limit: int = 8

    # Suggestions
    suggestion_min_chars: int = 2
    suggestion_limit: int = 5
    suggestion_listing_limit: int = 3
    suggestion_category_limit: int = 2
    popular_term_suggestions: int = 2

    # Search analytics
    analytics_enabled: bool = True
    popular_terms_days: int = 30
    popular_terms_limit: int = 10

    @classmethod
    def from_settings(cls) -> "SearchConfig":
        """Load configuration from application settings."""
        return cls(
            default_limit=settings.search_default_limit,
            max_limit=settings.search_max_limit,
            default_radius_km=settings.search_default_radius_km,
            fallback_policy=settings.search_fallback_policy,
            listing_timezone=settings.listing_timezone,
            store_failure_threshold=settings.store_failure_threshold,
            store_recovery_seconds=settings.store_recovery_seconds,
            nearby_radius_km=settings.nearby_radius_km,
            section_limit=settings.discovery_section_limit,
            recommendation_limit=settings.recommendation_limit,
            trending_offers_limit=settings.trending_offers_limit,
            suggestion_min_chars=settings.suggestion_min_chars,
            suggestion_limit=settings.suggestion_limit,
            popular_term_suggestions=settings.popular_term_suggestions,
            analytics_enabled=settings.search_analytics_enabled,
            popular_terms_days=settings.popular_terms_days,
            popular_terms_limit=settings.popular_terms_limit,
        )

    @property
    def falls_back_on_failure(self) -> bool:
        return self.fallback_policy != "disabled"

    @property
    def falls_back_on_empty(self) -> bool:
        return self.fallback_policy == "on_failure_or_empty"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return asdict(self)


# Thread-safe singleton pattern for config
_config: Optional[SearchConfig] = None
_config_lock = Lock()


def get_search_config() -> SearchConfig:
    """
    Get the search configuration singleton.

    Loads from settings on first access.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = SearchConfig.from_settings()
    return _config


def reset_search_config() -> SearchConfig:
    """Reload configuration from settings."""
    global _config
    with _config_lock:
        _config = SearchConfig.from_settings()
        return _config
