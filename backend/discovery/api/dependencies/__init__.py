# backend/discovery/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .identity import get_ip_from_request, get_user_id
from .services import (
    get_discovery_composer,
    get_favorites_lookup,
    get_listing_store,
    get_location_resolver,
    get_search_analytics,
    get_search_engine,
    get_store_breaker,
    get_suggestion_engine,
)

__all__ = [
    # Identity
    "get_user_id",
    "get_ip_from_request",
    # Services
    "get_listing_store",
    "get_store_breaker",
    "get_favorites_lookup",
    "get_location_resolver",
    "get_search_analytics",
    "get_search_engine",
    "get_suggestion_engine",
    "get_discovery_composer",
]
