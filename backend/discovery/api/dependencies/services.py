# backend/discovery/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Store adapters, the circuit breaker, the location resolver and the engines
are process-wide singletons so caches and breaker state are shared by all
requests. Suggestion engines are per request: the stale-response guard
belongs to one input box, never to the whole process.
"""

from functools import lru_cache
import logging

from ...core.config import settings
from ...services.geocoding import create_geocoding_provider
from ...services.location.location_resolver import LocationResolver
from ...services.location.place_cache import create_place_cache
from ...services.search.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from ...services.search.config import get_search_config
from ...services.search.discovery_composer import DiscoveryComposer
from ...services.search.favorites_lookup import FavoritesLookup, SqlFavoritesLookup
from ...services.search.listing_store import ListingStore, SqlListingStore
from ...services.search.query_engine import SearchQueryEngine
from ...services.search.search_analytics import SearchAnalytics, SqlSearchAnalytics
from ...services.search.suggestion_engine import SuggestionEngine

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_listing_store() -> ListingStore:
    return SqlListingStore()


@lru_cache(maxsize=1)
def get_store_breaker() -> CircuitBreaker:
    config = get_search_config()
    return CircuitBreaker(
        name="listing_store",
        config=CircuitBreakerConfig(
            failure_threshold=config.store_failure_threshold,
            timeout_seconds=config.store_recovery_seconds,
        ),
    )


@lru_cache(maxsize=1)
def get_favorites_lookup() -> FavoritesLookup:
    return SqlFavoritesLookup()


@lru_cache(maxsize=1)
def get_search_analytics() -> SearchAnalytics:
    return SqlSearchAnalytics()


@lru_cache(maxsize=1)
def get_location_resolver() -> LocationResolver:
    provider = create_geocoding_provider()
    logger.info(
        f"Location resolver using {provider.name} geocoding with {settings.place_cache_backend} caches"
    )
    return LocationResolver(
        provider,
        forward_cache=create_place_cache("geocode"),
        reverse_cache=create_place_cache("reverse_geocode"),
    )


@lru_cache(maxsize=1)
def get_search_engine() -> SearchQueryEngine:
    return SearchQueryEngine(
        get_listing_store(),
        favorites=get_favorites_lookup(),
        analytics=get_search_analytics(),
        config=get_search_config(),
        breaker=get_store_breaker(),
    )


@lru_cache(maxsize=1)
def get_discovery_composer() -> DiscoveryComposer:
    return DiscoveryComposer(
        get_search_engine(),
        favorites=get_favorites_lookup(),
        config=get_search_config(),
    )


def get_suggestion_engine() -> SuggestionEngine:
    return SuggestionEngine(
        get_listing_store(),
        analytics=get_search_analytics(),
        config=get_search_config(),
        breaker=get_store_breaker(),
    )
