# backend/tests/routes/conftest.py
"""
Route fixtures: the real application with its service singletons replaced
by in-memory fakes through FastAPI dependency overrides.
"""

from fastapi.testclient import TestClient
import pytest

from discovery.api.dependencies import (
    get_discovery_composer,
    get_location_resolver,
    get_search_analytics,
    get_search_engine,
    get_store_breaker,
    get_suggestion_engine,
)
from discovery.main import app
from discovery.services.geocoding.mock_provider import MockGeocodingProvider
from discovery.services.location.location_resolver import LocationResolver
from discovery.services.location.place_cache import InMemoryPlaceCache
from discovery.services.search.circuit_breaker import CircuitBreaker
from discovery.services.search.config import SearchConfig
from discovery.services.search.discovery_composer import DiscoveryComposer
from discovery.services.search.query_engine import SearchQueryEngine
from discovery.services.search.search_analytics import SqlSearchAnalytics
from discovery.services.search.suggestion_engine import SuggestionEngine
from tests.factories.discovery_builders import (
    FIXED_NOW,
    FakeFavorites,
    FakeListingStore,
    make_listing,
    make_offer,
)


@pytest.fixture
def listing_store() -> FakeListingStore:
    return FakeListingStore(
        [
            make_listing(
                "r-1",
                "Mario's Pizza",
                tags=["pizza"],
                lat=40.7130,
                lng=-74.0062,
                ratings=[5.0],
                offers=[make_offer("o-1", "r-1", used_count=20)],
            ),
            make_listing("c-1", "Brew Cafe", category="Café", lat=40.80, lng=-73.80, ratings=[4.0]),
        ]
    )


@pytest.fixture
def breaker() -> CircuitBreaker:
    return CircuitBreaker(name="listing_store")


@pytest.fixture
def search_analytics(session_factory) -> SqlSearchAnalytics:
    return SqlSearchAnalytics(session_factory)


@pytest.fixture
def client(listing_store, breaker, session_factory, search_analytics):
    config = SearchConfig()
    favorites = FakeFavorites(favorited={"r-1"}, categories=["Café"])
    engine = SearchQueryEngine(
        listing_store,
        favorites=favorites,
        analytics=search_analytics,
        config=config,
        breaker=breaker,
        clock=lambda: FIXED_NOW,
    )
    composer = DiscoveryComposer(engine, favorites=favorites, config=config)
    resolver = LocationResolver(
        MockGeocodingProvider(no_match={"nowhere"}),
        session_factory=session_factory,
        forward_cache=InMemoryPlaceCache(),
        reverse_cache=InMemoryPlaceCache(),
    )

    app.dependency_overrides[get_search_engine] = lambda: engine
    app.dependency_overrides[get_discovery_composer] = lambda: composer
    app.dependency_overrides[get_suggestion_engine] = lambda: SuggestionEngine(
        listing_store, analytics=search_analytics, config=config, breaker=breaker
    )
    app.dependency_overrides[get_search_analytics] = lambda: search_analytics
    app.dependency_overrides[get_location_resolver] = lambda: resolver
    app.dependency_overrides[get_store_breaker] = lambda: breaker

    yield TestClient(app)

    app.dependency_overrides.clear()
