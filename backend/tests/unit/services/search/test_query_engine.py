from __future__ import annotations

from datetime import timedelta

import pytest

from discovery.core.exceptions import StoreUnavailableException, ValidationException
from discovery.schemas.search import FilterSpecification, SortMode
from discovery.services.search.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from discovery.services.search.config import SearchConfig
from discovery.services.search.query_engine import SearchQueryEngine
from tests.factories.discovery_builders import (
    FIXED_NOW,
    NYC,
    FakeFavorites,
    FakeListingStore,
    FakeSearchAnalytics,
    make_listing,
    make_offer,
)


def _engine(store, config=None, favorites=None, breaker=None, analytics=None) -> SearchQueryEngine:
    return SearchQueryEngine(
        store,
        favorites=favorites,
        analytics=analytics,
        config=config or SearchConfig(),
        breaker=breaker,
        clock=lambda: FIXED_NOW,
    )


def _near_listings():
    # Roughly increasing distance from lower Manhattan
    return [
        make_listing("l-4", "Delta", lat=40.80, lng=-73.95),
        make_listing("l-1", "Alpha", lat=40.7130, lng=-74.0062),
        make_listing("l-3", "Charlie", lat=40.75, lng=-73.98),
        make_listing("l-2", "Bravo", lat=40.72, lng=-74.00),
        make_listing("l-5", "Echo"),
    ]


class TestNormalize:
    def test_defaults_are_filled_in(self) -> None:
        engine = _engine(FakeListingStore())

        spec = engine.normalize({"location": {"coordinate": {"latitude": NYC[0], "longitude": NYC[1]}}})

        assert spec.limit == 20
        assert spec.location.radius_km == 50.0

    @pytest.mark.parametrize(
        "raw",
        [
            {"limit": 0},
            {"offset": -1},
            {"sort_by": "distance"},
            {"price_range": {"min": 10, "max": 1}},
            {"location": {"coordinate": {"latitude": 91, "longitude": 0}}},
            {"sort_by": "cheapest"},
        ],
    )
    def test_malformed_input_raises_validation(self, raw) -> None:
        with pytest.raises(ValidationException) as exc_info:
            _engine(FakeListingStore()).normalize(raw)

        assert exc_info.value.code == "INVALID_FILTERS"
        assert exc_info.value.details["errors"]

    def test_limit_above_maximum_is_rejected(self) -> None:
        with pytest.raises(ValidationException):
            _engine(FakeListingStore()).normalize({"limit": 101})

    def test_popularity_alias(self) -> None:
        assert _engine(FakeListingStore()).normalize({"sort_by": "popularity"}).sort_by == SortMode.POPULAR


class TestSearch:
    @pytest.mark.asyncio
    async def test_distance_sort_is_non_decreasing(self) -> None:
        engine = _engine(FakeListingStore(_near_listings()))

        page = await engine.search(
            {
                "sort_by": "distance",
                "location": {"coordinate": {"latitude": NYC[0], "longitude": NYC[1]}, "radius_km": 25},
            }
        )

        distances = [r.distance_km for r in page.results]
        assert [r.id for r in page.results] == ["l-1", "l-2", "l-3", "l-4"]
        assert distances == sorted(distances)
        assert page.degraded is False

    @pytest.mark.asyncio
    async def test_short_page_has_no_more(self) -> None:
        engine = _engine(FakeListingStore(_near_listings()))

        page = await engine.search({"limit": 10})

        assert len(page.results) == 5
        assert page.total == 5
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_full_page_reports_more(self) -> None:
        engine = _engine(FakeListingStore(_near_listings()))

        page = await engine.search({"limit": 2})

        assert [r.id for r in page.results] == ["l-1", "l-2"]
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_consecutive_pages_concatenate_without_duplicates(self) -> None:
        listings = [make_listing(f"l-{i:02d}", ratings=[4 + (i % 3) / 2]) for i in range(25)]
        engine = _engine(FakeListingStore(listings))

        first = await engine.search({"sort_by": "rating", "limit": 10})
        second = await engine.search_more({"sort_by": "rating", "limit": 10}, first)
        combined = await engine.search({"sort_by": "rating", "limit": 20})

        ids = [r.id for r in first.results + second.results]
        assert second.offset == 10
        assert ids == [r.id for r in combined.results]
        assert len(set(ids)) == 20

    @pytest.mark.asyncio
    async def test_text_and_category_filters(self) -> None:
        store = FakeListingStore(
            [
                make_listing("a", "Pizza Place", category="Restaurant"),
                make_listing("b", "Pizza Bar", category="Bar"),
                make_listing("c", "Noodle House", category="Restaurant"),
                make_listing("d", "Pizza Closed", category="Restaurant", status="suspended"),
            ]
        )

        page = await _engine(store).search({"query": "pizza", "categories": ["Restaurant"]})

        assert [r.id for r in page.results] == ["a"]

    @pytest.mark.asyncio
    async def test_favorites_are_marked_for_signed_in_user(self) -> None:
        engine = _engine(FakeListingStore(_near_listings()), favorites=FakeFavorites(favorited={"l-2"}))

        page = await engine.search({}, user_id="user-1")
        anonymous = await engine.search({})

        assert [r.id for r in page.results if r.is_favorited] == ["l-2"]
        assert not any(r.is_favorited for r in anonymous.results)

    @pytest.mark.asyncio
    async def test_favorites_outage_leaves_results_unmarked(self) -> None:
        engine = _engine(FakeListingStore(_near_listings()), favorites=FakeFavorites(fail=True))

        page = await engine.search({}, user_id="user-1")

        assert len(page.results) == 5
        assert not any(r.is_favorited for r in page.results)


class TestFallback:
    @pytest.mark.asyncio
    async def test_unreachable_store_serves_sample_listings(self) -> None:
        engine = _engine(FakeListingStore(fail=True))

        page = await engine.search({"query": "pizza"})

        assert page.degraded is True
        assert page.has_more is False
        assert [r.id for r in page.results] == ["mock-biz-1"]
        assert page.results[0].name == "Mario's Pizza Palace"

    @pytest.mark.asyncio
    async def test_empty_store_serves_sample_listings(self) -> None:
        engine = _engine(FakeListingStore())

        page = await engine.search({})

        assert page.degraded is True
        assert page.total == 5

    @pytest.mark.asyncio
    async def test_no_match_in_populated_store_is_an_honest_empty_page(self) -> None:
        store = FakeListingStore(_near_listings())

        page = await _engine(store).search({"query": "sushi"})

        assert page.results == []
        assert page.degraded is False

    @pytest.mark.asyncio
    async def test_on_failure_policy_keeps_empty_results(self) -> None:
        engine = _engine(FakeListingStore(), config=SearchConfig(fallback_policy="on_failure"))

        page = await engine.search({})

        assert page.results == []
        assert page.degraded is False

    @pytest.mark.asyncio
    async def test_disabled_policy_surfaces_store_failure(self) -> None:
        engine = _engine(FakeListingStore(fail=True), config=SearchConfig(fallback_policy="disabled"))

        with pytest.raises(StoreUnavailableException):
            await engine.search({"query": "pizza"})

    @pytest.mark.asyncio
    async def test_open_circuit_skips_the_store(self) -> None:
        store = FakeListingStore(fail=True)
        breaker = CircuitBreaker(
            name="listing_store", config=CircuitBreakerConfig(failure_threshold=2, timeout_seconds=60)
        )
        engine = _engine(store, breaker=breaker)

        for _ in range(3):
            page = await engine.search({})
            assert page.degraded is True

        assert store.call_count("fetch_listings") == 2

    @pytest.mark.asyncio
    async def test_fallback_applies_the_same_filters_and_sort(self) -> None:
        engine = _engine(FakeListingStore(fail=True))

        page = await engine.search({"categories": ["Restaurant"], "sort_by": "rating"})

        assert [r.id for r in page.results] == ["mock-biz-1", "mock-biz-5"]


class TestSearchRecording:
    @pytest.mark.asyncio
    async def test_text_search_is_recorded_with_its_filters(self) -> None:
        analytics = FakeSearchAnalytics()
        engine = _engine(FakeListingStore(_near_listings()), analytics=analytics)

        page = await engine.search(
            {"query": "  Alpha ", "categories": ["Restaurant"], "limit": 2}, user_id="user-1"
        )

        assert len(analytics.recorded) == 1
        event = analytics.recorded[0]
        assert event["search_term"] == "Alpha"
        assert event["user_id"] == "user-1"
        assert event["filters"] == {"categories": ["Restaurant"]}
        assert event["results_count"] == page.total == 1
        assert event["degraded"] is False
        assert event["search_time_ms"] >= 0

    @pytest.mark.asyncio
    async def test_browsing_and_later_pages_are_not_recorded(self) -> None:
        analytics = FakeSearchAnalytics()
        engine = _engine(FakeListingStore(_near_listings()), analytics=analytics)

        await engine.search({})
        first = await engine.search({"query": "a", "limit": 2})
        await engine.search_more({"query": "a", "limit": 2}, first)

        assert [event["search_term"] for event in analytics.recorded] == ["a"]

    @pytest.mark.asyncio
    async def test_degraded_search_is_recorded_as_degraded(self) -> None:
        analytics = FakeSearchAnalytics()
        engine = _engine(FakeListingStore(fail=True), analytics=analytics)

        await engine.search({"query": "pizza"})

        assert analytics.recorded[0]["degraded"] is True

    @pytest.mark.asyncio
    async def test_analytics_outage_does_not_fail_the_search(self) -> None:
        engine = _engine(FakeListingStore(_near_listings()), analytics=FakeSearchAnalytics(fail=True))

        page = await engine.search({"query": "alpha"})

        assert [r.id for r in page.results] == ["l-1"]

    @pytest.mark.asyncio
    async def test_recording_can_be_disabled(self) -> None:
        analytics = FakeSearchAnalytics()
        engine = _engine(
            FakeListingStore(_near_listings()),
            config=SearchConfig(analytics_enabled=False),
            analytics=analytics,
        )

        await engine.search({"query": "alpha"})

        assert analytics.recorded == []

class TestCategoriesAndOffers:
    @pytest.mark.asyncio
    async def test_categories_sorted_by_count_then_name(self) -> None:
        store = FakeListingStore(
            [
                make_listing("a", category="Wellness"),
                make_listing("b", category="Café"),
                make_listing("c", category="Café"),
                make_listing("d", category="Bakery"),
            ]
        )

        categories = await _engine(store).list_categories()

        assert [(c.name, c.count) for c in categories] == [("Café", 2), ("Bakery", 1), ("Wellness", 1)]

    @pytest.mark.asyncio
    async def test_categories_fall_back_on_failure(self) -> None:
        categories = await _engine(FakeListingStore(fail=True)).list_categories()

        assert categories[0].name == "Restaurant"
        assert categories[0].count == 2

    @pytest.mark.asyncio
    async def test_trending_offers_are_current_and_most_used_first(self) -> None:
        store = FakeListingStore(
            [
                make_listing(
                    "a",
                    offers=[
                        make_offer("o-1", "a", used_count=5),
                        make_offer("o-2", "a", used_count=40),
                        make_offer("o-3", "a", used_count=99, status="paused"),
                        make_offer("o-4", "a", used_count=80, ends=FIXED_NOW - timedelta(minutes=1)),
                    ],
                ),
                make_listing("b", offers=[make_offer("o-5", "b", used_count=40)]),
            ]
        )

        offers = await _engine(store).trending_offers(limit=2)

        assert [o.id for o in offers] == ["o-2", "o-5"]
        assert all(o.is_trending for o in offers)
        assert offers[0].popularity_score == 40

    @pytest.mark.asyncio
    async def test_trending_offers_fall_back_on_failure(self) -> None:
        offers = await _engine(FakeListingStore(fail=True)).trending_offers(limit=3)

        assert [o.id for o in offers] == ["mock-1", "mock-2", "mock-5"]
        assert offers[0].listing_name == "Mario's Pizza Palace"
