from __future__ import annotations

import asyncio
from typing import List

import pytest

from discovery.core.exceptions import StoreUnavailableException
from discovery.schemas.search import Suggestion, SuggestionType
from discovery.services.search.config import SearchConfig
from discovery.services.search.suggestion_engine import SuggestionEngine, local_suggestions
from tests.factories.discovery_builders import (
    FakeListingStore,
    FakeSearchAnalytics,
    make_listing,
    popular_term,
)


class BlockingStore(FakeListingStore):
    """Holds the first suggest() call until released."""

    def __init__(self) -> None:
        super().__init__([make_listing("a", "Pizza Palace"), make_listing("b", "Pita Place")])
        self.release = asyncio.Event()
        self.blocked_once = False

    async def suggest(self, text: str, listing_limit: int, category_limit: int) -> List[Suggestion]:
        if not self.blocked_once:
            self.blocked_once = True
            await self.release.wait()
        return await super().suggest(text, listing_limit, category_limit)


@pytest.fixture
def store() -> FakeListingStore:
    return FakeListingStore(
        [make_listing("a", "Pizza Palace"), make_listing("b", "Pita Place"), make_listing("c", "Sushi Bar")]
    )


class TestSuggest:
    @pytest.mark.asyncio
    async def test_single_character_does_not_hit_the_store(self, store) -> None:
        batch = await SuggestionEngine(store, config=SearchConfig()).suggest("p")

        assert batch.suggestions == []
        assert batch.stale is False
        assert store.call_count("suggest") == 0

    @pytest.mark.asyncio
    async def test_two_characters_make_exactly_one_lookup(self, store) -> None:
        batch = await SuggestionEngine(store, config=SearchConfig()).suggest("pi")

        assert store.call_count("suggest") == 1
        assert [s.text for s in batch.suggestions] == ["Pita Place", "Pizza Palace"]

    @pytest.mark.asyncio
    async def test_results_are_truncated_to_limit(self) -> None:
        many = [Suggestion(type=SuggestionType.FREE_TEXT, text=f"pizza {i}") for i in range(10)]
        engine = SuggestionEngine(FakeListingStore(suggestions=many), config=SearchConfig())

        batch = await engine.suggest("pizza", limit=3)

        assert [s.text for s in batch.suggestions] == ["pizza 0", "pizza 1", "pizza 2"]

    @pytest.mark.asyncio
    async def test_zero_limit_returns_no_suggestions(self) -> None:
        many = [Suggestion(type=SuggestionType.FREE_TEXT, text=f"pizza {i}") for i in range(10)]
        engine = SuggestionEngine(FakeListingStore(suggestions=many), config=SearchConfig())

        batch = await engine.suggest("pizza", limit=0)

        assert batch.suggestions == []
        assert batch.query == "pizza"

    @pytest.mark.asyncio
    async def test_store_failure_uses_local_table(self) -> None:
        engine = SuggestionEngine(FakeListingStore(fail=True), config=SearchConfig())

        batch = await engine.suggest("pizza")

        assert [s.text for s in batch.suggestions] == ["Mario's Pizza Palace", "pizza delivery"]

    @pytest.mark.asyncio
    async def test_store_failure_with_fallback_disabled_raises(self) -> None:
        engine = SuggestionEngine(FakeListingStore(fail=True), config=SearchConfig(fallback_policy="disabled"))

        with pytest.raises(StoreUnavailableException):
            await engine.suggest("pizza")

    @pytest.mark.asyncio
    async def test_generations_increase_per_call(self, store) -> None:
        engine = SuggestionEngine(store, config=SearchConfig())

        first = await engine.suggest("pi")
        second = await engine.suggest("p")

        assert second.generation == first.generation + 1


class TestPopularTermSuggestions:
    @pytest.mark.asyncio
    async def test_popular_terms_fill_remaining_slots(self, store) -> None:
        analytics = FakeSearchAnalytics(
            [
                popular_term("pizza palace", 9),
                popular_term("pizza delivery", 7),
                popular_term("cheap pizza", 4),
                popular_term("pizza near me", 2),
            ]
        )
        engine = SuggestionEngine(store, analytics=analytics, config=SearchConfig())

        batch = await engine.suggest("Pizza")

        assert [(s.type, s.text) for s in batch.suggestions] == [
            (SuggestionType.LISTING.value, "Pizza Palace"),
            (SuggestionType.FREE_TEXT.value, "pizza delivery"),
            (SuggestionType.FREE_TEXT.value, "cheap pizza"),
        ]
        assert batch.suggestions[1].count == 7
        assert analytics.popular_calls[0]["containing"] == "Pizza"

    @pytest.mark.asyncio
    async def test_full_store_results_skip_popular_terms(self) -> None:
        many = [Suggestion(type=SuggestionType.FREE_TEXT, text=f"pizza {i}") for i in range(10)]
        analytics = FakeSearchAnalytics([popular_term("pizza delivery", 7)])
        engine = SuggestionEngine(FakeListingStore(suggestions=many), analytics=analytics, config=SearchConfig())

        batch = await engine.suggest("pizza", limit=3)

        assert [s.text for s in batch.suggestions] == ["pizza 0", "pizza 1", "pizza 2"]
        assert analytics.popular_calls == []

    @pytest.mark.asyncio
    async def test_popular_terms_can_be_turned_off(self, store) -> None:
        analytics = FakeSearchAnalytics([popular_term("pizza delivery", 7)])
        engine = SuggestionEngine(
            store, analytics=analytics, config=SearchConfig(popular_term_suggestions=0)
        )

        batch = await engine.suggest("pizza")

        assert [s.text for s in batch.suggestions] == ["Pizza Palace"]

class TestStaleResponses:
    @pytest.mark.asyncio
    async def test_superseded_lookup_is_marked_stale(self) -> None:
        store = BlockingStore()
        engine = SuggestionEngine(store, config=SearchConfig())

        slow = asyncio.create_task(engine.suggest("pi"))
        await asyncio.sleep(0)
        latest = await engine.suggest("piz")
        store.release.set()
        stale = await slow

        assert stale.stale is True
        assert stale.suggestions == []
        assert latest.stale is False
        assert [s.text for s in latest.suggestions] == ["Pizza Palace"]

    @pytest.mark.asyncio
    async def test_explicit_supersede_discards_in_flight_lookup(self) -> None:
        store = BlockingStore()
        engine = SuggestionEngine(store, config=SearchConfig())

        pending = asyncio.create_task(engine.suggest("pi"))
        await asyncio.sleep(0)
        engine.supersede()
        store.release.set()

        assert (await pending).stale is True


def test_local_suggestions_are_case_insensitive() -> None:
    assert [s.text for s in local_suggestions("COFFEE")] == ["coffee near me"]
