"""
SqlListingStore and SqlFavoritesLookup against a real SQLite database.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from discovery.core.exceptions import StoreUnavailableException
from discovery.schemas.search import SuggestionType
from discovery.services.search.favorites_lookup import SqlFavoritesLookup
from discovery.services.search.listing_store import SqlListingStore
from tests.factories.listing_rows import add_category, add_favorite, add_listing, add_offer


def _broken_factory():
    session = Mock()
    session.query.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
    return session


@pytest.fixture
def seeded(db):
    pizza = add_listing(db, "Mario's Pizza", tags=["pizza"], lat=40.7130, lng=-74.0062, ratings=[4.0, 5.0])
    add_listing(db, "Brew Cafe", category="Café")
    add_offer(db, pizza, "Two for one", used_count=12)
    add_category(db, "Restaurant", "Places to eat", "🍽️")
    return pizza


class TestSqlListingStore:
    @pytest.mark.asyncio
    async def test_fetch_listings_builds_records(self, session_factory, seeded):
        records = await SqlListingStore(session_factory).fetch_listings(query="pizza")

        assert len(records) == 1
        record = records[0]
        assert record.id == seeded.id
        assert record.tags == ["pizza"]
        assert sorted(record.review_ratings) == [4.0, 5.0]
        assert [offer.title for offer in record.offers] == ["Two for one"]

    @pytest.mark.asyncio
    async def test_fetch_listings_matches_tags_element_wise(self, db, session_factory, seeded):
        add_listing(db, "Le Petit Four", category="Bakery", tags=["crème brûlée", "éclair"])
        store = SqlListingStore(session_factory)

        accented = await store.fetch_listings(query="Brûlée")
        punctuation = await store.fetch_listings(query='", "')

        assert [record.name for record in accented] == ["Le Petit Four"]
        assert punctuation == []

    @pytest.mark.asyncio
    async def test_count_and_categories(self, session_factory, seeded):
        store = SqlListingStore(session_factory)

        assert await store.count_active_listings() == 2
        categories = {c.name: c for c in await store.fetch_category_counts()}
        assert categories["Restaurant"].icon == "🍽️"
        assert categories["Café"].count == 1

    @pytest.mark.asyncio
    async def test_active_offers_carry_listing_name(self, session_factory, seeded):
        offers = await SqlListingStore(session_factory).fetch_active_offers()

        assert [(offer.title, offer.listing_name) for offer in offers] == [("Two for one", "Mario's Pizza")]

    @pytest.mark.asyncio
    async def test_suggest_lists_listings_before_categories(self, db, session_factory, seeded):
        add_listing(db, "Cafe Luna", category="Café")

        suggestions = await SqlListingStore(session_factory).suggest("caf", 5, 3)

        assert [(s.type, s.text) for s in suggestions] == [
            (SuggestionType.LISTING.value, "Brew Cafe"),
            (SuggestionType.LISTING.value, "Cafe Luna"),
            (SuggestionType.CATEGORY.value, "Café"),
        ]
        assert suggestions[-1].count == 2

    @pytest.mark.asyncio
    async def test_database_failure_is_store_unavailable(self):
        with pytest.raises(StoreUnavailableException) as exc_info:
            await SqlListingStore(_broken_factory).fetch_listings()

        assert exc_info.value.details == {"operation": "fetch_listings"}


class TestSqlFavoritesLookup:
    @pytest.mark.asyncio
    async def test_reads_favorites(self, db, session_factory, seeded):
        add_favorite(db, "alice", seeded)
        lookup = SqlFavoritesLookup(session_factory)

        assert await lookup.favorited_ids("alice", [seeded.id, "other"]) == {seeded.id}
        assert await lookup.favorite_categories("alice") == ["Restaurant"]

    @pytest.mark.asyncio
    async def test_failure_is_store_unavailable(self):
        with pytest.raises(StoreUnavailableException):
            await SqlFavoritesLookup(_broken_factory).favorite_categories("alice")
