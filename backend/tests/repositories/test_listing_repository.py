# backend/tests/repositories/test_listing_repository.py
"""
Tests for ListingRepository candidate selection against SQLite.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from discovery.core.exceptions import RepositoryException
from discovery.repositories.listing_repository import ListingRepository
from discovery.schemas.location import Coordinate
from discovery.services.location.geo import bounding_box
from tests.factories.listing_rows import add_category, add_listing, add_offer


@pytest.fixture
def seeded(db):
    pizza = add_listing(db, "Mario's Pizza", tags=["pizza", "italian"], lat=40.7130, lng=-74.0062, ratings=[4, 5])
    cafe = add_listing(db, "Brew Cafe", category="Café", description="Espresso bar", lat=40.7580, lng=-73.9855)
    spa = add_listing(db, "Quiet Spa", category="Wellness", lat=34.05, lng=-118.24)
    closed = add_listing(db, "Old Pizza Shack", status="suspended")
    return {"pizza": pizza, "cafe": cafe, "spa": spa, "closed": closed}


class TestSearchCandidates:
    def test_returns_only_active_listings_in_id_order(self, db, seeded):
        rows = ListingRepository(db).search_candidates()

        assert [row.id for row in rows] == sorted(
            [seeded["pizza"].id, seeded["cafe"].id, seeded["spa"].id]
        )

    def test_text_matches_tags_case_insensitively(self, db, seeded):
        rows = ListingRepository(db).search_candidates(query="PIZZA")

        assert [row.name for row in rows] == ["Mario's Pizza"]

    def test_text_matches_description(self, db, seeded):
        rows = ListingRepository(db).search_candidates(query="espresso")

        assert [row.name for row in rows] == ["Brew Cafe"]

    def test_like_wildcards_are_literal(self, db, seeded):
        assert ListingRepository(db).search_candidates(query="%") == []

    def test_text_matches_accented_tag(self, db, seeded):
        add_listing(db, "Le Petit Four", category="Bakery", tags=["crème brûlée", "macarons"])

        rows = ListingRepository(db).search_candidates(query="BRÛLÉE")

        assert [row.name for row in rows] == ["Le Petit Four"]

    def test_text_matches_accented_name_case_insensitively(self, db, seeded):
        add_listing(db, "CAFÉ OLÉ")

        rows = ListingRepository(db).search_candidates(query="café")

        assert [row.name for row in rows] == ["CAFÉ OLÉ"]

    def test_text_does_not_match_across_tag_boundaries(self, db, seeded):
        add_listing(db, "Numbers", tags=["one", "two"])

        assert ListingRepository(db).search_candidates(query='", "') == []
        assert ListingRepository(db).search_candidates(query='one", "two') == []
        assert ListingRepository(db).search_candidates(query="[") == []

    def test_search_text_follows_tag_updates(self, db, seeded):
        seeded["spa"].tags = ["sauna"]
        db.commit()

        rows = ListingRepository(db).search_candidates(query="sauna")

        assert [row.name for row in rows] == ["Quiet Spa"]

    def test_category_filter(self, db, seeded):
        rows = ListingRepository(db).search_candidates(categories=["Café", "Wellness"])

        assert {row.name for row in rows} == {"Brew Cafe", "Quiet Spa"}

    def test_bbox_excludes_far_listings(self, db, seeded):
        box = bounding_box(Coordinate(latitude=40.7128, longitude=-74.0060), 10)

        rows = ListingRepository(db).search_candidates(bbox=box)

        assert {row.name for row in rows} == {"Mario's Pizza", "Brew Cafe"}

    def test_reviews_are_loaded(self, db, seeded):
        rows = ListingRepository(db).search_candidates(query="mario")

        assert sorted(review.rating for review in rows[0].reviews) == [4, 5]

    def test_database_error_becomes_repository_exception(self):
        session = Mock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(RepositoryException):
            ListingRepository(session).search_candidates()


class TestAggregates:
    def test_count_active(self, db, seeded):
        assert ListingRepository(db).count_active() == 3

    def test_category_counts_join_display_metadata(self, db, seeded):
        add_listing(db, "Noodle Bar")
        add_category(db, "Restaurant", "Places to eat", "🍽️")

        counts = {
            name: (count, description, icon)
            for name, count, description, icon in ListingRepository(db).category_counts()
        }

        assert counts["Restaurant"] == (2, "Places to eat", "🍽️")
        assert counts["Café"] == (1, None, None)
        assert "Retail" not in counts

    def test_active_offers_skip_paused_and_suspended(self, db, seeded):
        live = add_offer(db, seeded["pizza"], "Two for one", used_count=10)
        add_offer(db, seeded["pizza"], "Paused deal", status="paused")
        add_offer(db, seeded["closed"], "Hidden deal")

        offers = ListingRepository(db).active_offers()

        assert [offer.id for offer in offers] == [live.id]
        assert offers[0].listing.name == "Mario's Pizza"


class TestSuggest:
    def test_listing_and_category_matches(self, db, seeded):
        add_listing(db, "Cafe Luna", category="Café")

        listings, categories = ListingRepository(db).suggest("caf", listing_limit=5, category_limit=3)

        assert [name for _, name, _ in listings] == ["Brew Cafe", "Cafe Luna"]
        assert categories == [("Café", 2)]

    def test_limits_are_applied(self, db, seeded):
        for index in range(4):
            add_listing(db, f"Pizza Place {index}")

        listings, _ = ListingRepository(db).suggest("pizza", listing_limit=2, category_limit=3)

        assert len(listings) == 2

    def test_accented_names_and_categories_match_case_insensitively(self, db, seeded):
        add_listing(db, "CAFÉ OLÉ", category="CRÊPERIE")
        add_listing(db, "Olive Grove", description="Next to the café")

        repo = ListingRepository(db)
        listings, _ = repo.suggest("café", listing_limit=5, category_limit=3)
        _, categories = repo.suggest("crêpe", listing_limit=5, category_limit=3)

        assert [name for _, name, _ in listings] == ["CAFÉ OLÉ"]
        assert categories == [("CRÊPERIE", 1)]
