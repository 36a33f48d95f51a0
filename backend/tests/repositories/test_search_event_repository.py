# backend/tests/repositories/test_search_event_repository.py
"""
Tests for SearchEventRepository recording and aggregates against SQLite.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from discovery.core.exceptions import RepositoryException
from discovery.models import SearchEvent
from discovery.repositories.search_event_repository import SearchEventRepository
from tests.factories.listing_rows import add_search_event

NOW = datetime(2024, 6, 5, 16, 0, tzinfo=timezone.utc)
WINDOW_START = NOW - timedelta(days=30)


@pytest.fixture
def seeded(db):
    add_search_event(db, "Pizza", user_id="alice", results_count=4, created_at=NOW - timedelta(days=1))
    add_search_event(db, "  pizza  ", user_id="bob", results_count=2, created_at=NOW - timedelta(days=2))
    add_search_event(db, "pizza", user_id="alice", results_count=0, created_at=NOW - timedelta(hours=3))
    add_search_event(db, "sushi", results_count=1, created_at=NOW - timedelta(hours=1))
    add_search_event(db, "tacos", user_id="carol", results_count=5, created_at=NOW - timedelta(days=40))


class TestRecord:
    def test_record_normalizes_the_term(self, db):
        repo = SearchEventRepository(db)

        with repo.transaction():
            repo.record("  Crème   Brûlée ", user_id="alice", filters={"open_now": True}, results_count=3)

        event = db.query(SearchEvent).one()
        assert event.search_term == "Crème   Brûlée"
        assert event.normalized_term == "crème brûlée"
        assert event.filters == {"open_now": True}
        assert event.degraded is False

    def test_empty_filters_are_stored_as_null(self, db):
        repo = SearchEventRepository(db)

        with repo.transaction():
            repo.record("pizza", filters={})

        assert db.query(SearchEvent).one().filters is None


class TestPopularTerms:
    def test_grouped_by_normalized_term_most_searched_first(self, db, seeded):
        terms = SearchEventRepository(db).popular_terms(WINDOW_START)

        assert [(t.term, t.search_count) for t in terms] == [("pizza", 3), ("sushi", 1)]
        pizza = terms[0]
        assert pizza.unique_users == 2
        assert pizza.average_results == 2.0
        assert pizza.last_searched.replace(tzinfo=None) == (NOW - timedelta(hours=3)).replace(tzinfo=None)
        assert terms[1].unique_users == 0

    def test_limit_and_containing(self, db, seeded):
        repo = SearchEventRepository(db)

        assert [t.term for t in repo.popular_terms(WINDOW_START, limit=1)] == ["pizza"]
        assert [t.term for t in repo.popular_terms(WINDOW_START, containing="SUSH")] == ["sushi"]
        assert repo.popular_terms(WINDOW_START, containing="%") == []

    def test_older_events_are_outside_the_window(self, db, seeded):
        terms = SearchEventRepository(db).popular_terms(NOW - timedelta(days=60))

        assert "tacos" in [t.term for t in terms]

    def test_database_error_becomes_repository_exception(self):
        session = Mock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(RepositoryException):
            SearchEventRepository(session).popular_terms(WINDOW_START)


class TestDailyCounts:
    def test_one_row_per_day_oldest_first(self, db, seeded):
        days = SearchEventRepository(db).daily_counts(WINDOW_START)

        assert [(d.date, d.searches) for d in days] == [
            (date(2024, 6, 3), 1),
            (date(2024, 6, 4), 1),
            (date(2024, 6, 5), 2),
        ]

    def test_no_events_means_no_days(self, db):
        assert SearchEventRepository(db).daily_counts(WINDOW_START) == []
