from __future__ import annotations

from datetime import datetime, timezone

from discovery.schemas.search import ListingResult, SortMode
from discovery.services.search.ranking import sort_results


def _result(listing_id: str, name: str = "", **fields) -> ListingResult:
    created = fields.pop("created_at", datetime(2024, 1, 1, tzinfo=timezone.utc))
    return ListingResult(
        id=listing_id,
        name=name or listing_id,
        category="Restaurant",
        created_at=created,
        updated_at=created,
        **fields,
    )


def _ids(results) -> list[str]:
    return [r.id for r in results]


class TestSortResults:
    def test_relevance_keeps_store_order(self) -> None:
        results = [_result("c"), _result("a"), _result("b")]
        assert _ids(sort_results(results, SortMode.RELEVANCE)) == ["c", "a", "b"]

    def test_distance_ascending_with_unknown_last(self) -> None:
        results = [
            _result("far", distance_km=9.0),
            _result("unknown"),
            _result("near", distance_km=0.5),
            _result("tie-b", "Bravo", distance_km=2.0),
            _result("tie-a", "alpha", distance_km=2.0),
        ]
        assert _ids(sort_results(results, SortMode.DISTANCE)) == ["near", "tie-a", "tie-b", "far", "unknown"]

    def test_rating_then_review_count_then_id(self) -> None:
        results = [
            _result("b", rating=4.5, review_count=10),
            _result("a", rating=4.5, review_count=10),
            _result("c", rating=4.5, review_count=200),
            _result("d", rating=4.9, review_count=1),
        ]
        assert _ids(sort_results(results, SortMode.RATING)) == ["d", "c", "a", "b"]

    def test_newest_first(self) -> None:
        results = [
            _result("old", created_at=datetime(2022, 1, 1, tzinfo=timezone.utc)),
            _result("new", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc)),
            _result("naive", created_at=datetime(2023, 1, 1)),
        ]
        assert _ids(sort_results(results, SortMode.NEWEST)) == ["new", "naive", "old"]

    def test_popular_by_active_offer_usage(self) -> None:
        results = [_result("b", popularity=5), _result("a", popularity=5), _result("c", popularity=50)]
        assert _ids(sort_results(results, SortMode.POPULAR)) == ["c", "a", "b"]

    def test_sort_is_stable_across_runs(self) -> None:
        results = [_result(str(i), rating=4.0) for i in range(10)]
        first = sort_results(results, SortMode.RATING)
        second = sort_results(list(reversed(results)), SortMode.RATING)
        assert _ids(first) == _ids(second)
