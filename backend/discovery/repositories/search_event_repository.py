# backend/discovery/repositories/search_event_repository.py
"""
Search Event Repository for the discovery engine.

Appends search events and answers the aggregate queries behind popular
search terms and daily search trends.
"""

from dataclasses import dataclass
from datetime import date, datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.search_event import SearchEvent, normalize_search_term
from .base_repository import BaseRepository, contains_pattern

logger = logging.getLogger(__name__)


@dataclass
class PopularTermData:
    """Popular search term data."""

    term: str
    search_count: int
    unique_users: int
    average_results: float
    last_searched: Optional[datetime]


@dataclass
class DailySearchData:
    """Searches recorded on one calendar day (UTC)."""

    date: date
    searches: int


def _as_date(value: Any) -> date:
    # SQLite returns DATE() as text, PostgreSQL as a date
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class SearchEventRepository(BaseRepository[SearchEvent]):
    """Repository for search event data access."""

    def __init__(self, db: Session):
        super().__init__(db, SearchEvent)

    def record(
        self,
        search_term: str,
        *,
        user_id: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        results_count: int = 0,
        search_time_ms: int = 0,
        degraded: bool = False,
    ) -> SearchEvent:
        """
        Append one search event.

        Note: Does NOT commit - wrap in transaction() to persist.
        """
        return self.create(
            user_id=user_id,
            search_term=search_term.strip(),
            normalized_term=normalize_search_term(search_term)[:255],
            filters=filters or None,
            results_count=results_count,
            search_time_ms=search_time_ms,
            degraded=degraded,
        )

    def popular_terms(
        self, since: datetime, limit: int = 10, containing: Optional[str] = None
    ) -> List[PopularTermData]:
        """
        Most searched normalized terms since a point in time.

        Args:
            since: Only events created at or after this instant count
            limit: Maximum number of terms
            containing: Optional text the term must contain (case-insensitive)

        Ties on count go to the most recently searched term, then alphabetical.
        """
        try:
            q = self.db.query(
                SearchEvent.normalized_term,
                func.count(SearchEvent.id).label("search_count"),
                func.count(func.distinct(SearchEvent.user_id)).label("unique_users"),
                func.avg(SearchEvent.results_count).label("average_results"),
                func.max(SearchEvent.created_at).label("last_searched"),
            ).filter(SearchEvent.created_at >= since, SearchEvent.normalized_term != "")
            if containing:
                pattern = contains_pattern(normalize_search_term(containing))
                q = q.filter(SearchEvent.normalized_term.like(pattern, escape="\\"))
            rows = (
                q.group_by(SearchEvent.normalized_term)
                .order_by(desc("search_count"), desc("last_searched"), SearchEvent.normalized_term)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading popular search terms: {str(e)}")
            raise RepositoryException(f"Failed to load popular search terms: {str(e)}")

        return [
            PopularTermData(
                term=row.normalized_term,
                search_count=int(row.search_count),
                unique_users=int(row.unique_users or 0),
                average_results=round(float(row.average_results or 0), 2),
                last_searched=row.last_searched,
            )
            for row in rows
        ]

    def daily_counts(self, since: datetime) -> List[DailySearchData]:
        """Searches per day since a point in time, oldest day first; days without searches are absent."""
        day = func.date(SearchEvent.created_at)
        try:
            rows = (
                self.db.query(day.label("day"), func.count(SearchEvent.id).label("searches"))
                .filter(SearchEvent.created_at >= since)
                .group_by(day)
                .order_by(day)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading search trends: {str(e)}")
            raise RepositoryException(f"Failed to load search trends: {str(e)}")

        return [DailySearchData(date=_as_date(row.day), searches=int(row.searches)) for row in rows]
