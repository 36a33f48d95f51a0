# backend/discovery/services/search/search_analytics.py
"""
Search analytics collaborator: records searches and reports on them.

Recording is best effort. SqlSearchAnalytics.record_search raises
StoreUnavailableException and callers log and drop the event, so a broken
analytics table never fails a search. The report reads (popular terms and
daily trends) answer an empty list when the store fails.
"""

from abc import ABC, abstractmethod
import asyncio
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...core.exceptions import RepositoryException, StoreUnavailableException
from ...database import SessionLocal
from ...repositories.search_event_repository import SearchEventRepository
from ...schemas.search import PopularSearchTerm, SearchTrendPoint

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchAnalytics(ABC):
    @abstractmethod
    async def record_search(
        self,
        search_term: str,
        *,
        user_id: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        results_count: int = 0,
        search_time_ms: int = 0,
        degraded: bool = False,
    ) -> None:
        """Append one search event; raises StoreUnavailableException on failure."""

    @abstractmethod
    async def popular_terms(
        self, limit: int = 10, days: int = 30, containing: Optional[str] = None
    ) -> List[PopularSearchTerm]:
        pass

    @abstractmethod
    async def search_trends(self, days: int = 30) -> List[SearchTrendPoint]:
        pass


class SqlSearchAnalytics(SearchAnalytics):
    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.clock = clock or _utcnow

    async def record_search(
        self,
        search_term: str,
        *,
        user_id: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        results_count: int = 0,
        search_time_ms: int = 0,
        degraded: bool = False,
    ) -> None:
        def work(repo: SearchEventRepository) -> None:
            with repo.transaction():
                repo.record(
                    search_term,
                    user_id=user_id,
                    filters=filters,
                    results_count=results_count,
                    search_time_ms=search_time_ms,
                    degraded=degraded,
                )

        await self._run("record_search", work)

    async def popular_terms(
        self, limit: int = 10, days: int = 30, containing: Optional[str] = None
    ) -> List[PopularSearchTerm]:
        if limit <= 0:
            return []
        since = self.clock() - timedelta(days=days)
        try:
            rows = await self._run(
                "popular_terms", lambda repo: repo.popular_terms(since, limit, containing=containing)
            )
        except StoreUnavailableException:
            return []
        return [
            PopularSearchTerm(
                term=row.term,
                search_count=row.search_count,
                unique_users=row.unique_users,
                average_results=row.average_results,
                last_searched=row.last_searched,
            )
            for row in rows
        ]

    async def search_trends(self, days: int = 30) -> List[SearchTrendPoint]:
        since = self.clock() - timedelta(days=days)
        try:
            rows = await self._run("search_trends", lambda repo: repo.daily_counts(since))
        except StoreUnavailableException:
            return []
        return [SearchTrendPoint(date=row.date, searches=row.searches) for row in rows]

    async def _run(self, operation: str, work: Callable[[SearchEventRepository], T]) -> T:
        def run() -> T:
            db: Session = self.session_factory()
            try:
                return work(SearchEventRepository(db))
            finally:
                db.close()

        try:
            return await asyncio.to_thread(run)
        except (RepositoryException, SQLAlchemyError) as exc:
            logger.warning(f"Search analytics {operation} failed: {str(exc)}")
            raise StoreUnavailableException(
                "Search analytics are unavailable", details={"operation": operation}
            ) from exc
