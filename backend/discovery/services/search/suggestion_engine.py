# backend/discovery/services/search/suggestion_engine.py
"""
SuggestionEngine: autocomplete for partially typed search text.

One engine instance serves one input box. Every call claims a new
generation number; when a newer call (or an explicit supersede()) happens
while a lookup is in flight, the older call returns an empty batch marked
stale so callers can drop it. Results are never cached and debouncing is
left to the caller.

When search analytics are available, popular search terms containing the
text fill remaining slots as free-text suggestions.
"""

import logging
from typing import List, Optional

from ...core.exceptions import StoreUnavailableException
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...schemas.search import Suggestion, SuggestionBatch, SuggestionType
from ..base import BaseService
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitOpenError
from .config import SearchConfig, get_search_config
from .fallback_data import fallback_suggestions
from .listing_store import ListingStore
from .search_analytics import SearchAnalytics

logger = logging.getLogger(__name__)


def local_suggestions(text: str) -> List[Suggestion]:
    """Entries of the local suggestion table containing text, case-insensitively."""
    needle = text.lower()
    return [s for s in fallback_suggestions() if needle in s.text.lower()]


class SuggestionEngine(BaseService):
    def __init__(
        self,
        store: ListingStore,
        *,
        analytics: Optional[SearchAnalytics] = None,
        config: Optional[SearchConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        super().__init__()
        self.store = store
        self.analytics = analytics
        self.config = config or get_search_config()
        self.breaker = breaker or CircuitBreaker(
            name="listing_store",
            config=CircuitBreakerConfig(
                failure_threshold=self.config.store_failure_threshold,
                timeout_seconds=self.config.store_recovery_seconds,
            ),
        )
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def supersede(self) -> int:
        """Invalidate any lookup in flight; returns the new generation."""
        self._generation += 1
        return self._generation

    @BaseService.measure_operation("suggest")
    async def suggest(self, text: str, limit: Optional[int] = None) -> SuggestionBatch:
        generation = self.supersede()
        query = (text or "").strip()
        if limit is None:
            limit = self.config.suggestion_limit

        if len(query) < self.config.suggestion_min_chars:
            return SuggestionBatch(generation=generation, query=query)

        try:
            suggestions = await self.breaker.call(
                self.store.suggest,
                query,
                self.config.suggestion_listing_limit,
                self.config.suggestion_category_limit,
            )
        except (StoreUnavailableException, CircuitOpenError) as exc:
            if not self.config.falls_back_on_failure:
                if isinstance(exc, StoreUnavailableException):
                    raise
                raise StoreUnavailableException(details={"operation": "suggest", "circuit": "open"}) from exc
            self.logger.warning(f"Suggestion lookup failed, using local table: {exc}")
            prometheus_metrics.inc_fallback_served("suggest", "failure")
            suggestions = local_suggestions(query)

        if len(suggestions) < limit:
            suggestions = suggestions + await self._popular_term_suggestions(query, suggestions)

        if generation != self._generation:
            self.logger.debug(f"Discarding stale suggestions for '{query}' (generation {generation})")
            return SuggestionBatch(generation=generation, query=query, stale=True)

        return SuggestionBatch(generation=generation, query=query, suggestions=suggestions[:limit])

    async def _popular_term_suggestions(self, query: str, taken: List[Suggestion]) -> List[Suggestion]:
        if self.analytics is None or self.config.popular_term_suggestions <= 0:
            return []
        terms = await self.analytics.popular_terms(
            limit=self.config.popular_term_suggestions + len(taken),
            days=self.config.popular_terms_days,
            containing=query,
        )
        seen = {suggestion.text.lower() for suggestion in taken}
        extra = [
            Suggestion(type=SuggestionType.FREE_TEXT, text=term.term, count=term.search_count)
            for term in terms
            if term.term.lower() not in seen
        ]
        return extra[: self.config.popular_term_suggestions]
