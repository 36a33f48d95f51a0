# backend/discovery/services/search/query_engine.py
"""
SearchQueryEngine: filtered, ranked, paginated listing search.

Pipeline for one search:
1. Validate and normalize the FilterSpecification (defaults for limit and radius)
2. Ask the store for candidates (text, categories, active status, bounding box)
3. Annotate every row (rating, open now, offers, popularity, distance)
4. Apply exact filters in-process (radius, rating, price, open now, offers)
5. Sort with a total order, then slice the requested page

First pages of text searches are then appended to search analytics; a
failed write is logged and never fails the search.

Read paths degrade instead of failing: when the store is unreachable, the
circuit is open, or (by default) the store holds no active listings at all,
the same pipeline runs over the bundled sample dataset and the page is
marked degraded.
"""

from datetime import datetime, timezone
import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Sequence, Set, Union

from pydantic import ValidationError

from ...core.exceptions import StoreUnavailableException, ValidationException
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...schemas.search import (
    CategorySummary,
    FilterSpecification,
    ListingRecord,
    ListingResult,
    LocationFilter,
    OfferResult,
    SearchPage,
)
from ..base import BaseService
from ..location.geo import bounding_box
from .annotation import ListingAnnotator, apply_filters, is_offer_active, matches_text
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitOpenError
from .config import SearchConfig, get_search_config
from .fallback_data import fallback_categories, fallback_listings, fallback_offers
from .favorites_lookup import FavoritesLookup
from .listing_store import ListingStore
from .ranking import sort_results
from .search_analytics import SearchAnalytics

logger = logging.getLogger(__name__)

SpecInput = Union[FilterSpecification, Mapping[str, Any]]

_STORE_FAILURES = (StoreUnavailableException, CircuitOpenError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validation_details(exc: ValidationError) -> List[dict]:
    """JSON-safe summary of pydantic errors."""
    return [
        {"field": ".".join(str(part) for part in error["loc"]) or "spec", "message": error["msg"]}
        for error in exc.errors()
    ]


class SearchQueryEngine(BaseService):
    def __init__(
        self,
        store: ListingStore,
        *,
        favorites: Optional[FavoritesLookup] = None,
        analytics: Optional[SearchAnalytics] = None,
        config: Optional[SearchConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__()
        self.store = store
        self.favorites = favorites
        self.analytics = analytics
        self.config = config or get_search_config()
        self.breaker = breaker or CircuitBreaker(
            name="listing_store",
            config=CircuitBreakerConfig(
                failure_threshold=self.config.store_failure_threshold,
                timeout_seconds=self.config.store_recovery_seconds,
            ),
        )
        self.clock = clock or _utcnow

    # Validation

    def normalize(self, spec: SpecInput) -> FilterSpecification:
        """
        Validate a spec (or raw mapping) and fill in defaults.

        Raises:
            ValidationException: malformed input or a limit above the maximum
        """
        if isinstance(spec, FilterSpecification):
            validated = spec
        else:
            try:
                validated = FilterSpecification.model_validate(dict(spec))
            except ValidationError as exc:
                raise ValidationException(
                    "Invalid search filters",
                    code="INVALID_FILTERS",
                    details={"errors": validation_details(exc)},
                ) from exc

        if validated.limit is not None and validated.limit > self.config.max_limit:
            raise ValidationException(
                f"limit must not exceed {self.config.max_limit}",
                code="INVALID_FILTERS",
                details={"errors": [{"field": "limit", "message": "too large"}]},
            )

        updates: dict = {}
        if validated.limit is None:
            updates["limit"] = self.config.default_limit
        if validated.location is not None and validated.location.radius_km is None:
            updates["location"] = LocationFilter(
                coordinate=validated.location.coordinate,
                radius_km=self.config.default_radius_km,
            )
        return validated.model_copy(update=updates) if updates else validated

    # Search

    @BaseService.measure_operation("search")
    async def search(self, spec: SpecInput, user_id: Optional[str] = None) -> SearchPage:
        spec = self.normalize(spec)
        start_time = time.time()
        page = await self._search(spec, user_id)
        if spec.query and spec.offset == 0:
            await self._record_search(spec, page, user_id, time.time() - start_time)
        return page

    async def _search(self, spec: FilterSpecification, user_id: Optional[str]) -> SearchPage:
        now = self.clock()
        origin = spec.origin
        radius = spec.location.radius_km if spec.location else None

        try:
            records = await self.breaker.call(
                self.store.fetch_listings,
                query=spec.query,
                categories=spec.categories,
                bbox=bounding_box(origin, radius) if origin is not None and radius else None,
            )
        except _STORE_FAILURES as exc:
            self._ensure_fallback_allowed("search", exc)
            return self._fallback_page(spec, now, reason="failure")

        if not records and self.config.falls_back_on_empty and await self._dataset_is_empty():
            return self._fallback_page(spec, now, reason="empty")

        page = self._build_page(records, spec, now, degraded=False)
        if user_id and page.results:
            page.results = await self._mark_favorites(user_id, page.results)
        return page

    async def search_more(
        self,
        previous_spec: SpecInput,
        previous_page: SearchPage,
        user_id: Optional[str] = None,
    ) -> SearchPage:
        """Next page after previous_page for the same filters."""
        spec = self.normalize(previous_spec)
        next_offset = spec.offset + len(previous_page.results)
        return await self.search(spec.model_copy(update={"offset": next_offset}), user_id=user_id)

    # Categories & offers

    @BaseService.measure_operation("list_categories")
    async def list_categories(self) -> List[CategorySummary]:
        try:
            categories = await self.breaker.call(self.store.fetch_category_counts)
        except _STORE_FAILURES as exc:
            self._ensure_fallback_allowed("list_categories", exc)
            return self._serve_fallback("list_categories", "failure", fallback_categories())

        if not categories and self.config.falls_back_on_empty:
            return self._serve_fallback("list_categories", "empty", fallback_categories())

        return sorted(categories, key=lambda c: (-c.count, c.name))

    @BaseService.measure_operation("trending_offers")
    async def trending_offers(self, limit: int = 10) -> List[OfferResult]:
        """Active offers valid now, most used first."""
        if limit <= 0:
            return []
        now = self.clock()

        try:
            offers = await self.breaker.call(self.store.fetch_active_offers)
        except _STORE_FAILURES as exc:
            self._ensure_fallback_allowed("trending_offers", exc)
            offers = self._serve_fallback("trending_offers", "failure", self._fallback_offer_results(now))
        else:
            if not offers and self.config.falls_back_on_empty and await self._dataset_is_empty():
                offers = self._serve_fallback("trending_offers", "empty", self._fallback_offer_results(now))

        current = [offer for offer in offers if is_offer_active(offer, now)]
        current.sort(key=lambda offer: (-offer.used_count, offer.id))
        return [
            offer.model_copy(update={"is_trending": True, "popularity_score": offer.used_count})
            for offer in current[:limit]
        ]

    # Internals

    def _build_page(
        self,
        records: Sequence[ListingRecord],
        spec: FilterSpecification,
        now: datetime,
        *,
        degraded: bool,
    ) -> SearchPage:
        annotator = ListingAnnotator(now, self.config.listing_timezone, spec.origin)
        radius = spec.location.radius_km if spec.location else None

        annotated = [annotator.annotate(record) for record in records]
        filtered = apply_filters(annotated, spec, radius)
        ordered = sort_results(filtered, spec.sort_by)

        limit = spec.limit or self.config.default_limit
        results = ordered[spec.offset : spec.offset + limit]
        total = len(ordered)
        return SearchPage(
            results=results,
            total=total,
            has_more=total > spec.offset + len(results),
            offset=spec.offset,
            limit=limit,
            degraded=degraded,
        )

    def _fallback_page(self, spec: FilterSpecification, now: datetime, *, reason: str) -> SearchPage:
        records = [
            record
            for record in fallback_listings(now)
            if (not spec.query or matches_text(record, spec.query))
            and (not spec.categories or record.category in spec.categories)
        ]
        return self._serve_fallback("search", reason, self._build_page(records, spec, now, degraded=True))

    def _fallback_offer_results(self, now: datetime) -> List[OfferResult]:
        listings = {listing.id: listing for listing in fallback_listings(now)}
        results = []
        for offer in fallback_offers(now):
            listing = listings.get(offer.listing_id)
            results.append(
                OfferResult(
                    **offer.model_dump(),
                    listing_name=listing.name if listing else "",
                    listing_logo=listing.logo_url if listing else None,
                )
            )
        return results

    def _serve_fallback(self, operation: str, reason: str, value: Any) -> Any:
        log = self.logger.warning if reason == "failure" else self.logger.info
        log(f"Serving {operation} from the sample dataset ({reason})")
        prometheus_metrics.inc_fallback_served(operation, reason)
        return value

    def _ensure_fallback_allowed(self, operation: str, exc: Exception) -> None:
        """Re-raise as StoreUnavailableException when fallback is disabled."""
        if self.config.falls_back_on_failure:
            return
        self.logger.error(f"{operation} failed and fallback is disabled: {exc}")
        if isinstance(exc, StoreUnavailableException):
            raise exc
        raise StoreUnavailableException(details={"operation": operation, "circuit": "open"}) from exc

    async def _dataset_is_empty(self) -> bool:
        """True only when the store answers and holds zero active listings."""
        try:
            return await self.breaker.call(self.store.count_active_listings) == 0
        except _STORE_FAILURES as exc:
            self.logger.warning(f"Could not count active listings: {exc}")
            return self.config.falls_back_on_failure

    async def _record_search(
        self, spec: FilterSpecification, page: SearchPage, user_id: Optional[str], elapsed: float
    ) -> None:
        """Append the search to analytics; a failed write is logged and dropped."""
        if self.analytics is None or not self.config.analytics_enabled:
            return
        try:
            await self.analytics.record_search(
                spec.query,
                user_id=user_id,
                filters=spec.model_dump(
                    mode="json", exclude_defaults=True, exclude={"query", "offset", "limit"}
                ),
                results_count=page.total,
                search_time_ms=int(elapsed * 1000),
                degraded=page.degraded,
            )
        except StoreUnavailableException as exc:
            self.logger.warning(f"Search for '{spec.query}' not recorded: {exc.message}")
            prometheus_metrics.inc_search_event_dropped()

    async def _mark_favorites(self, user_id: str, results: List[ListingResult]) -> List[ListingResult]:
        favorited = await self._favorited_ids(user_id, [result.id for result in results])
        if not favorited:
            return results
        return [
            result.model_copy(update={"is_favorited": True}) if result.id in favorited else result
            for result in results
        ]

    async def _favorited_ids(self, user_id: str, listing_ids: List[str]) -> Set[str]:
        if self.favorites is None:
            return set()
        try:
            return await self.favorites.favorited_ids(user_id, listing_ids)
        except StoreUnavailableException as exc:
            self.logger.warning(f"Favorites unavailable for {user_id}; results unmarked: {exc.message}")
            return set()
