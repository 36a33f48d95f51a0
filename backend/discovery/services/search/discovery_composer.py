# backend/discovery/services/search/discovery_composer.py
"""
DiscoveryComposer: the discovery screen as a list of named sections.

Sections are independent canned queries run concurrently. A section whose
query raises is logged and left out; the remaining sections are still
returned in their fixed order.
"""

import asyncio
import logging
from typing import Awaitable, List, Optional, Tuple

from ...core.exceptions import StoreUnavailableException
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...schemas.location import Coordinate
from ...schemas.search import (
    DiscoverySection,
    DiscoverySectionType,
    FilterSpecification,
    ListingResult,
    LocationFilter,
    SortMode,
)
from ..base import BaseService
from .config import SearchConfig, get_search_config
from .favorites_lookup import FavoritesLookup
from .query_engine import SearchQueryEngine

logger = logging.getLogger(__name__)

SECTION_TITLES = {
    "trending": "Trending Now",
    "nearby": "Near You",
    "new": "New Listings",
    "recommended": "Recommended for You",
    "hot-deals": "Hot Deals",
}


class DiscoveryComposer(BaseService):
    def __init__(
        self,
        engine: SearchQueryEngine,
        *,
        favorites: Optional[FavoritesLookup] = None,
        config: Optional[SearchConfig] = None,
    ) -> None:
        super().__init__()
        self.engine = engine
        self.favorites = favorites
        self.config = config or get_search_config()

    @BaseService.measure_operation("compose")
    async def compose(
        self, origin: Optional[Coordinate] = None, user_id: Optional[str] = None
    ) -> List[DiscoverySection]:
        """
        Sections in order: trending, nearby (only with an origin), new,
        recommended, hot-deals.
        """
        limit = self.config.section_limit
        trending_task = asyncio.ensure_future(self.engine.search(self._trending_spec(), user_id=user_id))

        builders: List[Tuple[str, Awaitable[DiscoverySection]]] = [
            ("trending", self._listing_section("trending", DiscoverySectionType.TRENDING, trending_task)),
        ]
        if origin is not None:
            nearby = FilterSpecification(
                sort_by=SortMode.DISTANCE,
                limit=limit,
                location=LocationFilter(coordinate=origin, radius_km=self.config.nearby_radius_km),
            )
            builders.append(
                (
                    "nearby",
                    self._listing_section(
                        "nearby", DiscoverySectionType.NEARBY, self.engine.search(nearby, user_id=user_id)
                    ),
                )
            )
        builders.append(
            (
                "new",
                self._listing_section(
                    "new",
                    DiscoverySectionType.NEW,
                    self.engine.search(
                        FilterSpecification(sort_by=SortMode.NEWEST, limit=limit), user_id=user_id
                    ),
                ),
            )
        )
        builders.append(("recommended", self._recommended_section(user_id, trending_task)))
        builders.append(("hot-deals", self._hot_deals_section()))

        outcomes = await asyncio.gather(*(builder for _, builder in builders), return_exceptions=True)

        sections: List[DiscoverySection] = []
        for (section_id, _), outcome in zip(builders, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self.logger.warning(f"Discovery section '{section_id}' omitted: {outcome!r}")
                prometheus_metrics.inc_section_failed(section_id)
                continue
            sections.append(outcome)
        return sections

    @BaseService.measure_operation("recommendations")
    async def recommendations(
        self, user_id: Optional[str], limit: Optional[int] = None
    ) -> List[ListingResult]:
        """
        Listings from the user's favorite categories, best rated first.

        Anonymous users, users without favorites and failed favorite lookups
        get the trending listings instead. Without an explicit limit the
        result is the same list the recommended section of compose() shows.
        """
        categories = await self._favorite_categories(user_id)
        if not categories:
            page = await self.engine.search(self._trending_spec(limit), user_id=user_id)
            return page.results

        page = await self.engine.search(self._recommended_spec(categories, limit), user_id=user_id)
        return page.results

    def _trending_spec(self, limit: Optional[int] = None) -> FilterSpecification:
        if limit is None:
            limit = self.config.section_limit
        return FilterSpecification(sort_by=SortMode.POPULAR, limit=limit)

    def _recommended_spec(
        self, categories: List[str], limit: Optional[int] = None
    ) -> FilterSpecification:
        if limit is None:
            limit = self.config.recommendation_limit
        return FilterSpecification(categories=categories, sort_by=SortMode.RATING, limit=limit)

    async def _listing_section(
        self, section_id: str, section_type: DiscoverySectionType, search: Awaitable
    ) -> DiscoverySection:
        page = await search
        return DiscoverySection(
            id=section_id,
            title=SECTION_TITLES[section_id],
            type=section_type,
            listings=page.results,
        )

    async def _recommended_section(
        self, user_id: Optional[str], trending_task: "asyncio.Future"
    ) -> DiscoverySection:
        categories = await self._favorite_categories(user_id)
        if categories:
            page = await self.engine.search(self._recommended_spec(categories), user_id=user_id)
            listings = page.results
        else:
            # Cold start: same listings as the trending section
            listings = (await trending_task).results

        return DiscoverySection(
            id="recommended",
            title=SECTION_TITLES["recommended"],
            type=DiscoverySectionType.RECOMMENDED,
            listings=listings,
        )

    async def _hot_deals_section(self) -> DiscoverySection:
        offers = await self.engine.trending_offers(self.config.trending_offers_limit)
        return DiscoverySection(
            id="hot-deals",
            title=SECTION_TITLES["hot-deals"],
            type=DiscoverySectionType.TRENDING,
            listings=[],
            offers=offers,
        )

    async def _favorite_categories(self, user_id: Optional[str]) -> List[str]:
        if not user_id or self.favorites is None:
            return []
        try:
            return await self.favorites.favorite_categories(user_id)
        except StoreUnavailableException as exc:
            self.logger.warning(f"Favorite categories unavailable for {user_id}: {exc.message}")
            return []
