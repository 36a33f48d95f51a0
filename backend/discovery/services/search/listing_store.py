# backend/discovery/services/search/listing_store.py
"""
Async access to the listing store.

The SQL implementation runs the synchronous ListingRepository in a worker
thread with a fresh session per call and converts rows into the
store-agnostic records the engines work on. Any data-layer failure, and any
row that does not fit those records, surfaces as StoreUnavailableException.
"""

from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...core.exceptions import RepositoryException, StoreUnavailableException
from ...database import SessionLocal
from ...models.listing import Listing, Offer
from ...repositories.listing_repository import ListingRepository
from ...schemas.search import (
    CategorySummary,
    ListingRecord,
    OfferRecord,
    OfferResult,
    Suggestion,
    SuggestionType,
)
from ..location.geo import BoundingBox
from .annotation import matches_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ListingStore(ABC):
    """Read operations the search, suggestion and discovery engines need."""

    @abstractmethod
    async def fetch_listings(
        self,
        query: Optional[str] = None,
        categories: Optional[Sequence[str]] = None,
        bbox: Optional[BoundingBox] = None,
    ) -> List[ListingRecord]:
        pass

    @abstractmethod
    async def count_active_listings(self) -> int:
        pass

    @abstractmethod
    async def fetch_category_counts(self) -> List[CategorySummary]:
        pass

    @abstractmethod
    async def fetch_active_offers(self) -> List[OfferResult]:
        """Offers with status=active on active listings; validity window not yet checked."""

    @abstractmethod
    async def suggest(self, text: str, listing_limit: int, category_limit: int) -> List[Suggestion]:
        """Listing-name matches first, then category matches, in one lookup."""


def offer_record_from_row(offer: Offer) -> OfferRecord:
    return OfferRecord(
        id=offer.id,
        listing_id=offer.listing_id,
        title=offer.title,
        description=offer.description or "",
        discount_type=offer.discount_type,
        discount_value=offer.discount_value,
        minimum_order_value=offer.minimum_order_value,
        terms_conditions=offer.terms_conditions,
        valid_from=offer.valid_from,
        valid_until=offer.valid_until,
        usage_limit=offer.usage_limit,
        used_count=offer.used_count,
        status=offer.status,
    )


def listing_record_from_row(listing: Listing) -> ListingRecord:
    return ListingRecord(
        id=listing.id,
        name=listing.name,
        description=listing.description or "",
        category=listing.category,
        tags=list(listing.tags or []),
        address=listing.address or "",
        city=listing.city or "",
        state=listing.state or "",
        latitude=listing.latitude,
        longitude=listing.longitude,
        phone=listing.phone,
        website=listing.website,
        logo_url=listing.logo_url,
        cover_image_url=listing.cover_image_url,
        operating_hours=listing.operating_hours,
        average_price=listing.average_price,
        status=listing.status,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
        review_ratings=[review.rating for review in listing.reviews],
        offers=[offer_record_from_row(offer) for offer in listing.offers],
    )


class SqlListingStore(ListingStore):
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    async def _run(self, operation: str, work: Callable[[ListingRepository], T]) -> T:
        def run() -> T:
            db: Session = self.session_factory()
            try:
                return work(ListingRepository(db))
            finally:
                db.close()

        try:
            return await asyncio.to_thread(run)
        except (RepositoryException, SQLAlchemyError) as exc:
            logger.warning(f"Listing store {operation} failed: {str(exc)}")
            raise StoreUnavailableException(details={"operation": operation}) from exc
        except ValidationError as exc:
            logger.warning(f"Listing store {operation} returned malformed rows: {exc.error_count()} errors")
            raise StoreUnavailableException(
                "Listing store returned malformed data",
                code="STORE_MALFORMED",
                details={"operation": operation},
            ) from exc

    async def fetch_listings(
        self,
        query: Optional[str] = None,
        categories: Optional[Sequence[str]] = None,
        bbox: Optional[BoundingBox] = None,
    ) -> List[ListingRecord]:
        records = await self._run(
            "fetch_listings",
            lambda repo: [
                listing_record_from_row(row)
                for row in repo.search_candidates(query=query, categories=categories, bbox=bbox)
            ],
        )
        if query:
            # Keep the SQL match and the in-memory fallback match identical
            records = [record for record in records if matches_text(record, query)]
        return records

    async def count_active_listings(self) -> int:
        return await self._run("count_active_listings", lambda repo: repo.count_active())

    async def fetch_category_counts(self) -> List[CategorySummary]:
        return await self._run(
            "fetch_category_counts",
            lambda repo: [
                CategorySummary(name=name, count=count, description=description, icon=icon)
                for name, count, description, icon in repo.category_counts()
            ],
        )

    async def fetch_active_offers(self) -> List[OfferResult]:
        def work(repo: ListingRepository) -> List[OfferResult]:
            offers = []
            for row in repo.active_offers():
                record = offer_record_from_row(row)
                offers.append(
                    OfferResult(
                        **record.model_dump(),
                        listing_name=row.listing.name,
                        listing_logo=row.listing.logo_url,
                    )
                )
            return offers

        return await self._run("fetch_active_offers", work)

    async def suggest(self, text: str, listing_limit: int, category_limit: int) -> List[Suggestion]:
        def work(repo: ListingRepository) -> List[Suggestion]:
            listings, categories = repo.suggest(text, listing_limit, category_limit)
            suggestions = [
                Suggestion(
                    type=SuggestionType.LISTING,
                    text=name,
                    metadata={"listing_id": listing_id, "category": category},
                )
                for listing_id, name, category in listings
            ]
            suggestions.extend(
                Suggestion(type=SuggestionType.CATEGORY, text=name, count=count)
                for name, count in categories
            )
            return suggestions

        return await self._run("suggest", work)
