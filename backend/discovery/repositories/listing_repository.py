# backend/discovery/repositories/listing_repository.py
"""
Listing Repository for the discovery engine.

Read-only queries over listings, their reviews and offers, and category
metadata. Geographic and schedule logic is not done in SQL: the repository
narrows candidates (text, category, status, bounding box) and the search
engine applies exact filters in-process.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.listing import Listing, ListingCategory, ListingStatus, Offer, OfferStatus
from ..services.location.geo import BoundingBox
from .base_repository import BaseRepository, contains_pattern

logger = logging.getLogger(__name__)


class ListingRepository(BaseRepository[Listing]):
    """Candidate selection for search, suggestions and categories."""

    def __init__(self, db: Session):
        super().__init__(db, Listing)

    def search_candidates(
        self,
        query: Optional[str] = None,
        categories: Optional[Sequence[str]] = None,
        bbox: Optional[BoundingBox] = None,
    ) -> List[Listing]:
        """
        Active listings matching the text and category constraints.

        Args:
            query: Case-insensitive containment over name, description, category or any one tag
            categories: Exact category names; any match qualifies
            bbox: Optional coordinate pre-filter; listings without coordinates are excluded

        Returns:
            Listings with reviews and offers loaded, in store order (id ascending)
        """
        try:
            q = (
                self.db.query(Listing)
                .options(selectinload(Listing.reviews), selectinload(Listing.offers))
                .filter(Listing.status == ListingStatus.ACTIVE.value)
            )

            if query:
                q = q.filter(Listing.search_text.like(contains_pattern(query), escape="\\"))

            if categories:
                q = q.filter(Listing.category.in_(list(categories)))

            if bbox is not None:
                q = q.filter(
                    Listing.latitude.isnot(None),
                    Listing.longitude.isnot(None),
                    Listing.latitude.between(bbox.south, bbox.north),
                )
                if bbox.west <= bbox.east:
                    q = q.filter(Listing.longitude.between(bbox.west, bbox.east))
                else:
                    q = q.filter(or_(Listing.longitude >= bbox.west, Listing.longitude <= bbox.east))

            return q.order_by(Listing.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error searching listings: {str(e)}")
            raise RepositoryException(f"Failed to search listings: {str(e)}")

    def count_active(self) -> int:
        return self.count(status=ListingStatus.ACTIVE.value)

    def category_counts(self) -> List[Tuple[str, int, Optional[str], Optional[str]]]:
        """(name, active listing count, description, icon) for every category with listings."""
        try:
            rows = (
                self.db.query(
                    Listing.category,
                    func.count(Listing.id),
                    ListingCategory.description,
                    ListingCategory.icon,
                )
                .outerjoin(ListingCategory, ListingCategory.name == Listing.category)
                .filter(Listing.status == ListingStatus.ACTIVE.value)
                .group_by(Listing.category, ListingCategory.description, ListingCategory.icon)
                .all()
            )
            return [(name, int(count), description, icon) for name, count, description, icon in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting categories: {str(e)}")
            raise RepositoryException(f"Failed to count categories: {str(e)}")

    def active_offers(self) -> List[Offer]:
        """
        Offers with status=active on active listings, listing loaded.

        The validity window is checked by the caller against its own clock.
        """
        try:
            return (
                self.db.query(Offer)
                .join(Listing, Listing.id == Offer.listing_id)
                .options(selectinload(Offer.listing))
                .filter(
                    and_(
                        Offer.status == OfferStatus.ACTIVE.value,
                        Listing.status == ListingStatus.ACTIVE.value,
                    )
                )
                .order_by(Offer.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading active offers: {str(e)}")
            raise RepositoryException(f"Failed to load offers: {str(e)}")

    def suggest(
        self, text: str, listing_limit: int, category_limit: int
    ) -> Tuple[List[Tuple[str, str, str]], List[Tuple[str, int]]]:
        """
        Name and category prefix/containment matches for autocomplete.

        Returns:
            ([(listing_id, name, category)], [(category, active_count)])
        """
        needle = text.lower()
        try:
            candidates = (
                self.db.query(Listing.id, Listing.name, Listing.category)
                .filter(
                    Listing.status == ListingStatus.ACTIVE.value,
                    Listing.search_text.like(contains_pattern(text), escape="\\"),
                )
                .order_by(Listing.name, Listing.id)
                .yield_per(100)
            )
            listings: List[Tuple[str, str, str]] = []
            for row in candidates:
                if len(listings) >= listing_limit:
                    break
                if needle in row.name.lower():
                    listings.append((row.id, row.name, row.category))

            counts = (
                self.db.query(Listing.category, func.count(Listing.id))
                .filter(Listing.status == ListingStatus.ACTIVE.value)
                .group_by(Listing.category)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error running suggestion lookup: {str(e)}")
            raise RepositoryException(f"Failed to load suggestions: {str(e)}")

        categories = sorted(
            ((row[0], int(row[1])) for row in counts if needle in row[0].lower()),
            key=lambda item: (-item[1], item[0]),
        )
        return listings, categories[:category_limit]
