"""
Favorites Repository for the discovery engine.

Read access to the user_favorites junction table. Favorites are written by
the identity/profile service; here they only personalize search results and
recommendations.
"""

import logging
from typing import Iterable, List, Set

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.favorite import UserFavorite
from ..models.listing import Listing
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class FavoritesRepository(BaseRepository[UserFavorite]):
    """Repository for a user's favorited listings."""

    def __init__(self, db: Session):
        super().__init__(db, UserFavorite)

    def favorited_ids(self, user_id: str, listing_ids: Iterable[str]) -> Set[str]:
        """Subset of listing_ids the user has favorited."""
        ids = list(listing_ids)
        if not ids:
            return set()
        try:
            rows = (
                self.db.query(UserFavorite.listing_id)
                .filter(UserFavorite.user_id == user_id, UserFavorite.listing_id.in_(ids))
                .all()
            )
            return {row[0] for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking favorites for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to check favorites: {str(e)}")

    def favorite_categories(self, user_id: str) -> List[str]:
        """Categories of the user's favorited listings, most favorited first."""
        try:
            rows = (
                self.db.query(Listing.category, func.count(UserFavorite.id))
                .join(Listing, Listing.id == UserFavorite.listing_id)
                .filter(UserFavorite.user_id == user_id)
                .group_by(Listing.category)
                .order_by(func.count(UserFavorite.id).desc(), Listing.category)
                .all()
            )
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading favorite categories for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load favorite categories: {str(e)}")
