# backend/discovery/repositories/place_repository.py
"""
Saved place and location history repositories.

All queries are scoped by user_id; a row owned by someone else is treated
exactly like a missing row.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.place import LocationHistoryEntry, SavedPlace
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SavedPlaceRepository(BaseRepository[SavedPlace]):
    def __init__(self, db: Session):
        super().__init__(db, SavedPlace)

    def get_for_user(self, user_id: str, place_id: str) -> Optional[SavedPlace]:
        try:
            return (
                self.db.query(SavedPlace)
                .filter(SavedPlace.id == place_id, SavedPlace.user_id == user_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting saved place {place_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve saved place: {str(e)}")

    def list_for_user(self, user_id: str, place_type: Optional[str] = None) -> List[SavedPlace]:
        """Most recently updated first."""
        try:
            q = self.db.query(SavedPlace).filter(SavedPlace.user_id == user_id)
            if place_type:
                q = q.filter(SavedPlace.place_type == place_type)
            return q.order_by(SavedPlace.updated_at.desc(), SavedPlace.id.desc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing saved places for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list saved places: {str(e)}")


class LocationHistoryRepository(BaseRepository[LocationHistoryEntry]):
    """Append-only history; rows are inserted or bulk-deleted, never updated."""

    def __init__(self, db: Session):
        super().__init__(db, LocationHistoryEntry)

    def recent_for_user(self, user_id: str, limit: int) -> List[LocationHistoryEntry]:
        try:
            return (
                self.db.query(LocationHistoryEntry)
                .filter(LocationHistoryEntry.user_id == user_id)
                .order_by(LocationHistoryEntry.accessed_at.desc(), LocationHistoryEntry.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing history for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list location history: {str(e)}")

    def delete_for_user(self, user_id: str) -> int:
        try:
            deleted = (
                self.db.query(LocationHistoryEntry)
                .filter(LocationHistoryEntry.user_id == user_id)
                .delete(synchronize_session=False)
            )
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error clearing history for {user_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to clear location history: {str(e)}")
