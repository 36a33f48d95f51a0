# backend/discovery/services/search/favorites_lookup.py
"""Favorites collaborator used to personalize search and discovery."""

from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...core.exceptions import RepositoryException, StoreUnavailableException
from ...database import SessionLocal
from ...repositories.favorites_repository import FavoritesRepository

logger = logging.getLogger(__name__)


class FavoritesLookup(ABC):
    @abstractmethod
    async def favorited_ids(self, user_id: str, listing_ids: Iterable[str]) -> Set[str]:
        pass

    @abstractmethod
    async def favorite_categories(self, user_id: str) -> List[str]:
        pass


class SqlFavoritesLookup(FavoritesLookup):
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    async def favorited_ids(self, user_id: str, listing_ids: Iterable[str]) -> Set[str]:
        ids = list(listing_ids)
        return await self._run(lambda repo: repo.favorited_ids(user_id, ids))

    async def favorite_categories(self, user_id: str) -> List[str]:
        return await self._run(lambda repo: repo.favorite_categories(user_id))

    async def _run(self, work):
        def run():
            db = self.session_factory()
            try:
                return work(FavoritesRepository(db))
            finally:
                db.close()

        try:
            return await asyncio.to_thread(run)
        except (RepositoryException, SQLAlchemyError) as exc:
            logger.warning(f"Favorites lookup failed: {str(exc)}")
            raise StoreUnavailableException("Favorites are unavailable") from exc
