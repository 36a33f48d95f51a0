# backend/discovery/models/place.py
"""
User-owned location models.

SavedPlace rows are created, updated and deleted explicitly by their owner.
LocationHistoryEntry rows are append-only: never updated, only inserted or
bulk-cleared per user.
"""

from datetime import datetime, timezone
from enum import Enum

import ulid
from sqlalchemy import Column, DateTime, Float, Index, String, Text

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedPlaceType(str, Enum):
    HOME = "home"
    WORK = "work"
    FAVORITE = "favorite"
    RECENT = "recent"


class SavedPlace(Base):
    __tablename__ = "saved_places"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    place_type = Column(String(20), nullable=False, default=SavedPlaceType.FAVORITE.value)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(500), nullable=False, default="")
    city = Column(String(100), nullable=False, default="")
    region = Column(String(100), nullable=False, default="")
    country = Column(String(100), nullable=False, default="")
    postal_code = Column(String(20), nullable=True)
    provider_place_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("ix_saved_places_user_type", "user_id", "place_type"),)

    def __repr__(self) -> str:
        return f"<SavedPlace(user={self.user_id}, name={self.name!r}, type={self.place_type})>"


class LocationHistoryEntry(Base):
    __tablename__ = "location_history"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, index=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(500), nullable=False, default="")
    search_query = Column(Text, nullable=True)

    accessed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
