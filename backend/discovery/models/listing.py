# backend/discovery/models/listing.py
"""
Listing, review, offer and category models.

Design notes:
- ULID string IDs everywhere (26 chars)
- Timezone-aware timestamps
- operating_hours is a JSON object keyed by lowercase weekday
  ({"monday": {"open": "11:00", "close": "22:00", "closed": false}, ...})
- Only listings with status=active are searchable
- search_text holds the lowercased name, description, category and tags,
  one per line, and is rewritten on every insert and update
"""

from datetime import datetime, timezone
from enum import Enum

import ulid
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ListingStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


class OfferStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    BUY_X_GET_Y = "buy_x_get_y"
    FREE_ITEM = "free_item"


class Listing(Base):
    """A business or vendor that can be discovered through search."""

    __tablename__ = "listings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))

    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)

    address = Column(String(500), nullable=False, default="")
    city = Column(String(100), nullable=False, default="")
    state = Column(String(100), nullable=False, default="")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    logo_url = Column(String(500), nullable=True)
    cover_image_url = Column(String(500), nullable=True)

    operating_hours = Column(JSON, nullable=True)
    average_price = Column(Float, nullable=True, comment="Typical spend per visit")
    status = Column(String(20), nullable=False, default=ListingStatus.ACTIVE.value, index=True)
    search_text = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    reviews = relationship("ListingReview", back_populates="listing", cascade="all, delete-orphan")
    offers = relationship("Offer", back_populates="listing", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, name={self.name!r}, category={self.category!r})>"


def listing_search_text(name, description, category, tags) -> str:
    """Lowercased searchable fields, one per line (tags one per line too)."""
    parts = [name or "", description or "", category or ""]
    parts.extend(str(tag) for tag in (tags or []))
    return "\n".join(part.lower() for part in parts)


@event.listens_for(Listing, "before_insert")
@event.listens_for(Listing, "before_update")
def _refresh_search_text(mapper, connection, target: Listing) -> None:
    target.search_text = listing_search_text(target.name, target.description, target.category, target.tags)


class ListingReview(Base):
    """A single rating left on a listing."""

    __tablename__ = "listing_reviews"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    listing_id = Column(String(26), ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    rating = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    listing = relationship("Listing", back_populates="reviews")

    __table_args__ = (CheckConstraint("rating >= 0 AND rating <= 5", name="ck_listing_review_rating_range"),)


class Offer(Base):
    """A time-bounded discount attached to a listing."""

    __tablename__ = "offers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    listing_id = Column(String(26), ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    discount_type = Column(String(20), nullable=False, default=DiscountType.PERCENTAGE.value)
    discount_value = Column(Float, nullable=False, default=0)
    minimum_order_value = Column(Float, nullable=True)
    terms_conditions = Column(Text, nullable=True)

    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer, nullable=False, default=0)
    used_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=OfferStatus.ACTIVE.value, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    listing = relationship("Listing", back_populates="offers")

    __table_args__ = (
        CheckConstraint("used_count <= usage_limit", name="ck_offer_usage_within_limit"),
        CheckConstraint("valid_from < valid_until", name="ck_offer_validity_window"),
    )


class ListingCategory(Base):
    """Display metadata for a listing category."""

    __tablename__ = "listing_categories"

    name = Column(String(100), primary_key=True)
    description = Column(String(500), nullable=True)
    icon = Column(String(16), nullable=True)
