"""User favorites model for the discovery engine."""

from datetime import datetime, timezone

import ulid
from sqlalchemy import TIMESTAMP, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import Base
from .listing import Listing


class UserFavorite(Base):
    """Junction table for users favoriting listings."""

    __tablename__ = "user_favorites"

    # Primary key with ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))

    # Users live in the identity service; only their id is stored here
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    listing_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    listing: Mapped[Listing] = relationship(Listing)

    __table_args__ = (UniqueConstraint("user_id", "listing_id", name="unique_user_listing_favorite"),)

    def __repr__(self) -> str:
        return f"<UserFavorite(user={self.user_id}, listing={self.listing_id})>"
