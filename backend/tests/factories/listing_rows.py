"""Helpers that persist listing and search event rows for repository and store tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from discovery.models import Listing, ListingCategory, ListingReview, Offer, SearchEvent, UserFavorite
from discovery.models.search_event import normalize_search_term

NOW = datetime.now(timezone.utc)


def add_listing(
    db: Session,
    name: str,
    *,
    category: str = "Restaurant",
    description: str = "",
    tags: Sequence[str] = (),
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    status: str = "active",
    ratings: Sequence[float] = (),
) -> Listing:
    listing = Listing(
        name=name,
        description=description,
        category=category,
        tags=list(tags),
        latitude=lat,
        longitude=lng,
        status=status,
    )
    db.add(listing)
    db.flush()
    for rating in ratings:
        db.add(ListingReview(listing_id=listing.id, rating=rating))
    db.commit()
    return listing


def add_offer(
    db: Session,
    listing: Listing,
    title: str,
    *,
    used_count: int = 0,
    usage_limit: int = 100,
    status: str = "active",
) -> Offer:
    offer = Offer(
        listing_id=listing.id,
        title=title,
        discount_type="percentage",
        discount_value=15,
        valid_from=NOW - timedelta(days=1),
        valid_until=NOW + timedelta(days=30),
        usage_limit=usage_limit,
        used_count=used_count,
        status=status,
    )
    db.add(offer)
    db.commit()
    return offer


def add_category(db: Session, name: str, description: str, icon: str) -> ListingCategory:
    category = ListingCategory(name=name, description=description, icon=icon)
    db.add(category)
    db.commit()
    return category


def add_favorite(db: Session, user_id: str, listing: Listing) -> UserFavorite:
    favorite = UserFavorite(user_id=user_id, listing_id=listing.id)
    db.add(favorite)
    db.commit()
    return favorite


def add_search_event(
    db: Session,
    term: str,
    *,
    user_id: Optional[str] = None,
    results_count: int = 0,
    created_at: Optional[datetime] = None,
) -> SearchEvent:
    event = SearchEvent(
        search_term=term,
        normalized_term=normalize_search_term(term),
        user_id=user_id,
        results_count=results_count,
        created_at=created_at or NOW,
    )
    db.add(event)
    db.commit()
    return event
