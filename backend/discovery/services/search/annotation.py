# backend/discovery/services/search/annotation.py
"""
Query-time enrichment and in-process filtering of listing rows.

Computed fields (rating, open status, offer counts, popularity, distance)
are derived here from a ListingRecord and a fixed "now" so that
one search evaluates every row against the same instant.
"""

from datetime import datetime, timezone
import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import pytz

from ...models.listing import OfferStatus
from ...schemas.location import Coordinate
from ...schemas.search import FilterSpecification, ListingRecord, ListingResult, OfferRecord
from ..location.geo import distance_km, haversine_km

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def average_rating(ratings: Iterable[float]) -> float:
    """Mean rounded half-up to one decimal; 0 with no ratings."""
    values = [r for r in ratings if r is not None]
    if not values:
        return 0.0
    return math.floor(sum(values) / len(values) * 10 + 0.5) / 10


def is_offer_active(offer: OfferRecord, now: datetime) -> bool:
    status = offer.status.value if isinstance(offer.status, OfferStatus) else offer.status
    if status != OfferStatus.ACTIVE.value:
        return False
    return as_utc(offer.valid_from) <= now <= as_utc(offer.valid_until)


def _minutes(hhmm: Any) -> int:
    hours, minutes = str(hhmm).split(":")[:2]
    return int(hours) * 60 + int(minutes)


def is_open_at(operating_hours: Optional[Dict[str, Any]], local_now: datetime) -> bool:
    """
    Whether a weekly schedule is open at local_now.

    A day without an entry, or with ``closed`` set, is closed. Spans whose
    close time is not after the open time run past midnight into the next day.
    """
    if not operating_hours:
        return False

    today = WEEKDAYS[local_now.weekday()]
    yesterday = WEEKDAYS[(local_now.weekday() - 1) % 7]
    current = local_now.hour * 60 + local_now.minute

    try:
        entry = operating_hours.get(today)
        if entry and not entry.get("closed", False):
            open_at, close_at = _minutes(entry["open"]), _minutes(entry["close"])
            if close_at > open_at:
                if open_at <= current <= close_at:
                    return True
            elif current >= open_at:
                return True

        previous = operating_hours.get(yesterday)
        if previous and not previous.get("closed", False):
            open_at, close_at = _minutes(previous["open"]), _minutes(previous["close"])
            if close_at <= open_at and current <= close_at:
                return True
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.debug(f"Unreadable operating hours treated as closed: {exc}")
        return False

    return False


class ListingAnnotator:
    """Turns raw listing rows into ListingResult for one instant and origin."""

    def __init__(self, now: datetime, timezone_name: str, origin: Optional[Coordinate] = None):
        self.now = as_utc(now)
        self.local_now = self.now.astimezone(pytz.timezone(timezone_name))
        self.origin = origin

    def annotate(self, record: ListingRecord) -> ListingResult:
        active_offers = [o for o in record.offers if is_offer_active(o, self.now)]
        coordinate = self.coordinate_of(record)

        distance = None
        if self.origin is not None and coordinate is not None:
            distance = distance_km(self.origin, coordinate)

        base = record.model_dump(exclude={"review_ratings", "offers"})
        return ListingResult(
            **base,
            distance_km=distance,
            rating=average_rating(record.review_ratings),
            review_count=len(record.review_ratings),
            is_open=is_open_at(record.operating_hours, self.local_now),
            active_offers_count=len(active_offers),
            popularity=sum(o.used_count for o in active_offers),
        )

    @staticmethod
    def coordinate_of(record: Any) -> Optional[Coordinate]:
        if record.latitude is None or record.longitude is None:
            return None
        return Coordinate(latitude=record.latitude, longitude=record.longitude)


def apply_filters(
    results: List[ListingResult],
    spec: FilterSpecification,
    radius_km: Optional[float],
) -> List[ListingResult]:
    """Exact radius, rating, price, open-now and offer filters; order is preserved."""
    origin = spec.origin
    kept: List[ListingResult] = []
    for result in results:
        if origin is not None and radius_km is not None:
            coordinate = ListingAnnotator.coordinate_of(result)
            if coordinate is None or haversine_km(origin, coordinate) > radius_km:
                continue
        if spec.rating_range is not None and not spec.rating_range.contains(result.rating):
            continue
        if spec.price_range is not None:
            if result.average_price is None or not spec.price_range.contains(result.average_price):
                continue
        if spec.open_now and not result.is_open:
            continue
        if spec.has_active_offers and result.active_offers_count == 0:
            continue
        kept.append(result)
    return kept


def matches_text(record: ListingRecord, query: str) -> bool:
    """Case-insensitive containment over name, description, category and tags."""
    needle = query.lower()
    return (
        needle in record.name.lower()
        or needle in (record.description or "").lower()
        or needle in record.category.lower()
        or any(needle in tag.lower() for tag in record.tags)
    )

