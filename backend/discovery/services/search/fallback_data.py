# backend/discovery/services/search/fallback_data.py
"""
Bundled sample dataset served when the listing store cannot answer.

Everything here is plain data. Offer validity windows are built relative to
the caller's clock so the sample offers are always current, while listing
timestamps are fixed so that "newest" ordering is stable.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ...models.listing import DiscountType, OfferStatus
from ...schemas.search import CategorySummary, ListingRecord, OfferRecord, Suggestion, SuggestionType

PLACEHOLDER_LOGO = "/api/placeholder/100/100"
PLACEHOLDER_COVER = "/api/placeholder/400/200"


def _hours(weekday: tuple, friday: tuple, saturday: tuple, sunday: tuple, closed: tuple = ()) -> dict:
    schedule = {}
    for day in ("monday", "tuesday", "wednesday", "thursday"):
        schedule[day] = {"open": weekday[0], "close": weekday[1], "closed": day in closed}
    schedule["friday"] = {"open": friday[0], "close": friday[1], "closed": "friday" in closed}
    schedule["saturday"] = {"open": saturday[0], "close": saturday[1], "closed": "saturday" in closed}
    schedule["sunday"] = {"open": sunday[0], "close": sunday[1], "closed": "sunday" in closed}
    return schedule


def _ratings(fives: int, fours: int) -> List[float]:
    return [5.0] * fives + [4.0] * fours


_LISTINGS = [
    {
        "id": "mock-biz-1",
        "name": "Mario's Pizza Palace",
        "description": "Authentic Italian pizzas made with fresh ingredients and traditional recipes.",
        "category": "Restaurant",
        "tags": ["pizza", "italian", "delivery", "takeout"],
        "address": "123 Main Street",
        "city": "Downtown",
        "state": "NY",
        "latitude": 40.7128,
        "longitude": -74.0060,
        "phone": "+1-555-PIZZA",
        "website": "https://marios-pizza.example.com",
        "operating_hours": _hours(("11:00", "22:00"), ("11:00", "23:00"), ("11:00", "23:00"), ("12:00", "21:00")),
        "average_price": 25.0,
        "created_at": datetime(2023, 3, 15, tzinfo=timezone.utc),
        "review_ratings": _ratings(64, 64),  # 4.5 over 128
    },
    {
        "id": "mock-biz-2",
        "name": "Brew & Bean Café",
        "description": "Specialty coffee roasters serving artisanal drinks and fresh pastries.",
        "category": "Café",
        "tags": ["coffee", "pastries", "wifi", "coworking"],
        "address": "456 Coffee Lane",
        "city": "Uptown",
        "state": "NY",
        "latitude": 40.7589,
        "longitude": -73.9851,
        "phone": "+1-555-BREW",
        "website": "https://brew-bean.example.com",
        "operating_hours": _hours(("07:00", "20:00"), ("07:00", "21:00"), ("08:00", "21:00"), ("08:00", "19:00")),
        "average_price": 8.0,
        "created_at": datetime(2023, 6, 1, tzinfo=timezone.utc),
        "review_ratings": _ratings(62, 27),  # 4.7 over 89
    },
    {
        "id": "mock-biz-3",
        "name": "Serenity Spa & Wellness",
        "description": "Relax and rejuvenate with our full-service spa treatments and wellness programs.",
        "category": "Wellness",
        "tags": ["spa", "massage", "wellness", "relaxation"],
        "address": "789 Zen Avenue",
        "city": "Wellness District",
        "state": "NJ",
        "latitude": 40.7282,
        "longitude": -74.0776,
        "phone": "+1-555-SPA",
        "website": "https://serenity-spa.example.com",
        "operating_hours": _hours(("09:00", "20:00"), ("09:00", "21:00"), ("08:00", "21:00"), ("10:00", "18:00")),
        "average_price": 90.0,
        "created_at": datetime(2023, 9, 10, tzinfo=timezone.utc),
        "review_ratings": _ratings(125, 31),  # 4.8 over 156
    },
    {
        "id": "mock-biz-4",
        "name": "TechMart Electronics",
        "description": "Latest gadgets, smartphones, laptops, and tech accessories at competitive prices.",
        "category": "Electronics",
        "tags": ["electronics", "smartphones", "laptops", "gadgets"],
        "address": "321 Tech Boulevard",
        "city": "Tech District",
        "state": "NY",
        "latitude": 40.7505,
        "longitude": -73.9934,
        "phone": "+1-555-TECH",
        "website": "https://techmart.example.com",
        "operating_hours": _hours(("10:00", "21:00"), ("10:00", "22:00"), ("10:00", "22:00"), ("11:00", "20:00")),
        "average_price": 150.0,
        "created_at": datetime(2024, 1, 20, tzinfo=timezone.utc),
        "review_ratings": _ratings(70, 164),  # 4.3 over 234
    },
    {
        "id": "mock-biz-5",
        "name": "The Garden Restaurant",
        "description": "Seasonal farm-to-table plates served in a leafy courtyard.",
        "category": "Restaurant",
        "tags": ["farm-to-table", "brunch", "outdoor seating", "desserts"],
        "address": "55 Greenway Plaza",
        "city": "Midtown",
        "state": "NY",
        "latitude": 40.7411,
        "longitude": -73.9897,
        "phone": "+1-555-GARDEN",
        "website": "https://garden-restaurant.example.com",
        "operating_hours": _hours(
            ("12:00", "22:00"), ("12:00", "23:30"), ("10:00", "23:30"), ("10:00", "21:00"), closed=("monday",)
        ),
        "average_price": 40.0,
        "created_at": datetime(2024, 5, 5, tzinfo=timezone.utc),
        "review_ratings": _ratings(21, 31),  # 4.4 over 52
    },
]

# (id, listing_id, title, description, type, value, minimum, usage_limit, used_count, days_valid, status)
_OFFERS = [
    ("mock-1", "mock-biz-1", "50% Off All Pizzas",
     "Get 50% discount on all pizza varieties. Valid for dine-in and takeout.",
     DiscountType.PERCENTAGE, 50, 30, 100, 45, 7, OfferStatus.ACTIVE),
    ("mock-6", "mock-biz-1", "Free Garlic Bread",
     "Complimentary garlic bread with any large pizza.",
     DiscountType.FREE_ITEM, 0, 20, 60, 12, 21, OfferStatus.ACTIVE),
    ("mock-7", "mock-biz-1", "Lunch Combo Deal",
     "Two slices and a drink at a fixed price on weekdays.",
     DiscountType.FIXED_AMOUNT, 5, None, 40, 40, 14, OfferStatus.PAUSED),
    ("mock-2", "mock-biz-2", "Buy 2 Get 1 Free Coffee",
     "Perfect deal for coffee lovers! Buy any 2 beverages and get 1 free.",
     DiscountType.BUY_X_GET_Y, 2, 10, 50, 38, 3, OfferStatus.ACTIVE),
    ("mock-3", "mock-biz-3", "$20 Off Spa Services",
     "Relax and rejuvenate with $20 off on all spa and wellness treatments.",
     DiscountType.FIXED_AMOUNT, 20, 100, 30, 22, 14, OfferStatus.ACTIVE),
    ("mock-8", "mock-biz-3", "20% Off First Massage",
     "New guests save 20% on their first massage session.",
     DiscountType.PERCENTAGE, 20, None, 40, 9, 10, OfferStatus.ACTIVE),
    ("mock-9", "mock-biz-3", "Couples Package Deal",
     "Save on a side-by-side massage and steam room package for two.",
     DiscountType.FIXED_AMOUNT, 50, 250, 20, 4, 30, OfferStatus.ACTIVE),
    ("mock-4", "mock-biz-4", "30% Off Electronics",
     "Huge savings on smartphones, laptops, and accessories. Limited time offer!",
     DiscountType.PERCENTAGE, 30, 200, 25, 18, 5, OfferStatus.ACTIVE),
    ("mock-10", "mock-biz-4", "Free Screen Protector",
     "Free tempered-glass screen protector with any smartphone purchase.",
     DiscountType.FREE_ITEM, 0, 300, 200, 15, 30, OfferStatus.ACTIVE),
    ("mock-11", "mock-biz-4", "10% Off Accessories",
     "Cases, chargers and cables at 10% off.",
     DiscountType.PERCENTAGE, 10, None, 150, 11, 20, OfferStatus.ACTIVE),
    ("mock-12", "mock-biz-4", "$100 Off Laptops",
     "Take $100 off any laptop over $800.",
     DiscountType.FIXED_AMOUNT, 100, 800, 30, 7, 12, OfferStatus.ACTIVE),
    ("mock-13", "mock-biz-4", "Buy 1 Get 1 Cables",
     "Buy any charging cable and get a second one free.",
     DiscountType.BUY_X_GET_Y, 1, None, 80, 6, 9, OfferStatus.ACTIVE),
    ("mock-5", "mock-biz-5", "Free Dessert with Main Course",
     "Order any main course and get a complimentary dessert of your choice.",
     DiscountType.FREE_ITEM, 0, 40, 75, 35, 10, OfferStatus.ACTIVE),
]  # fmt: skip

_CATEGORY_DETAILS = [
    ("Restaurant", "Restaurants, cafes, and dining establishments", "🍽️"),
    ("Café", "Coffee shops and casual dining", "☕"),
    ("Wellness", "Spas, salons, and wellness centers", "🧘"),
    ("Electronics", "Tech stores and electronics retailers", "📱"),
    ("Retail", "Shopping and retail stores", "🛍️"),
    ("Services", "Professional and personal services", "🔧"),
]

_FREE_TEXT_SUGGESTIONS = ["pizza delivery", "coffee near me", "spa massage", "electronics store"]


def fallback_offers(now: Optional[datetime] = None) -> List[OfferRecord]:
    """Sample offers whose windows started a day before now."""
    now = now or datetime.now(timezone.utc)
    offers = []
    for (
        offer_id, listing_id, title, description, discount_type, value,
        minimum, usage_limit, used_count, days_valid, status,
    ) in _OFFERS:  # fmt: skip
        offers.append(
            OfferRecord(
                id=offer_id,
                listing_id=listing_id,
                title=title,
                description=description,
                discount_type=discount_type,
                discount_value=value,
                minimum_order_value=minimum,
                valid_from=now - timedelta(days=1),
                valid_until=now + timedelta(days=days_valid),
                usage_limit=usage_limit,
                used_count=used_count,
                status=status,
            )
        )
    return offers


def fallback_listings(now: Optional[datetime] = None) -> List[ListingRecord]:
    offers = fallback_offers(now)
    listings = []
    for data in _LISTINGS:
        listings.append(
            ListingRecord(
                **data,
                logo_url=PLACEHOLDER_LOGO,
                cover_image_url=PLACEHOLDER_COVER,
                updated_at=data["created_at"],
                offers=[o for o in offers if o.listing_id == data["id"]],
            )
        )
    return listings


def fallback_categories() -> List[CategorySummary]:
    """Sample categories counted over the sample listings; most populated first."""
    counts: dict = {}
    for data in _LISTINGS:
        counts[data["category"]] = counts.get(data["category"], 0) + 1
    summaries = [
        CategorySummary(name=name, count=counts.get(name, 0), description=description, icon=icon)
        for name, description, icon in _CATEGORY_DETAILS
    ]
    return sorted(summaries, key=lambda c: (-c.count, c.name))


def fallback_suggestions() -> List[Suggestion]:
    """Local suggestion table: listings, then categories, then free-text queries."""
    suggestions = [
        Suggestion(type=SuggestionType.LISTING, text=data["name"], metadata={"category": data["category"]})
        for data in _LISTINGS
    ]
    suggestions.extend(Suggestion(type=SuggestionType.CATEGORY, text=name) for name, _, _ in _CATEGORY_DETAILS)
    suggestions.extend(Suggestion(type=SuggestionType.FREE_TEXT, text=text) for text in _FREE_TEXT_SUGGESTIONS)
    return suggestions
