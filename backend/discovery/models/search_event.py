# backend/discovery/models/search_event.py
"""
Search Event Model for analytics tracking.

Every text search that returns a first page is appended here; rows are never
deduplicated or updated. Popular terms group on normalized_term, which holds
the trimmed, lowercased search text.
"""

from datetime import datetime, timezone

import ulid
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from ..database import Base


def normalize_search_term(term: str) -> str:
    return " ".join((term or "").split()).lower()


class SearchEvent(Base):
    """Append-only event log for search analytics."""

    __tablename__ = "search_events"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))

    # Users live in the identity service; anonymous searches have no user
    user_id = Column(String(64), nullable=True, index=True)

    search_term = Column(Text, nullable=False)
    normalized_term = Column(String(255), nullable=False, index=True)
    filters = Column(JSON, nullable=True, comment="Non-default filters of the search")
    results_count = Column(Integer, nullable=False, default=0)
    search_time_ms = Column(Integer, nullable=False, default=0)
    degraded = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<SearchEvent(id={self.id}, term='{self.search_term[:30]}', user_id={self.user_id})>"
