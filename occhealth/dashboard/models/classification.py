"""Classification review models for dashboard API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AmbiguityEntry(BaseModel):
    """One free-text value that matched no keyword pattern.

    Attributes:
        event_id: Unique event identifier
        field_name: Classified field (e.g. sleep_rating, treatment_category)
        raw_value: The unmatched text
        fallback: Category applied instead
        domain: Originating clinical domain
        record_id: Report or employee being processed
        logged_at: When the event was recorded
    """
    event_id: str
    field_name: str
    raw_value: str
    fallback: str
    domain: Optional[str] = None
    record_id: Optional[str] = None
    logged_at: datetime


class AmbiguitiesResponse(BaseModel):
    """Classification ambiguities, newest first."""
    total: int = Field(..., ge=0, description="Matching events in the buffer")
    events: list[AmbiguityEntry] = Field(default_factory=list)
