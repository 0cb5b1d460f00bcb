"""Treatment plan search models for dashboard API."""

from typing import Optional

from pydantic import BaseModel, Field

from occhealth.domain.models import TreatmentPlanStats, TreatmentPlanSummary


class TreatmentPlanSearchResponse(BaseModel):
    """Treatment plan summaries matching a search, with their statistics.

    Attributes:
        query: Name or employee id text searched for (None for all)
        has_actions: Action filter applied (None for no filter)
        total: Number of matching plans
        plans: Matching plans ordered by employee id
        statistics: Aggregate counts over the matching plans
    """
    query: Optional[str] = None
    has_actions: Optional[bool] = None
    total: int = Field(..., ge=0, description="Matching treatment plans")
    plans: list[TreatmentPlanSummary] = Field(default_factory=list)
    statistics: TreatmentPlanStats = Field(default_factory=TreatmentPlanStats)
