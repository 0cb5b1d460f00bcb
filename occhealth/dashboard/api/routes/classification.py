"""Classification review endpoint for dashboard API."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from occhealth.dashboard.api.dependencies import AuditLoggerDep
from occhealth.dashboard.models.classification import AmbiguitiesResponse
from occhealth.dashboard.services.classification_service import ClassificationService

router = APIRouter(prefix="/api", tags=["classification"])


@router.get("/classification/ambiguities", response_model=AmbiguitiesResponse)
async def get_classification_ambiguities(
    audit_logger: AuditLoggerDep,
    field_name: Optional[str] = Query(None, description="Filter by classified field"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of events to return"),
) -> AmbiguitiesResponse:
    """Get free-text values that matched no keyword pattern, newest first."""
    result = ClassificationService(audit_logger).get_ambiguities(field_name=field_name, limit=limit)

    if result.is_success():
        return result.value
    raise HTTPException(status_code=500, detail=str(result.error))
