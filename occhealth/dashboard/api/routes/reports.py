"""Comprehensive Medical Report endpoint for dashboard API."""

import logging

from fastapi import APIRouter, HTTPException

from occhealth.dashboard.api.dependencies import AuditLoggerDep, StorageDep
from occhealth.dashboard.services.report_service import ComprehensiveReportService
from occhealth.domain.models import ComprehensiveReport
from occhealth.infrastructure.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports/comprehensive/{report_id}", response_model=ComprehensiveReport)
async def get_comprehensive_report(
    report_id: str,
    storage: StorageDep,
    audit_logger: AuditLoggerDep,
) -> ComprehensiveReport:
    """Get the Comprehensive Medical Report for one medical report.

    Every section is always present; domains without data carry their
    documented defaults. Returns 404 when the base report does not exist.
    """
    service = ComprehensiveReportService(
        storage,
        audit_logger=audit_logger,
        timeout=settings.domain_fetch_timeout,
    )
    result = await service.build(report_id)

    if result.is_success():
        return result.value
    if result.error_type == "ReportNotFoundError":
        raise HTTPException(status_code=404, detail=result.error)
    raise HTTPException(status_code=500, detail="Failed to build comprehensive report")
