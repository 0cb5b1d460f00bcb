"""Treatment plan endpoints for dashboard API."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from occhealth.dashboard.api.dependencies import AuditLoggerDep, StorageDep
from occhealth.dashboard.models.treatment_plans import TreatmentPlanSearchResponse
from occhealth.dashboard.services.treatment_plan_service import TreatmentPlanService
from occhealth.domain.models import TreatmentTimeline

router = APIRouter(prefix="/api", tags=["treatment-plans"])


@router.get("/employees/{employee_id}/treatment-plan", response_model=TreatmentTimeline)
def get_treatment_plan(
    employee_id: str,
    storage: StorageDep,
    audit_logger: AuditLoggerDep,
) -> TreatmentTimeline:
    """Get the treatment timeline across all of an employee's reports.

    Actions are filtered by the employee's gender; summary counts reflect
    the filtered actions. Returns 404 for an unknown employee.
    """
    result = TreatmentPlanService(storage, audit_logger=audit_logger).build(employee_id)

    if result.is_success():
        return result.value
    if result.error_type == "EmployeeNotFoundError":
        raise HTTPException(status_code=404, detail=result.error)
    raise HTTPException(status_code=500, detail="Failed to build treatment plan")


@router.get("/treatment-plans", response_model=TreatmentPlanSearchResponse)
def search_treatment_plans(
    storage: StorageDep,
    audit_logger: AuditLoggerDep,
    query: Optional[str] = Query(None, description="Text matched against employee name or id"),
    has_actions: Optional[bool] = Query(None, description="Only plans with (true) or without (false) actions"),
) -> TreatmentPlanSearchResponse:
    """Search treatment plan summaries.

    Every employee with at least one report has a plan. Summaries carry the
    gender-filtered report and action counts and the attending staff; the
    statistics aggregate over the matching plans.
    """
    result = TreatmentPlanService(storage, audit_logger=audit_logger).search(query=query, has_actions=has_actions)

    if result.is_success():
        return result.value
    raise HTTPException(status_code=500, detail="Failed to search treatment plans")
