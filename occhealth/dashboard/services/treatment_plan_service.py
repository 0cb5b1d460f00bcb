"""Treatment plan service for dashboard API and CLI."""

import logging
from typing import Optional

from occhealth.dashboard.models.treatment_plans import TreatmentPlanSearchResponse
from occhealth.domain.models import TreatmentTimeline
from occhealth.domain.ports import EmployeeNotFoundError, ReportHistoryPort, Result, StorageError
from occhealth.domain.services.treatment_timeline import (
    TreatmentTimelineBuilder,
    plan_statistics,
    summarize_timeline,
)
from occhealth.infrastructure.audit.classification_audit_logger import ClassificationAuditLogger
from occhealth.infrastructure.classification_context import classification_context

logger = logging.getLogger(__name__)


class TreatmentPlanService:
    """Service for building Treatment Timelines and searching treatment plans."""

    def __init__(
        self,
        storage: ReportHistoryPort,
        audit_logger: Optional[ClassificationAuditLogger] = None,
    ):
        """Initialize TreatmentPlanService.

        Parameters:
            storage: Storage adapter instance
            audit_logger: Receives recommendations with no matching category
        """
        self.storage = storage
        self.audit_logger = audit_logger
        self.builder = TreatmentTimelineBuilder()

    def build(self, employee_id: str) -> Result[TreatmentTimeline]:
        """Build the treatment timeline for one employee.

        Parameters:
            employee_id: Patient (employee) identifier

        Returns:
            Result containing the TreatmentTimeline, or a failure with
            error_type "EmployeeNotFoundError" or "StorageError"
        """
        with classification_context(self.audit_logger, record_id=employee_id):
            try:
                employee = self.storage.get_employee(employee_id)
                if employee is None:
                    error = EmployeeNotFoundError(employee_id)
                    logger.info(str(error))
                    return Result.failure_result(error)

                snapshots = self.storage.list_report_snapshots(employee_id)
                timeline = self.builder.build(employee, snapshots)
            except StorageError as e:
                logger.error(f"Failed to build treatment timeline for {employee_id}: {str(e)}")
                return Result.failure_result(e)

        return Result.success_result(timeline)

    def search(
        self,
        query: Optional[str] = None,
        has_actions: Optional[bool] = None,
    ) -> Result[TreatmentPlanSearchResponse]:
        """Search treatment plans by employee name or id.

        Only employees with at least one report have a plan. Each plan is
        built in full so that the action filter and the statistics see the
        gender-filtered counts.

        Parameters:
            query: Case-insensitive text matched against employee id and name
            has_actions: Keep only plans with (True) or without (False) actions

        Returns:
            Result containing TreatmentPlanSearchResponse, or a failure with
            error_type "StorageError"
        """
        timelines = []
        try:
            for employee in self.storage.search_employees(query):
                with classification_context(self.audit_logger, record_id=employee.employee_id):
                    snapshots = self.storage.list_report_snapshots(employee.employee_id)
                    timeline = self.builder.build(employee, snapshots)
                if has_actions is None or timeline.has_actions == has_actions:
                    timelines.append(timeline)
        except StorageError as e:
            logger.error(f"Failed to search treatment plans: {str(e)}")
            return Result.failure_result(e)

        logger.info(
            f"Treatment plan search matched {len(timelines)} employees "
            f"(query={query!r}, has_actions={has_actions})"
        )
        return Result.success_result(TreatmentPlanSearchResponse(
            query=query,
            has_actions=has_actions,
            total=len(timelines),
            plans=[summarize_timeline(timeline) for timeline in timelines],
            statistics=plan_statistics(timelines),
        ))
