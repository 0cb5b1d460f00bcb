"""Dashboard services.

Services wrap the domain builders for the API and CLI and report outcomes as
Result objects.
"""

from occhealth.dashboard.services.classification_service import ClassificationService
from occhealth.dashboard.services.report_service import ComprehensiveReportService
from occhealth.dashboard.services.treatment_plan_service import TreatmentPlanService

__all__ = ["ClassificationService", "ComprehensiveReportService", "TreatmentPlanService"]
