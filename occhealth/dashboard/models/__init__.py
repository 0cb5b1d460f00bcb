"""Dashboard Pydantic models."""

from occhealth.dashboard.models.health import HealthResponse, DatabaseHealth
from occhealth.dashboard.models.classification import AmbiguityEntry, AmbiguitiesResponse
from occhealth.dashboard.models.treatment_plans import TreatmentPlanSearchResponse
