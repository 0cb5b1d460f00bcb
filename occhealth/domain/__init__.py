"""Domain layer for the Occupational Health Insight Engine.

This module contains the core business logic: domain models, the field
normalizer, the risk classification engine and the storage ports. All domain
code is pure Python with no external dependencies beyond Pydantic.
"""

from .models import (
    ComprehensiveReport,
    DomainRecord,
    PatientRecordSet,
    ReportIdentity,
    TreatmentTimeline,
)

__all__ = [
    "ComprehensiveReport",
    "DomainRecord",
    "PatientRecordSet",
    "ReportIdentity",
    "TreatmentTimeline",
]
