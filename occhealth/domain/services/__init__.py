"""Domain services: record resolution, report assembly and treatment timelines."""

from occhealth.domain.services.record_resolver import DomainRecordResolver
from occhealth.domain.services.report_assembler import ReportAssembler
from occhealth.domain.services.treatment_timeline import TreatmentTimelineBuilder

__all__ = ["DomainRecordResolver", "ReportAssembler", "TreatmentTimelineBuilder"]
