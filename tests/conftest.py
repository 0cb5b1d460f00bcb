"""Shared fixtures: a seeded in-memory clinic database and record builders."""

from datetime import date, datetime
from typing import Any, Optional

import pytest

from occhealth.adapters.storage.duckdb_adapter import DuckDBAdapter
from occhealth.domain.enums import ClinicalDomain
from occhealth.domain.models import DomainRecord, PatientRecordSet, ReportIdentity
from occhealth.infrastructure.audit.classification_audit_logger import ClassificationAuditLogger

CLINIC_ROWS: list[tuple[str, dict[str, Any]]] = [
    ("users", {"id": "DOC1", "name": "John", "surname": "Smith", "role": "doctor"}),
    ("users", {"id": "NUR1", "name": "Jane", "surname": "Doe", "role": "nurse"}),
    ("employee", {
        "id": "EMP-001", "name": "Sipho", "surname": "Ndlovu", "gender": "Male",
        "id_number": "8001015009087", "date_of_birth": date(1980, 1, 1),
    }),
    ("employee", {
        "id": "EMP-002", "name": "Thandi", "surname": "Mokoena", "gender": "Female",
        "id_number": "9006150123081", "date_of_birth": date(1990, 6, 15),
    }),
    ("employee", {"id": "EMP-003", "name": "Lerato", "surname": "Khumalo", "gender": "Female"}),
    ("medical_report", {
        "id": "RPT-002", "employee_id": "EMP-001", "doctor": "DOC1",
        "recommendation_text": "Repeat lipid panel in 6 months",
        "date_created": datetime(2023, 3, 1, 9, 0),
    }),
    ("medical_report", {
        "id": "RPT-001", "employee_id": "EMP-001", "doctor": "DOC1", "nurse": "NUR1",
        "recommendation_text": "Refer to cardiologist; Start daily exercise",
        "date_created": datetime(2024, 3, 1, 9, 0),
        "date_updated": datetime(2024, 3, 2, 10, 0),
    }),
    ("medical_report", {
        "id": "RPT-010", "employee_id": "EMP-002", "doctor": "DOC1",
        "date_created": datetime(2024, 5, 1, 9, 0),
    }),
    ("vitals_clinical_metrics", {
        "id": "V-1", "employee_id": "EMP-001", "report_id": "RPT-002",
        "date_created": datetime(2023, 3, 1, 8, 0),
        "systolic_bp": 120, "diastolic_bp": 80, "blood_pressure_status": "Normal",
    }),
    ("vitals_clinical_metrics", {
        "id": "V-2", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "height_cm": 178.0, "weight_kg": 99.0, "waist": 93.5, "bmi": 31.2, "whtr": 0.525,
        "systolic_bp": 140, "diastolic_bp": 90,
        "blood_pressure_status": "High", "bmi_status": "Obese", "whtr_status": "High",
    }),
    ("lab_tests", {
        "id": "L-1", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0), "total_cholesterol": "4.0",
    }),
    ("lab_tests", {
        "id": "L-2", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "total_cholesterol": "6.2", "fasting_glucose": "5.1",
        "psa": -1, "kidney_function": 1, "hormones": 0,
    }),
    ("employee_medical_history", {
        "id": "H-1", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "high_blood_pressure": True, "diabetes": False, "heart_attack": True,
        "chronic_medication": "Amlodipine 5mg",
    }),
    ("lifestyle", {
        "id": "LS-1", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "smoke": True, "alcohol_score": 3.0, "exercise": "Seldom",
        "diet_overall": "Good", "sleep_rating": "Restless",
    }),
    ("mental_health", {
        "id": "M-1", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "gad2_score": 1.0, "energy_levels": 5.0, "stress_level": 8.0,
        "mood_feeling": "Several days",
    }),
    ("mens_health", {
        "id": "MH-1", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "recommendation_text": "PSA test annually",
    }),
    ("womens_health", {
        "id": "WH-1", "employee_id": "EMP-001", "report_id": "RPT-001",
        "date_created": datetime(2024, 3, 1, 8, 0),
        "recommendation_text": "Schedule mammogram",
    }),
    ("mens_health", {
        "id": "MH-2", "employee_id": "EMP-002", "report_id": "RPT-010",
        "date_created": datetime(2024, 5, 1, 8, 0),
        "recommendation_text": "Prostate check",
    }),
    ("womens_health", {
        "id": "WH-2", "employee_id": "EMP-002", "report_id": "RPT-010",
        "date_created": datetime(2024, 5, 1, 8, 0),
        "recommendation_text": "Pap smear due",
    }),
]


def seed_clinic(storage) -> None:
    """Create the schema and load the sample clinic."""
    result = storage.initialize_schema()
    assert result.is_success(), result.error
    for table, row in CLINIC_ROWS:
        result = storage.insert_row(table, row)
        assert result.is_success(), result.error


def make_record(
    domain: ClinicalDomain,
    fields: Optional[dict[str, Any]] = None,
    record_id: str = "R-1",
    created_at: Optional[datetime] = None,
    employee_id: str = "EMP-001",
) -> DomainRecord:
    return DomainRecord(
        domain=domain,
        record_id=record_id,
        employee_id=employee_id,
        fields=fields or {},
        created_at=created_at,
    )


def make_record_set(records: dict[ClinicalDomain, DomainRecord], employee_id: str = "EMP-001") -> PatientRecordSet:
    """A record set with every domain present; unlisted domains are None."""
    return PatientRecordSet(
        employee_id=employee_id,
        records={domain: records.get(domain) for domain in ClinicalDomain},
    )


def make_identity(**overrides: Any) -> ReportIdentity:
    values = {
        "report_id": "RPT-001",
        "employee_id": "EMP-001",
        "first_name": "Sipho",
        "last_name": "Ndlovu",
        "gender": "Male",
        "id_number": "8001015009087",
        "date_of_birth": date(1980, 1, 1),
        "doctor_name": "John Smith",
        "nurse_name": "Jane Doe",
        "date_created": datetime(2024, 3, 1, 9, 0),
        "date_updated": datetime(2024, 3, 2, 10, 0),
    }
    values.update(overrides)
    return ReportIdentity(**values)


@pytest.fixture
def clinic_storage():
    """In-memory DuckDB adapter loaded with the sample clinic."""
    storage = DuckDBAdapter(db_path=":memory:")
    seed_clinic(storage)
    yield storage
    storage.close()


@pytest.fixture
def audit_logger():
    return ClassificationAuditLogger()
