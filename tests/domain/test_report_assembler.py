"""Unit tests for the report assembler."""

from datetime import date, datetime, timezone

import pytest

from occhealth.domain.enums import ClinicalDomain
from occhealth.domain.models import PatientRecordSet
from occhealth.domain.services.report_assembler import (
    DISCLAIMER_TEXT,
    ReportAssembler,
    compute_age,
    derive_assembled_at,
    format_doctor_name,
    format_percent,
)
from occhealth.infrastructure.classification_context import classification_context

from conftest import make_identity, make_record, make_record_set

REPORT_SECTIONS = [
    "report_heading",
    "personal_details",
    "clinical_examinations",
    "lab_tests",
    "special_investigations",
    "medical_history",
    "allergies",
    "current_medication_supplements",
    "screening",
    "mental_health",
    "cardiovascular_stroke_risk",
    "notes_recommendations",
    "mens_health",
    "womens_health",
    "overview",
    "important_information_disclaimer",
]


@pytest.fixture
def assembler():
    return ReportAssembler()


@pytest.fixture
def full_records():
    created = datetime(2024, 3, 1, 8, 0)
    return make_record_set({
        ClinicalDomain.VITALS: make_record(ClinicalDomain.VITALS, {
            "height_cm": 178.0, "weight_kg": 99.0, "waist": 93.5, "bmi": 31.2, "whtr": 0.525,
            "systolic_bp": 140, "diastolic_bp": 90,
            "blood_pressure_status": "High", "bmi_status": "Obese", "whtr_status": "High",
        }, created_at=created),
        ClinicalDomain.LAB_TESTS: make_record(ClinicalDomain.LAB_TESTS, {
            "total_cholesterol": "6.2", "fasting_glucose": "8.0", "psa": -1, "hormones": 1,
        }, created_at=created),
        ClinicalDomain.MEDICAL_HISTORY: make_record(ClinicalDomain.MEDICAL_HISTORY, {
            "high_blood_pressure": True, "heart_attack_60": True, "food": False,
            "chronic_medication": "Amlodipine 5mg",
        }, created_at=created),
        ClinicalDomain.MENTAL_HEALTH: make_record(ClinicalDomain.MENTAL_HEALTH, {
            "gad2_score": 1, "energy_levels": 2, "stress_level": 5, "mood_feeling": "Not at all",
        }, created_at=created),
        ClinicalDomain.MENS_HEALTH: make_record(ClinicalDomain.MENS_HEALTH, {
            "recommendation_text": "PSA test annually",
        }, created_at=created),
        ClinicalDomain.WOMENS_HEALTH: make_record(ClinicalDomain.WOMENS_HEALTH, {
            "recommendation_text": "Pap smear due",
        }, created_at=created),
        ClinicalDomain.CLINICAL_EXAMINATIONS: make_record(ClinicalDomain.CLINICAL_EXAMINATIONS, {
            "eyesight": -1, "skin": 1, "recommendation_text": "Wear glasses when driving",
        }, created_at=created),
        ClinicalDomain.NOTES: make_record(ClinicalDomain.NOTES, {
            "notes_text": "Overall healthy",
        }, created_at=created),
    })


class TestHelpers:
    """Assembly helpers."""

    def test_compute_age(self):
        assert compute_age(date(1980, 1, 1), date(2024, 3, 2)) == 44
        assert compute_age(date(1980, 3, 3), date(2024, 3, 2)) == 44
        assert compute_age(date(1980, 12, 31), date(2024, 1, 1)) == 44
        assert compute_age(None, date(2024, 3, 2)) is None
        assert compute_age(date(1980, 1, 1), None) is None

    def test_format_doctor_name(self):
        assert format_doctor_name("John Smith") == "Dr. John Smith"
        assert format_doctor_name("Dr. John Smith") == "Dr. John Smith"
        assert format_doctor_name("  ") == "Unassigned"
        assert format_doctor_name(None) == "Unassigned"

    def test_format_percent(self):
        assert format_percent(0.525) == "52.5%"
        assert format_percent("0.5") == "50%"
        assert format_percent(0) == ""
        assert format_percent(None) == ""

    def test_derive_assembled_at_uses_latest_stamp(self, full_records):
        identity = make_identity(date_updated=datetime(2024, 3, 2, 10, 0))
        assert derive_assembled_at(identity, full_records) == datetime(2024, 3, 2, 10, 0, tzinfo=timezone.utc)

    def test_derive_assembled_at_without_stamps(self):
        identity = make_identity(date_created=None, date_updated=None)
        assert derive_assembled_at(identity, PatientRecordSet(employee_id="EMP-001")) is None


class TestAssembly:
    """Full report assembly."""

    def test_every_section_is_present(self, assembler, full_records):
        document = assembler.assemble(make_identity(), full_records).model_dump()
        for section in REPORT_SECTIONS:
            assert section in document
        assert "assessments" not in document

    def test_heading_and_personal_details(self, assembler, full_records):
        report = assembler.assemble(make_identity(), full_records)

        assert report.report_heading.doctor_name == "Dr. John Smith"
        assert report.report_heading.nurse_name == "Jane Doe"
        details = report.personal_details
        assert details.age == 44
        assert details.blood_pressure == "140\\90"
        assert details.whtr_percent == "52.5%"
        assert details.bmi == 31.2
        assert details.bmi_status == "Obese"

    def test_classified_sections(self, assembler, full_records):
        report = assembler.assemble(make_identity(), full_records)

        assert report.clinical_examinations.eyesight_status == "Abnormal"
        assert report.clinical_examinations.skin == "Normal"
        assert report.clinical_examinations.respiratory == "Not Done"
        assert report.lab_tests.psa == "Abnormal"
        assert report.lab_tests.sex_hormones == "Normal"
        assert report.lab_tests.total_cholesterol == "6.2"
        assert report.medical_history.high_blood_pressure == "Yes"
        assert report.medical_history.asthma == "No"
        assert report.medical_history.cardiac_event_in_family == "Yes"
        assert report.allergies.food == "No"
        assert report.allergies.medication == "Unknown"
        assert report.current_medication_supplements.chronic_medication == "Amlodipine 5mg"
        assert report.current_medication_supplements.vitamins_supplements == "None"
        assert report.screening.annual_screening_prostate == "Required"
        assert report.mental_health.anxiety_level == "LOW"
        assert report.mental_health.mood_level == "POSITIVE"
        assert report.cardiovascular_stroke_risk.diabetes == "At Risk"
        assert report.cardiovascular_stroke_risk.previous_cardiac_event == "At Risk"
        assert report.notes_recommendations.recommendation_text == "Wear glasses when driving"
        assert report.overview.notes_text == "Overall healthy"
        assert report.important_information_disclaimer.disclaimer_text == DISCLAIMER_TEXT

    def test_male_report_has_only_mens_section(self, assembler, full_records):
        report = assembler.assemble(make_identity(gender="Male"), full_records)
        assert report.mens_health.recommendation_text == "PSA test annually"
        assert report.womens_health.recommendation_text == ""

    def test_female_report_has_only_womens_section(self, assembler, full_records):
        report = assembler.assemble(make_identity(gender="female"), full_records)
        assert report.womens_health.recommendation_text == "Pap smear due"
        assert report.mens_health.recommendation_text == ""

    def test_unknown_gender_leaves_both_sections_empty(self, assembler, full_records):
        report = assembler.assemble(make_identity(gender=None), full_records)
        assert report.mens_health.recommendation_text == ""
        assert report.womens_health.recommendation_text == ""

    def test_other_gender_leaves_both_sections_empty(self, assembler, full_records):
        report = assembler.assemble(make_identity(gender="Other"), full_records)
        assert report.personal_details.gender == "Other"
        assert report.mens_health.recommendation_text == ""
        assert report.womens_health.recommendation_text == ""

    def test_assembly_is_idempotent(self, assembler, full_records):
        identity = make_identity()
        first = assembler.assemble(identity, full_records).model_dump_json()
        second = assembler.assemble(identity, full_records).model_dump_json()
        assert first == second

    def test_assessments_are_kept_for_inspection(self, assembler, full_records):
        report = assembler.assemble(make_identity(), full_records)
        dimensions = {assessment.dimension for assessment in report.assessments}
        assert "diabetes" in dimensions
        assert "annual_screening_prostate" in dimensions


class TestMissingData:
    """Defaults when domains have no data."""

    def test_no_special_investigation_records(self, assembler, full_records):
        report = assembler.assemble(make_identity(), full_records)
        special = report.special_investigations.model_dump()
        assert set(special.values()) == {"Not Done"}

    def test_no_records_at_all(self, assembler):
        records = make_record_set({})
        report = assembler.assemble(make_identity(first_name=None, doctor_name=None, nurse_name=""), records)

        assert report.personal_details.blood_pressure == "0\\0"
        assert report.personal_details.whtr_percent == ""
        assert report.personal_details.height_cm is None
        assert report.personal_details.name == ""
        assert report.report_heading.doctor_name == "Unassigned"
        assert report.report_heading.nurse_name == "Unassigned"
        assert report.lab_tests.total_cholesterol == "Not Done"
        assert set(report.medical_history.model_dump().values()) == {"No"}
        assert set(report.allergies.model_dump().values()) == {"Unknown"}
        assert report.current_medication_supplements.chronic_medication == "None"
        assert report.overview.notes_text == ""
        assert report.mental_health.sleep_rating == "UNKNOWN"

    def test_vitals_without_pressure_readings(self, assembler):
        records = make_record_set({ClinicalDomain.VITALS: make_record(ClinicalDomain.VITALS, {"bmi": 22.0})})
        report = assembler.assemble(make_identity(), records)
        assert report.personal_details.blood_pressure == "0\\0"

    def test_explicit_assembled_at_sets_age_reference(self, assembler):
        report = assembler.assemble(
            make_identity(),
            make_record_set({}),
            assembled_at=datetime(2030, 6, 1, tzinfo=timezone.utc),
        )
        assert report.personal_details.age == 50
        assert report.assembled_at == datetime(2030, 6, 1, tzinfo=timezone.utc)

    def test_no_timestamps_means_no_age(self, assembler):
        identity = make_identity(date_created=None, date_updated=None)
        records = make_record_set({})

        first = assembler.assemble(identity, records)
        second = assembler.assemble(identity, records)

        assert first.assembled_at is None
        assert first.personal_details.age is None
        assert first.model_dump_json() == second.model_dump_json()

    def test_age_ignores_birthday_for_risk_band(self, assembler):
        # Birthday not yet reached on the report date still counts the full year.
        identity = make_identity(gender="Female", date_of_birth=date(1979, 6, 1))
        report = assembler.assemble(identity, make_record_set({}))

        assert report.personal_details.age == 45
        assert report.cardiovascular_stroke_risk.age_and_gender_risk == "At Risk"

    def test_unmatched_lab_text_is_recorded_once(self, assembler, audit_logger):
        records = make_record_set({
            ClinicalDomain.LAB_TESTS: make_record(ClinicalDomain.LAB_TESTS, {"psa": "borderline"}),
        })
        with classification_context(audit_logger, record_id="RPT-001"):
            report = assembler.assemble(make_identity(), records)

        assert report.lab_tests.psa == "Unknown"
        psa_events = audit_logger.get_logs(field_name="psa")
        assert len(psa_events) == 1
        assert psa_events[0]["record_id"] == "RPT-001"
