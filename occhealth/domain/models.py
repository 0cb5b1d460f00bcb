"""Domain Models for the Clinical Data Aggregation Engine.

This module defines the read models that flow through the engine: raw domain
records as they come out of storage, the normalized and classified values,
the Comprehensive Medical Report document and the Treatment Timeline.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are immutable (frozen) and validated on construction
    - Section and field names of the report are a contract consumed by the
      rendering layer and must not be renamed
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from occhealth.domain.enums import (
    ActionCategory,
    ActionStatus,
    ClinicalDomain,
    LevelBand,
    MoodBand,
    ResultCategory,
    RiskBand,
    ScreeningStatus,
    SleepBand,
    YesNo,
)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Storage-facing records
# ============================================================================

class DomainRecord(_FrozenModel):
    """One row of a clinical domain table for a patient.

    Parameters:
        domain: Clinical domain the row belongs to
        record_id: Row identifier (used to break created-at ties)
        employee_id: Patient (employee) identifier
        report_id: Medical report the row was captured for, if any
        fields: Raw column values keyed by column name
        created_at: Row creation timestamp
    """

    domain: ClinicalDomain
    record_id: Optional[str] = None
    employee_id: Optional[str] = None
    report_id: Optional[str] = None
    fields: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    def get(self, name: str, default: Any = None) -> Any:
        """Return a raw field value, or default when absent."""
        value = self.fields.get(name)
        return default if value is None else value


class ReportIdentity(_FrozenModel):
    """Base medical report joined with employee and attending staff."""

    report_id: str
    employee_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    id_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    doctor_name: Optional[str] = None
    nurse_name: Optional[str] = None
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def coerce_date_of_birth(cls, v: Any) -> Any:
        """Accept timestamps for the birth date column."""
        if isinstance(v, datetime):
            return v.date()
        return v


class EmployeeSummary(_FrozenModel):
    employee_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class ReportSnapshot(_FrozenModel):
    """One historical medical report with the domain rows captured for it.

    Parameters:
        report_id: Medical report identifier
        employee_id: Patient (employee) identifier
        report_date: Date the report was captured
        doctor_name: Attending doctor's display name
        nurse_name: Attending nurse's display name
        employee_name: Patient display name
        report_fields: Raw columns of the report row itself
        domains: Raw columns of each domain row linked to the report
    """

    report_id: str
    employee_id: str
    report_date: Optional[datetime] = None
    doctor_name: Optional[str] = None
    nurse_name: Optional[str] = None
    employee_name: Optional[str] = None
    report_fields: dict[str, Any] = Field(default_factory=dict)
    domains: dict[ClinicalDomain, dict[str, Any]] = Field(default_factory=dict)


class PatientRecordSet(_FrozenModel):
    """The current record of every registered domain for one patient.

    A domain slot holds None when the patient has no record in it, or when
    the record could not be fetched in time.
    """

    employee_id: str
    records: dict[ClinicalDomain, Optional[DomainRecord]] = Field(default_factory=dict)

    def get(self, domain: ClinicalDomain) -> Optional[DomainRecord]:
        return self.records.get(domain)

    def field(self, domain: ClinicalDomain, name: str) -> Any:
        """Raw value of one field of a domain's current record, or None."""
        record = self.records.get(domain)
        if record is None:
            return None
        return record.fields.get(name)

    @property
    def missing(self) -> list[ClinicalDomain]:
        return [domain for domain, record in self.records.items() if record is None]


# ============================================================================
# Normalization and classification results
# ============================================================================

class NormalizedField(_FrozenModel):
    """A raw field value mapped into a category label."""

    field: str
    category: str
    domain: Optional[ClinicalDomain] = None


class RiskAssessment(_FrozenModel):
    """Band computed for one health dimension, with the inputs that drove it."""

    dimension: str
    band: str
    inputs: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Comprehensive Medical Report sections
# ============================================================================

class ReportHeading(_FrozenModel):
    report_id: str
    doctor_name: str
    nurse_name: str
    date_updated: Optional[datetime] = None


class PersonalDetails(_FrozenModel):
    id: str
    name: str
    surname: str
    gender: str
    id_or_passport: str
    age: Optional[int] = None
    height_cm: Optional[float] = None
    waist: Optional[float] = None
    weight_kg: Optional[float] = None
    blood_pressure: str
    blood_pressure_status: str
    bmi: Optional[float] = None
    bmi_status: str
    whtr_percent: str
    whtr_status: str


class ClinicalExaminations(_FrozenModel):
    general_assessment: ResultCategory
    head_neck_incl_thyroid: ResultCategory
    cardiovascular: ResultCategory
    respiratory: ResultCategory
    gastrointestinal: ResultCategory
    musculoskeletal: ResultCategory
    neurological: ResultCategory
    skin: ResultCategory
    hearing_assessment: ResultCategory
    eyesight_status: ResultCategory


class LabTests(_FrozenModel):
    full_blood_count_an_esr: ResultCategory
    kidney_function: ResultCategory
    liver_enzymes: ResultCategory
    vitamin_d: ResultCategory
    uric_acid: ResultCategory
    hs_crp: ResultCategory
    homocysteine: ResultCategory
    total_cholesterol: str
    fasting_glucose: str
    insulin_level: ResultCategory
    thyroid_stimulating_hormone: ResultCategory
    adrenal_response: ResultCategory
    sex_hormones: ResultCategory
    psa: ResultCategory
    hiv: ResultCategory


class SpecialInvestigations(_FrozenModel):
    resting_ecg: ResultCategory
    stress_ecg: ResultCategory
    lung_function: ResultCategory
    urine_dipstix: ResultCategory
    kardiofit: ResultCategory
    nerveiq_cardio: ResultCategory
    nerveiq_cns: ResultCategory
    nerveiq: ResultCategory
    predicted_vo2_max: str
    body_fat_percentage: str


class MedicalHistory(_FrozenModel):
    high_blood_pressure: YesNo
    high_cholesterol: YesNo
    diabetes: YesNo
    asthma: YesNo
    epilepsy: YesNo
    thyroid_disease: YesNo
    inflammatory_bowel_disease: YesNo
    hepatitis: YesNo
    surgery: YesNo
    anxiety_or_depression: YesNo
    bipolar_mood_disorder: YesNo
    hiv: YesNo
    tb: YesNo
    disability: YesNo
    cardiac_event_in_family: YesNo
    cancer_family: YesNo


class Allergies(_FrozenModel):
    environmental: YesNo
    food: YesNo
    medication: YesNo


class CurrentMedicationSupplements(_FrozenModel):
    chronic_medication: str
    vitamins_supplements: str


class Screening(_FrozenModel):
    abdominal_ultrasound: ScreeningStatus
    colonoscopy: ScreeningStatus
    gastroscopy: ScreeningStatus
    bone_density_scan: ScreeningStatus
    annual_screening_prostate: ScreeningStatus


class MentalHealth(_FrozenModel):
    anxiety_level: LevelBand
    energy_level: LevelBand
    mood_level: MoodBand
    stress_level: LevelBand
    sleep_rating: SleepBand


class CardiovascularStrokeRisk(_FrozenModel):
    age_and_gender_risk: RiskBand
    blood_pressure: RiskBand
    cholesterol: RiskBand
    diabetes: RiskBand
    obesity: RiskBand
    waist_to_hip_ratio: RiskBand
    overall_diet: RiskBand
    exercise: RiskBand
    alcohol_consumption: RiskBand
    smoking: RiskBand
    stress_level: RiskBand
    previous_cardiac_event: RiskBand
    cardiac_history_in_family: RiskBand
    stroke_history_in_family: RiskBand
    reynolds_risk_score: RiskBand


class NotesRecommendations(_FrozenModel):
    recommendation_text: str = ""


class GenderHealthSection(_FrozenModel):
    """Men's or women's health section; empty for the other gender."""
    recommendation_text: str = ""


class Overview(_FrozenModel):
    notes_text: str = ""


class Disclaimer(_FrozenModel):
    disclaimer_text: str


class ComprehensiveReport(_FrozenModel):
    """The assembled, classified medical report for one patient.

    Immutable read view computed per request; it is never persisted. The
    risk assessments that produced the banded sections are kept on the
    model for inspection but are not part of the serialized document.
    """

    report_id: str
    employee_id: str
    assembled_at: Optional[datetime] = None
    report_heading: ReportHeading
    personal_details: PersonalDetails
    clinical_examinations: ClinicalExaminations
    lab_tests: LabTests
    special_investigations: SpecialInvestigations
    medical_history: MedicalHistory
    allergies: Allergies
    current_medication_supplements: CurrentMedicationSupplements
    screening: Screening
    mental_health: MentalHealth
    cardiovascular_stroke_risk: CardiovascularStrokeRisk
    notes_recommendations: NotesRecommendations
    mens_health: GenderHealthSection
    womens_health: GenderHealthSection
    overview: Overview
    important_information_disclaimer: Disclaimer
    assessments: list[RiskAssessment] = Field(default_factory=list, exclude=True)


# ============================================================================
# Treatment Timeline
# ============================================================================

class TreatmentAction(_FrozenModel):
    category: ActionCategory
    recommendation: str
    status: ActionStatus = ActionStatus.NOT_SPECIFIED
    source_field: str
    report_date: Optional[datetime] = None


class TreatmentReportEntry(_FrozenModel):
    """Actions recommended in one historical report."""

    report_id: str
    report_date: Optional[datetime] = None
    doctor: str
    nurse: str
    employee_name: str
    actions: list[TreatmentAction] = Field(default_factory=list)


class MedicalStaff(_FrozenModel):
    doctors: list[str] = Field(default_factory=list)
    nurses: list[str] = Field(default_factory=list)


class TreatmentTimeline(_FrozenModel):
    employee_id: str
    employee_name: str
    gender: str
    treatment_timeline: list[TreatmentReportEntry] = Field(default_factory=list)
    total_reports: int = 0
    total_actions: int = 0
    has_actions: bool = False
    medical_staff: MedicalStaff = Field(default_factory=MedicalStaff)
    generated_at: Optional[datetime] = None


class TreatmentPlanSummary(_FrozenModel):
    """Headline counts of one patient's treatment timeline, without the actions."""
    employee_id: str
    employee_name: str
    gender: str
    total_reports: int = 0
    total_actions: int = 0
    has_actions: bool = False
    medical_staff: MedicalStaff = Field(default_factory=MedicalStaff)


class TreatmentPlanStats(_FrozenModel):
    """Aggregate counts over a set of treatment timelines.

    actions_by_category has one entry per action category, in category
    order, including categories with no actions.
    """
    total_employees: int = 0
    employees_with_actions: int = 0
    employees_without_actions: int = 0
    total_reports: int = 0
    total_actions: int = 0
    actions_by_category: dict[str, int] = Field(default_factory=dict)
