"""Report Assembler.

Builds the Comprehensive Medical Report from the base report identity and
the patient's current domain records. Every section and leaf is always
present: missing domain data yields the documented defaults, never a
missing key.

Assembly is a pure function of its inputs. The assembly timestamp is
derived from the data itself (the latest of the report's update/creation
time and the records' creation times) unless the caller supplies one, so
assembling twice from identical data produces identical documents.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from occhealth.domain.enums import ClinicalDomain, Gender, YesNo
from occhealth.domain.models import (
    Allergies,
    CardiovascularStrokeRisk,
    ClinicalExaminations,
    ComprehensiveReport,
    CurrentMedicationSupplements,
    Disclaimer,
    GenderHealthSection,
    LabTests,
    MedicalHistory,
    MentalHealth,
    NotesRecommendations,
    Overview,
    PatientRecordSet,
    PersonalDetails,
    ReportHeading,
    ReportIdentity,
    Screening,
    SpecialInvestigations,
)
from occhealth.domain.normalizer import (
    as_section,
    as_utc,
    is_blank,
    is_flag_set,
    normalize_fields,
    normalize_flag,
    normalize_gender,
    text_or_default,
    to_float,
)
from occhealth.domain.risk_engine import (
    assess_cardiovascular,
    assess_mental_health,
    assess_screening,
    bands_of,
    cardiovascular_inputs,
    mental_health_inputs,
    screening_inputs,
)

logger = logging.getLogger(__name__)

NOT_DONE_TEXT = "Not Done"
UNASSIGNED = "Unassigned"
NO_MEDICATION = "None"

DISCLAIMER_TEXT = (
    "Thank you for trusting us with your medical. It is important to note that there is no "
    "sign, symptom, or result from a special investigation that can conclusively say a person "
    "is free from any disease and is completely healthy. We make assessments and decisions "
    "based on the highest quality information we have at hand. The insidious nature of some "
    "diseases may still evade detection. Please proactively report any changes in your health "
    "and wellbeing that occur after your medical is completed. Regular, proactive screening "
    "facilitates earlier detection and better prevention of disease through early intervention "
    "and lifestyle change.\n\n"
    "To book with our team of doctors or engage our health coach to help facilitate healthy "
    "change, click here.\n\n"
    "• Merchant Place: 011 685 5021 | staywell@healthwithheart.co.za\n"
    "• BankCity: 087 311 5011 | bewell@healthwithheart.co.za\n"
    "• Fairland: 011 632 4664 | feelwell@healthwithheart.co.za\n"
    "• WhatsApp: 079 262 8749\n\n"
    "Wishing you good health, the greatest asset you can invest in.\n\n"
    "Health with Heart Medical Team\n"
    "www.healthwithheart.co.za"
)

# Report leaf -> source column, in report order.
CLINICAL_EXAMINATION_COLUMNS = {
    "general_assessment": "general_assessment",
    "head_neck_incl_thyroid": "head_neck_incl_thyroid",
    "cardiovascular": "cardiovascular",
    "respiratory": "respiratory",
    "gastrointestinal": "gastrointestinal",
    "musculoskeletal": "musculoskeletal",
    "neurological": "neurological",
    "skin": "skin",
    "hearing_assessment": "hearing_assessment",
    "eyesight_status": "eyesight",
}

LAB_RESULT_COLUMNS = {
    "full_blood_count_an_esr": "full_blood_count_an_esr",
    "kidney_function": "kidney_function",
    "liver_enzymes": "liver_enzymes",
    "vitamin_d": "vitamin_d",
    "uric_acid": "uric_acid",
    "hs_crp": "hs_crp",
    "homocysteine": "homocysteine",
    "insulin_level": "insulin_level",
    "thyroid_stimulating_hormone": "thyroid_stimulating_hormone",
    "adrenal_response": "adrenal_response",
    "sex_hormones": "hormones",
    "psa": "psa",
    "hiv": "hiv",
}

LAB_MEASUREMENT_COLUMNS = ("total_cholesterol", "fasting_glucose")

SPECIAL_INVESTIGATION_COLUMNS = {
    "resting_ecg": "resting_ecg",
    "stress_ecg": "stress_ecg",
    "lung_function": "lung_function",
    "urine_dipstix": "urine_dipstix",
    "kardiofit": "kardiofit",
    "nerveiq_cardio": "nerveiq_cardio",
    "nerveiq_cns": "nerveiq_cns",
    "nerveiq": "nerveiq",
}

SPECIAL_MEASUREMENT_COLUMNS = ("predicted_vo2_max", "body_fat_percentage")

MEDICAL_HISTORY_COLUMNS = {
    "high_blood_pressure": "high_blood_pressure",
    "high_cholesterol": "high_cholesterol",
    "diabetes": "diabetes",
    "asthma": "asthma",
    "epilepsy": "epilepsy",
    "thyroid_disease": "thyroid_disease",
    "inflammatory_bowel_disease": "inflammatory_bowel_disease",
    "hepatitis": "hepatitis",
    "surgery": "surgery",
    "anxiety_or_depression": "anxiety_or_depression",
    "bipolar_mood_disorder": "bipolar_mood_disorder",
    "hiv": "hiv",
    "tb": "tb",
    "disability": "disability",
    "cancer_family": "cancer_family",
}

ALLERGY_COLUMNS = {
    "environmental": "environmental",
    "food": "food",
    "medication": "medication",
}


def derive_assembled_at(identity: ReportIdentity, records: PatientRecordSet) -> Optional[datetime]:
    """Latest timestamp of the report and its resolved records, in UTC."""
    stamps = [identity.date_updated, identity.date_created]
    stamps.extend(record.created_at for record in records.records.values() if record is not None)
    stamps = [as_utc(stamp) for stamp in stamps if stamp is not None]
    return max(stamps) if stamps else None


def compute_age(date_of_birth: Optional[date], reference: Optional[date]) -> Optional[int]:
    """Age as the difference between the birth year and the reference year.

    The birthday itself is not considered: someone born in June 1979 is 45
    throughout 2024. None when either date is missing.
    """
    if date_of_birth is None or reference is None:
        return None
    return reference.year - date_of_birth.year


def format_doctor_name(name: Optional[str]) -> str:
    if is_blank(name):
        return UNASSIGNED
    name = name.strip()
    return name if "Dr." in name else f"Dr. {name}"


def format_percent(ratio: Any) -> str:
    """Render a waist-to-height ratio as a percentage ("0.525" -> "52.5%")."""
    value = to_float(ratio)
    if not value:
        return ""
    percent = round(value * 100, 2)
    return f"{int(percent) if percent.is_integer() else percent}%"


class ReportAssembler:
    """Assembles ComprehensiveReport documents.

    Example Usage:
        ```python
        assembler = ReportAssembler()
        report = assembler.assemble(identity, records)
        report.model_dump_json()
        ```
    """

    def assemble(
        self,
        identity: ReportIdentity,
        records: PatientRecordSet,
        assembled_at: Optional[datetime] = None,
    ) -> ComprehensiveReport:
        """Build the report document.

        Parameters:
            identity: Base medical report joined with employee and staff
            records: Current record of every domain (None where absent)
            assembled_at: Assembly timestamp; derived from the data when None.
                Age is only reported when a timestamp is known, so the same
                data always yields the same document.

        Returns:
            ComprehensiveReport with every section present
        """
        if assembled_at is None:
            assembled_at = derive_assembled_at(identity, records)
        reference = assembled_at.date() if assembled_at else None

        gender = normalize_gender(identity.gender)
        age = compute_age(identity.date_of_birth, reference)

        cardiovascular = assess_cardiovascular(cardiovascular_inputs(records, age, gender))
        mental = assess_mental_health(mental_health_inputs(records))
        screening = assess_screening(screening_inputs(records))

        if records.missing:
            logger.debug(
                f"Report {identity.report_id}: no data for "
                f"{', '.join(domain.value for domain in records.missing)}"
            )

        return ComprehensiveReport(
            report_id=identity.report_id,
            employee_id=identity.employee_id,
            assembled_at=assembled_at,
            report_heading=ReportHeading(
                report_id=identity.report_id,
                doctor_name=format_doctor_name(identity.doctor_name),
                nurse_name=text_or_default(identity.nurse_name, UNASSIGNED),
                date_updated=identity.date_updated,
            ),
            personal_details=self._personal_details(identity, records, age),
            clinical_examinations=ClinicalExaminations(**self._results(
                records, ClinicalDomain.CLINICAL_EXAMINATIONS, CLINICAL_EXAMINATION_COLUMNS,
            )),
            lab_tests=LabTests(
                **self._results(records, ClinicalDomain.LAB_TESTS, LAB_RESULT_COLUMNS),
                **self._measurements(records, ClinicalDomain.LAB_TESTS, LAB_MEASUREMENT_COLUMNS),
            ),
            special_investigations=SpecialInvestigations(
                **self._results(
                    records, ClinicalDomain.SPECIAL_INVESTIGATIONS, SPECIAL_INVESTIGATION_COLUMNS,
                ),
                **self._measurements(
                    records, ClinicalDomain.SPECIAL_INVESTIGATIONS, SPECIAL_MEASUREMENT_COLUMNS,
                ),
            ),
            medical_history=self._medical_history(records),
            allergies=Allergies(**as_section(normalize_fields(
                records.get(ClinicalDomain.MEDICAL_HISTORY),
                ClinicalDomain.MEDICAL_HISTORY,
                ALLERGY_COLUMNS,
                normalize=normalize_flag,
            ))),
            current_medication_supplements=CurrentMedicationSupplements(
                chronic_medication=text_or_default(
                    records.field(ClinicalDomain.MEDICAL_HISTORY, "chronic_medication"), NO_MEDICATION,
                ),
                vitamins_supplements=text_or_default(
                    records.field(ClinicalDomain.MEDICAL_HISTORY, "vitamins_or_supplements"), NO_MEDICATION,
                ),
            ),
            screening=Screening(**bands_of(screening)),
            mental_health=MentalHealth(**bands_of(mental)),
            cardiovascular_stroke_risk=CardiovascularStrokeRisk(**bands_of(cardiovascular)),
            notes_recommendations=NotesRecommendations(
                recommendation_text=text_or_default(
                    records.field(ClinicalDomain.CLINICAL_EXAMINATIONS, "recommendation_text"), "",
                ),
            ),
            mens_health=self._gender_section(records, ClinicalDomain.MENS_HEALTH, gender is Gender.MALE),
            womens_health=self._gender_section(records, ClinicalDomain.WOMENS_HEALTH, gender is Gender.FEMALE),
            overview=Overview(
                notes_text=text_or_default(records.field(ClinicalDomain.NOTES, "notes_text"), ""),
            ),
            important_information_disclaimer=Disclaimer(disclaimer_text=DISCLAIMER_TEXT),
            assessments=[*cardiovascular.values(), *mental.values(), *screening.values()],
        )

    def _personal_details(
        self,
        identity: ReportIdentity,
        records: PatientRecordSet,
        age: Optional[int],
    ) -> PersonalDetails:
        vitals = records.get(ClinicalDomain.VITALS)

        def vital(name: str) -> Any:
            return records.field(ClinicalDomain.VITALS, name)

        if vitals is None:
            blood_pressure = "0\\0"
        else:
            blood_pressure = (
                f"{text_or_default(vital('systolic_bp'), '0')}\\"
                f"{text_or_default(vital('diastolic_bp'), '0')}"
            )

        return PersonalDetails(
            id=identity.employee_id,
            name=text_or_default(identity.first_name, ""),
            surname=text_or_default(identity.last_name, ""),
            gender=text_or_default(identity.gender, ""),
            id_or_passport=text_or_default(identity.id_number, ""),
            age=age,
            height_cm=to_float(vital("height_cm")),
            waist=to_float(vital("waist")),
            weight_kg=to_float(vital("weight_kg")),
            blood_pressure=blood_pressure,
            blood_pressure_status=text_or_default(vital("blood_pressure_status"), ""),
            bmi=to_float(vital("bmi")),
            bmi_status=text_or_default(vital("bmi_status"), ""),
            whtr_percent=format_percent(vital("whtr")),
            whtr_status=text_or_default(vital("whtr_status"), ""),
        )

    @staticmethod
    def _results(records: PatientRecordSet, domain: ClinicalDomain, columns: dict[str, str]) -> dict[str, str]:
        return as_section(normalize_fields(records.get(domain), domain, columns))

    @staticmethod
    def _measurements(records: PatientRecordSet, domain: ClinicalDomain, columns: tuple[str, ...]) -> dict[str, str]:
        return {column: text_or_default(records.field(domain, column), NOT_DONE_TEXT) for column in columns}

    @staticmethod
    def _medical_history(records: PatientRecordSet) -> MedicalHistory:
        domain = ClinicalDomain.MEDICAL_HISTORY
        section = as_section(normalize_fields(
            records.get(domain),
            domain,
            MEDICAL_HISTORY_COLUMNS,
            normalize=lambda value: normalize_flag(value, two_valued=True),
        ))
        family_cardiac = (
            is_flag_set(records.field(domain, "heart_attack"))
            or is_flag_set(records.field(domain, "heart_attack_60"))
        )
        section["cardiac_event_in_family"] = (YesNo.YES if family_cardiac else YesNo.NO).value
        return MedicalHistory(**section)

    @staticmethod
    def _gender_section(records: PatientRecordSet, domain: ClinicalDomain, applies: bool) -> GenderHealthSection:
        if not applies:
            return GenderHealthSection()
        return GenderHealthSection(
            recommendation_text=text_or_default(records.field(domain, "recommendation_text"), ""),
        )
