"""Category vocabularies for the Comprehensive Medical Report.

The string values of these enums are a contract with the rendering layer
(PDF/HTML report and dashboard). Consumers branch on the literal strings,
so values must never be reworded.
"""

from enum import Enum


class ClinicalDomain(str, Enum):
    """Registered clinical domains, one storage table each."""
    VITALS = "vitals"
    MEDICAL_HISTORY = "medical_history"
    CLINICAL_EXAMINATIONS = "clinical_examinations"
    LAB_TESTS = "lab_tests"
    SPECIAL_INVESTIGATIONS = "special_investigations"
    LIFESTYLE = "lifestyle"
    MENTAL_HEALTH = "mental_health"
    MENS_HEALTH = "mens_health"
    WOMENS_HEALTH = "womens_health"
    NOTES = "notes"


class ResultCategory(str, Enum):
    """Outcome of an examination, lab test or special investigation."""
    NORMAL = "Normal"
    ABNORMAL = "Abnormal"
    NOT_DONE = "Not Done"
    UNKNOWN = "Unknown"


class YesNo(str, Enum):
    YES = "Yes"
    NO = "No"
    UNKNOWN = "Unknown"


class RiskBand(str, Enum):
    """Cardiovascular/stroke risk factor band."""
    AT_RISK = "At Risk"
    MEDIUM_RISK = "Medium Risk"
    LOW_RISK = "Low Risk"
    NO_RISK = "No Risk"


class LevelBand(str, Enum):
    """Mental health level band (anxiety, energy, stress)."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MoodBand(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    UNKNOWN = "UNKNOWN"


class SleepBand(str, Enum):
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    UNKNOWN = "UNKNOWN"


class ScreeningStatus(str, Enum):
    REQUIRED = "Required"
    NOT_REQUIRED = "Not Required"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    UNKNOWN = "Unknown"


class ActionCategory(str, Enum):
    """Treatment timeline action categories."""
    CLINICAL = "Clinical"
    LIFESTYLE = "Lifestyle"
    SUPPLEMENTS = "Supplements"
    SCREENING = "Screening"
    MONITORING = "Monitoring"
    REFERRAL = "Referral"
    FOLLOW_UP = "Follow-up"
    MENS_HEALTH = "Men's Health"
    WOMENS_HEALTH = "Women's Health"


class ActionStatus(str, Enum):
    COMPLETED = "Completed"
    ONGOING = "Ongoing"
    PLANNED = "Planned"
    NOT_SPECIFIED = "Not specified"
