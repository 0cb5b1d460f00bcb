"""Risk Classification Engine.

Derives the cardiovascular/stroke risk factors, the mental-health bands and
the screening requirements of the Comprehensive Medical Report from a
patient's current records.

Every dimension is an explicit, ordered rule table: a list of
(predicate, band) rules evaluated top to bottom plus a default band. One
generic classifier consumes all tables. Tables declare the closed set of
bands they may produce, so every classification is total by construction.

Architecture:
    - Pure domain logic, no storage or I/O
    - Raw values are converted once, when the inputs objects are built
      from a PatientRecordSet; predicates only see clean values
    - Rule order is significant: the first matching rule wins
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from occhealth.domain.enums import (
    ClinicalDomain,
    Gender,
    LevelBand,
    MoodBand,
    ResultCategory,
    RiskBand,
    ScreeningStatus,
    SleepBand,
)
from occhealth.domain.models import PatientRecordSet, RiskAssessment
from occhealth.domain.normalizer import (
    fold_text,
    is_blank,
    is_flag_set,
    matches_label,
    normalize_result,
    to_float,
)
from occhealth.infrastructure.classification_context import log_ambiguity_if_context

B = TypeVar('B')


# ============================================================================
# Rule tables
# ============================================================================

@dataclass(frozen=True)
class Rule(Generic[B]):
    """One row of a rule table: when predicate(inputs) holds, yield band."""

    predicate: Callable[[Any], bool]
    band: B


@dataclass(frozen=True)
class RuleTable(Generic[B]):
    """Ordered rules for one dimension.

    Attributes:
        dimension: Report leaf the table produces (e.g. "cholesterol")
        rules: Rules in priority order
        default: Band when no rule matches
        bands: Closed set of bands the table may produce
        inputs: Names of the inputs attributes the rules read
        free_text: Name of a free-text input whose unmatched values are
                   recorded for keyword review
        free_text_domain: Domain the free-text input is read from
    """

    dimension: str
    rules: tuple[Rule[B], ...]
    default: B
    bands: frozenset
    inputs: tuple[str, ...] = ()
    free_text: Optional[str] = None
    free_text_domain: Optional[ClinicalDomain] = None

    def __post_init__(self):
        produced = {rule.band for rule in self.rules} | {self.default}
        if not produced <= self.bands:
            raise ValueError(f"Rule table {self.dimension} produces bands outside {sorted(self.bands)}")

    def classify(self, inputs: Any) -> B:
        """Return the band of the first matching rule, or the default."""
        for rule in self.rules:
            if rule.predicate(inputs):
                return rule.band

        if self.free_text is not None:
            text = getattr(inputs, self.free_text, None)
            if not is_blank(text):
                log_ambiguity_if_context(
                    field_name=self.free_text,
                    raw_value=str(text),
                    fallback=getattr(self.default, "value", str(self.default)),
                    domain=self.free_text_domain.value if self.free_text_domain else None,
                )
        return self.default

    def assess(self, inputs: Any) -> RiskAssessment:
        band = self.classify(inputs)
        return RiskAssessment(
            dimension=self.dimension,
            band=getattr(band, "value", band),
            inputs={name: _plain(getattr(inputs, name, None)) for name in self.inputs},
        )


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def at_most(attribute: str, upper_bound: float) -> Callable[[Any], bool]:
    """Predicate: numeric input is present and <= upper_bound."""
    def predicate(inputs: Any) -> bool:
        value = getattr(inputs, attribute)
        return value is not None and value <= upper_bound
    return predicate


def above(attribute: str, lower_bound: float, inclusive: bool = False) -> Callable[[Any], bool]:
    """Predicate: numeric input is present and > (or >=) lower_bound."""
    def predicate(inputs: Any) -> bool:
        value = getattr(inputs, attribute)
        if value is None:
            return False
        return value >= lower_bound if inclusive else value > lower_bound
    return predicate


def contains(attribute: str, *keywords: str) -> Callable[[Any], bool]:
    """Predicate: text input contains any keyword (case-insensitive)."""
    def predicate(inputs: Any) -> bool:
        text = fold_text(getattr(inputs, attribute))
        return any(keyword in text for keyword in keywords)
    return predicate


def is_set(*attributes: str) -> Callable[[Any], bool]:
    """Predicate: any of the boolean inputs is true."""
    def predicate(inputs: Any) -> bool:
        return any(getattr(inputs, attribute) for attribute in attributes)
    return predicate


def status_is(attribute: str, label: str) -> Callable[[Any], bool]:
    """Predicate: status text equals label, ignoring case and padding."""
    def predicate(inputs: Any) -> bool:
        return matches_label(getattr(inputs, attribute), label)
    return predicate


def banded(
    dimension: str,
    attribute: str,
    bounds: Sequence[tuple[float, B]],
    final: B,
) -> RuleTable[B]:
    """Build a table banding a numeric input against ascending upper bounds.

    Values above every bound, and missing values, take the final band.
    """
    return RuleTable(
        dimension=dimension,
        rules=tuple(Rule(at_most(attribute, bound), band) for bound, band in bounds),
        default=final,
        bands=frozenset(band for _, band in bounds) | {final},
        inputs=(attribute,),
    )


# ============================================================================
# Inputs
# ============================================================================

@dataclass(frozen=True)
class CardiovascularInputs:
    """Clean values read by the cardiovascular/stroke risk tables."""

    age: Optional[int] = None
    gender: Gender = Gender.UNKNOWN
    blood_pressure_status: Optional[str] = None
    bmi_status: Optional[str] = None
    whtr_status: Optional[str] = None
    total_cholesterol: Optional[float] = None
    fasting_glucose: Optional[float] = None
    diabetes_history: bool = False
    diet_overall: Optional[str] = None
    exercise: Optional[str] = None
    alcohol_score: Optional[float] = None
    smokes: bool = False
    stress_level: Optional[float] = None
    high_blood_pressure_history: bool = False
    high_cholesterol_history: bool = False
    family_heart_attack: bool = False
    family_heart_attack_before_60: bool = False
    family_cancer: bool = False


@dataclass(frozen=True)
class MentalHealthInputs:
    gad2_score: Optional[float] = None
    energy_levels: Optional[float] = None
    stress_level: Optional[float] = None
    mood_feeling: Optional[str] = None
    sleep_rating: Optional[str] = None


@dataclass(frozen=True)
class ScreeningInputs:
    abdominal_ultrasound: bool = False
    colonoscopy: bool = False
    gastroscopy: bool = False
    osteoporosis_screen: bool = False
    psa: ResultCategory = ResultCategory.NOT_DONE


def _text(value: Any) -> Optional[str]:
    return None if is_blank(value) else str(value)


def cardiovascular_inputs(
    records: PatientRecordSet,
    age: Optional[int],
    gender: Gender,
) -> CardiovascularInputs:
    """Read the cardiovascular inputs from the current records."""
    vitals = ClinicalDomain.VITALS
    labs = ClinicalDomain.LAB_TESTS
    history = ClinicalDomain.MEDICAL_HISTORY
    lifestyle = ClinicalDomain.LIFESTYLE

    return CardiovascularInputs(
        age=age,
        gender=gender,
        blood_pressure_status=_text(records.field(vitals, "blood_pressure_status")),
        bmi_status=_text(records.field(vitals, "bmi_status")),
        whtr_status=_text(records.field(vitals, "whtr_status")),
        total_cholesterol=to_float(records.field(labs, "total_cholesterol")),
        fasting_glucose=to_float(records.field(labs, "fasting_glucose")),
        diabetes_history=is_flag_set(records.field(history, "diabetes")),
        diet_overall=_text(records.field(lifestyle, "diet_overall")),
        exercise=_text(records.field(lifestyle, "exercise")),
        alcohol_score=to_float(records.field(lifestyle, "alcohol_score")),
        smokes=is_flag_set(records.field(lifestyle, "smoke")),
        stress_level=to_float(records.field(ClinicalDomain.MENTAL_HEALTH, "stress_level")),
        high_blood_pressure_history=is_flag_set(records.field(history, "high_blood_pressure")),
        high_cholesterol_history=is_flag_set(records.field(history, "high_cholesterol")),
        family_heart_attack=is_flag_set(records.field(history, "heart_attack")),
        family_heart_attack_before_60=is_flag_set(records.field(history, "heart_attack_60")),
        family_cancer=is_flag_set(records.field(history, "cancer_family")),
    )


def mental_health_inputs(records: PatientRecordSet) -> MentalHealthInputs:
    mental = ClinicalDomain.MENTAL_HEALTH
    return MentalHealthInputs(
        gad2_score=to_float(records.field(mental, "gad2_score")),
        energy_levels=to_float(records.field(mental, "energy_levels")),
        stress_level=to_float(records.field(mental, "stress_level")),
        mood_feeling=_text(records.field(mental, "mood_feeling")),
        sleep_rating=_text(records.field(ClinicalDomain.LIFESTYLE, "sleep_rating")),
    )


def screening_inputs(records: PatientRecordSet) -> ScreeningInputs:
    special = ClinicalDomain.SPECIAL_INVESTIGATIONS
    return ScreeningInputs(
        abdominal_ultrasound=is_flag_set(records.field(special, "abdominal_ultrasound")),
        colonoscopy=is_flag_set(records.field(special, "colonoscopy_required")),
        gastroscopy=is_flag_set(records.field(special, "gastroscopy")),
        osteoporosis_screen=is_flag_set(records.field(special, "osteoporosis_screen")),
        # Recorded once by the lab section; not again here.
        psa=normalize_result(records.field(ClinicalDomain.LAB_TESTS, "psa"), record_unmatched=False),
    )


# ============================================================================
# Cardiovascular / stroke risk
# ============================================================================

_AT_OR_LOW = frozenset({RiskBand.AT_RISK, RiskBand.LOW_RISK})
_AT_OR_NONE = frozenset({RiskBand.AT_RISK, RiskBand.NO_RISK})


def _flagged(dimension: str, *attributes: str) -> RuleTable[RiskBand]:
    return RuleTable(
        dimension=dimension,
        rules=(Rule(is_set(*attributes), RiskBand.AT_RISK),),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
        inputs=attributes,
    )


def _status(dimension: str, attribute: str, label: str) -> RuleTable[RiskBand]:
    return RuleTable(
        dimension=dimension,
        rules=(Rule(status_is(attribute, label), RiskBand.AT_RISK),),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
        inputs=(attribute,),
    )


CARDIOVASCULAR_TABLES: tuple[RuleTable[RiskBand], ...] = (
    RuleTable(
        dimension="age_and_gender_risk",
        rules=(
            Rule(above("age", 45, inclusive=True), RiskBand.AT_RISK),
            Rule(lambda i: i.gender is Gender.MALE, RiskBand.AT_RISK),
        ),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
        inputs=("age", "gender"),
    ),
    _status("blood_pressure", "blood_pressure_status", "High"),
    RuleTable(
        dimension="cholesterol",
        rules=(Rule(above("total_cholesterol", 5.0), RiskBand.AT_RISK),),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
        inputs=("total_cholesterol",),
    ),
    RuleTable(
        dimension="diabetes",
        rules=(
            Rule(above("fasting_glucose", 7.0, inclusive=True), RiskBand.AT_RISK),
            Rule(is_set("diabetes_history"), RiskBand.AT_RISK),
        ),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
        inputs=("fasting_glucose", "diabetes_history"),
    ),
    _status("obesity", "bmi_status", "Obese"),
    _status("waist_to_hip_ratio", "whtr_status", "High"),
    RuleTable(
        dimension="overall_diet",
        rules=(Rule(contains("diet_overall", "good"), RiskBand.LOW_RISK),),
        default=RiskBand.AT_RISK,
        bands=_AT_OR_LOW,
        inputs=("diet_overall",),
    ),
    RuleTable(
        dimension="exercise",
        rules=(Rule(contains("exercise", "don't exercise", "seldom"), RiskBand.AT_RISK),),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
        inputs=("exercise",),
    ),
    RuleTable(
        dimension="alcohol_consumption",
        rules=(Rule(above("alcohol_score", 0), RiskBand.AT_RISK),),
        default=RiskBand.NO_RISK,
        bands=_AT_OR_NONE,
        inputs=("alcohol_score",),
    ),
    RuleTable(
        dimension="smoking",
        rules=(Rule(is_set("smokes"), RiskBand.AT_RISK),),
        default=RiskBand.NO_RISK,
        bands=_AT_OR_NONE,
        inputs=("smokes",),
    ),
    banded(
        "stress_level",
        "stress_level",
        [(3, RiskBand.LOW_RISK), (6, RiskBand.MEDIUM_RISK)],
        RiskBand.AT_RISK,
    ),
    _flagged("previous_cardiac_event", "high_blood_pressure_history", "high_cholesterol_history"),
    _flagged("cardiac_history_in_family", "family_heart_attack", "family_heart_attack_before_60"),
    # Family cancer history drives the stroke dimension; kept as recorded
    # by the clinic pending clinical review.
    _flagged("stroke_history_in_family", "family_cancer"),
    RuleTable(
        dimension="reynolds_risk_score",
        rules=(),
        default=RiskBand.LOW_RISK,
        bands=_AT_OR_LOW,
    ),
)


# ============================================================================
# Mental health
# ============================================================================

MOOD_RULES = (
    ("not at all", MoodBand.POSITIVE),
    ("several days", MoodBand.NEGATIVE),
    ("more than half", MoodBand.NEGATIVE),
)

SLEEP_RULES = (
    ("good", SleepBand.GOOD),
    ("fair", SleepBand.FAIR),
    ("poor", SleepBand.POOR),
)


def _keyword_table(dimension: str, attribute: str, keywords, default, domain: ClinicalDomain) -> RuleTable:
    return RuleTable(
        dimension=dimension,
        rules=tuple(Rule(contains(attribute, keyword), band) for keyword, band in keywords),
        default=default,
        bands=frozenset(band for _, band in keywords) | {default},
        inputs=(attribute,),
        free_text=attribute,
        free_text_domain=domain,
    )


MENTAL_HEALTH_TABLES: tuple[RuleTable, ...] = (
    banded("anxiety_level", "gad2_score", [(2, LevelBand.LOW), (4, LevelBand.MEDIUM)], LevelBand.HIGH),
    banded("energy_level", "energy_levels", [(3, LevelBand.LOW), (6, LevelBand.MEDIUM)], LevelBand.HIGH),
    _keyword_table("mood_level", "mood_feeling", MOOD_RULES, MoodBand.UNKNOWN, ClinicalDomain.MENTAL_HEALTH),
    banded("stress_level", "stress_level", [(3, LevelBand.LOW), (6, LevelBand.MEDIUM)], LevelBand.HIGH),
    _keyword_table("sleep_rating", "sleep_rating", SLEEP_RULES, SleepBand.UNKNOWN, ClinicalDomain.LIFESTYLE),
)


# ============================================================================
# Screening
# ============================================================================

_SCREENING_BANDS = frozenset({ScreeningStatus.REQUIRED, ScreeningStatus.NOT_REQUIRED})


def _required_if(dimension: str, predicate: Callable[[Any], bool], *attributes: str) -> RuleTable:
    return RuleTable(
        dimension=dimension,
        rules=(Rule(predicate, ScreeningStatus.REQUIRED),),
        default=ScreeningStatus.NOT_REQUIRED,
        bands=_SCREENING_BANDS,
        inputs=attributes,
    )


SCREENING_TABLES: tuple[RuleTable[ScreeningStatus], ...] = (
    _required_if("abdominal_ultrasound", is_set("abdominal_ultrasound"), "abdominal_ultrasound"),
    _required_if("colonoscopy", is_set("colonoscopy"), "colonoscopy"),
    _required_if("gastroscopy", is_set("gastroscopy"), "gastroscopy"),
    _required_if("bone_density_scan", is_set("osteoporosis_screen"), "osteoporosis_screen"),
    _required_if(
        "annual_screening_prostate",
        lambda i: i.psa is ResultCategory.ABNORMAL,
        "psa",
    ),
)


# ============================================================================
# Assessments
# ============================================================================

def assess(tables: Sequence[RuleTable], inputs: Any) -> dict[str, RiskAssessment]:
    """Run every table against inputs, keeping table order."""
    return {table.dimension: table.assess(inputs) for table in tables}


def assess_cardiovascular(inputs: CardiovascularInputs) -> dict[str, RiskAssessment]:
    return assess(CARDIOVASCULAR_TABLES, inputs)


def assess_mental_health(inputs: MentalHealthInputs) -> dict[str, RiskAssessment]:
    return assess(MENTAL_HEALTH_TABLES, inputs)


def assess_screening(inputs: ScreeningInputs) -> dict[str, RiskAssessment]:
    return assess(SCREENING_TABLES, inputs)


def bands_of(assessments: dict[str, RiskAssessment]) -> dict[str, str]:
    """Collapse assessments into a section mapping of dimension -> band."""
    return {dimension: assessment.band for dimension, assessment in assessments.items()}

