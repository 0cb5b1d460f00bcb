"""Clinical records schema shared by the SQL storage adapters.

Holds the table definitions (base report, employee, staff and one table per
clinical domain), the domain -> table registry, DDL generation for each SQL
dialect, and the conversion of result rows into domain models.

Every domain table carries the same bookkeeping columns: id, employee_id,
report_id and date_created. "Latest record" means greatest date_created,
ties broken by greatest id.
"""

from dataclasses import dataclass
from typing import Any, Optional

from occhealth.domain.enums import ClinicalDomain
from occhealth.domain.models import DomainRecord

DIALECT_TYPES = {
    "duckdb": {
        "text": "VARCHAR",
        "real": "DOUBLE",
        "int": "INTEGER",
        "bool": "BOOLEAN",
        "timestamp": "TIMESTAMP",
        "date": "DATE",
    },
    "postgresql": {
        "text": "TEXT",
        "real": "DOUBLE PRECISION",
        "int": "INTEGER",
        "bool": "BOOLEAN",
        "timestamp": "TIMESTAMP",
        "date": "DATE",
    },
}

BOOKKEEPING_COLUMNS = ("id", "employee_id", "report_id", "date_created")


@dataclass(frozen=True)
class TableDef:
    """A table name with its ordered (column, logical type) pairs."""

    name: str
    columns: tuple[tuple[str, str], ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.columns)

    def create_sql(self, dialect: str) -> str:
        types = DIALECT_TYPES[dialect]
        columns = [f"{quote(name)} {types[kind]}" for name, kind in self.columns]
        columns[0] += " PRIMARY KEY"
        return f"CREATE TABLE IF NOT EXISTS {quote(self.name)} ({', '.join(columns)})"


def quote(identifier: str) -> str:
    """Quote an SQL identifier (both dialects use double quotes)."""
    return '"' + identifier.replace('"', '""') + '"'


def _domain_table(name: str, *columns: tuple[str, str]) -> TableDef:
    return TableDef(
        name=name,
        columns=(
            ("id", "text"),
            ("employee_id", "text"),
            ("report_id", "text"),
            ("date_created", "timestamp"),
            *columns,
        ),
    )


def _all(kind: str, *names: str) -> tuple[tuple[str, str], ...]:
    return tuple((name, kind) for name in names)


EMPLOYEE_TABLE = TableDef(
    name="employee",
    columns=(
        ("id", "text"),
        ("name", "text"),
        ("surname", "text"),
        ("gender", "text"),
        ("id_number", "text"),
        ("date_of_birth", "date"),
    ),
)

USERS_TABLE = TableDef(
    name="users",
    columns=(("id", "text"), ("name", "text"), ("surname", "text"), ("role", "text")),
)

MEDICAL_REPORT_TABLE = TableDef(
    name="medical_report",
    columns=(
        ("id", "text"),
        ("employee_id", "text"),
        ("doctor", "text"),
        ("nurse", "text"),
        ("recommendation_text", "text"),
        ("date_created", "timestamp"),
        ("date_updated", "timestamp"),
    ),
)

DOMAIN_TABLES: dict[ClinicalDomain, TableDef] = {
    ClinicalDomain.VITALS: _domain_table(
        "vitals_clinical_metrics",
        *_all("real", "height_cm", "weight_kg", "waist", "bmi", "whtr"),
        *_all("int", "systolic_bp", "diastolic_bp"),
        *_all("text", "blood_pressure_status", "bmi_status", "whtr_status"),
    ),
    ClinicalDomain.MEDICAL_HISTORY: _domain_table(
        "employee_medical_history",
        *_all(
            "bool",
            "high_blood_pressure", "high_cholesterol", "diabetes", "asthma", "epilepsy",
            "thyroid_disease", "inflammatory_bowel_disease", "hepatitis", "surgery",
            "anxiety_or_depression", "bipolar_mood_disorder", "hiv", "tb", "disability",
            "heart_attack", "heart_attack_60", "cancer_family",
            "environmental", "food", "medication",
        ),
        *_all("text", "chronic_medication", "vitamins_or_supplements"),
    ),
    ClinicalDomain.CLINICAL_EXAMINATIONS: _domain_table(
        "clinical_examinations",
        *_all(
            "int",
            "general_assessment", "head_neck_incl_thyroid", "cardiovascular", "respiratory",
            "gastrointestinal", "musculoskeletal", "neurological", "skin",
            "hearing_assessment", "eyesight",
        ),
        ("recommendation_text", "text"),
    ),
    ClinicalDomain.LAB_TESTS: _domain_table(
        "lab_tests",
        *_all(
            "int",
            "full_blood_count_an_esr", "kidney_function", "liver_enzymes", "vitamin_d",
            "uric_acid", "hs_crp", "homocysteine", "insulin_level",
            "thyroid_stimulating_hormone", "adrenal_response", "hormones", "psa", "hiv",
        ),
        *_all("text", "total_cholesterol", "fasting_glucose"),
    ),
    ClinicalDomain.SPECIAL_INVESTIGATIONS: _domain_table(
        "special_investigations",
        *_all(
            "int",
            "resting_ecg", "stress_ecg", "lung_function", "urine_dipstix", "kardiofit",
            "nerveiq_cardio", "nerveiq_cns", "nerveiq",
        ),
        *_all("text", "predicted_vo2_max", "body_fat_percentage"),
        *_all("bool", "abdominal_ultrasound", "colonoscopy_required", "gastroscopy", "osteoporosis_screen"),
    ),
    ClinicalDomain.LIFESTYLE: _domain_table(
        "lifestyle",
        ("smoke", "bool"),
        ("alcohol_score", "real"),
        *_all("text", "exercise", "diet_overall", "sleep_rating"),
    ),
    ClinicalDomain.MENTAL_HEALTH: _domain_table(
        "mental_health",
        *_all("real", "gad2_score", "energy_levels", "stress_level"),
        ("mood_feeling", "text"),
    ),
    ClinicalDomain.MENS_HEALTH: _domain_table(
        "mens_health",
        *_all("text", "recommendation_text", "notes_text"),
    ),
    ClinicalDomain.WOMENS_HEALTH: _domain_table(
        "womens_health",
        *_all("text", "recommendation_text", "notes_text"),
    ),
    ClinicalDomain.NOTES: _domain_table(
        "notes",
        *_all("text", "notes_text", "recommendation_text"),
    ),
}

ALL_TABLES: dict[str, TableDef] = {
    table.name: table
    for table in (EMPLOYEE_TABLE, USERS_TABLE, MEDICAL_REPORT_TABLE, *DOMAIN_TABLES.values())
}


def schema_statements(dialect: str) -> list[str]:
    """CREATE TABLE and CREATE INDEX statements for every table."""
    statements = [table.create_sql(dialect) for table in ALL_TABLES.values()]
    statements.append(
        "CREATE INDEX IF NOT EXISTS idx_medical_report_employee "
        "ON medical_report(employee_id, date_created)"
    )
    for table in DOMAIN_TABLES.values():
        statements.append(
            f"CREATE INDEX IF NOT EXISTS idx_{table.name}_employee "
            f"ON {quote(table.name)}(employee_id, date_created)"
        )
    return statements


def _staff_name(alias: str) -> str:
    return f"TRIM(COALESCE({alias}.name, '') || ' ' || COALESCE({alias}.surname, ''))"


def report_identity_sql(placeholder: str) -> str:
    return f"""
        SELECT
            mr.id AS report_id,
            mr.employee_id,
            e.name AS first_name,
            e.surname AS last_name,
            e.gender,
            e.id_number,
            e.date_of_birth,
            {_staff_name('doctor_user')} AS doctor_name,
            {_staff_name('nurse_user')} AS nurse_name,
            mr.date_created,
            mr.date_updated
        FROM medical_report mr
        LEFT JOIN employee e ON e.id = mr.employee_id
        LEFT JOIN users doctor_user ON doctor_user.id = mr.doctor
        LEFT JOIN users nurse_user ON nurse_user.id = mr.nurse
        WHERE mr.id = {placeholder}
    """


def latest_record_sql(table: TableDef, placeholder: str) -> str:
    return (
        f"SELECT * FROM {quote(table.name)} WHERE employee_id = {placeholder} "
        f"ORDER BY date_created DESC NULLS LAST, id DESC LIMIT 1"
    )


def employee_sql(placeholder: str) -> str:
    return (
        "SELECT id AS employee_id, name AS first_name, surname AS last_name, gender "
        f"FROM employee WHERE id = {placeholder}"
    )


def like_pattern(text: str) -> str:
    """Case-folded "contains" pattern with LIKE wildcards in the text escaped."""
    escaped = text.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def employees_with_reports_sql(placeholder: Optional[str] = None) -> str:
    """Employees that have at least one medical report.

    With a placeholder the result is narrowed to employees whose id or full
    name contains a like_pattern() parameter (bound twice).
    """
    name_filter = ""
    if placeholder:
        name_filter = (
            f"AND (LOWER(e.id) LIKE {placeholder} ESCAPE '\\' "
            f"OR LOWER(TRIM(COALESCE(e.name, '') || ' ' || COALESCE(e.surname, ''))) "
            f"LIKE {placeholder} ESCAPE '\\')"
        )
    return f"""
        SELECT e.id AS employee_id, e.name AS first_name, e.surname AS last_name, e.gender
        FROM employee e
        WHERE EXISTS (SELECT 1 FROM medical_report mr WHERE mr.employee_id = e.id)
        {name_filter}
        ORDER BY e.id ASC
    """


def report_history_sql(placeholder: str) -> str:
    return f"""
        SELECT
            mr.*,
            {_staff_name('doctor_user')} AS doctor_name,
            {_staff_name('nurse_user')} AS nurse_name,
            TRIM(COALESCE(e.name, '') || ' ' || COALESCE(e.surname, '')) AS employee_name
        FROM medical_report mr
        LEFT JOIN employee e ON e.id = mr.employee_id
        LEFT JOIN users doctor_user ON doctor_user.id = mr.doctor
        LEFT JOIN users nurse_user ON nurse_user.id = mr.nurse
        WHERE mr.employee_id = {placeholder}
        ORDER BY mr.date_created ASC NULLS LAST, mr.id ASC
    """


def linked_records_sql(table: TableDef, placeholder: str) -> str:
    # Ascending so that the latest row per report is the last one seen.
    return (
        f"SELECT * FROM {quote(table.name)} "
        f"WHERE employee_id = {placeholder} AND report_id IS NOT NULL "
        f"ORDER BY date_created ASC NULLS FIRST, id ASC"
    )


def insert_sql(table: TableDef, columns: list[str], placeholder: str) -> str:
    column_list = ", ".join(quote(column) for column in columns)
    values = ", ".join(placeholder for _ in columns)
    return f"INSERT INTO {quote(table.name)} ({column_list}) VALUES ({values})"


def row_to_record(domain: ClinicalDomain, row: dict[str, Any]) -> DomainRecord:
    """Convert a domain table row into a DomainRecord."""
    record_id = row.get("id")
    return DomainRecord(
        domain=domain,
        record_id=str(record_id) if record_id is not None else None,
        employee_id=row.get("employee_id"),
        report_id=row.get("report_id"),
        created_at=row.get("date_created"),
        fields=domain_fields(row),
    )


def domain_fields(row: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in row.items() if key not in BOOKKEEPING_COLUMNS}
