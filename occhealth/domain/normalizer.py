"""Field Normalizer.

Maps raw clinical field values (tri-state integers, boolean flags, free text,
numeric scores) into the small closed vocabularies of the report.

Every function in this module is total: it returns a category for any
input, including None, empty strings, booleans where numbers are expected
and unparseable text. Nothing here raises.

Free-text classification is a priority-ordered keyword match: the first
(keyword, category) pair whose keyword occurs in the text wins. Match order
is significant and must be preserved when rules are edited. Text that
matches nothing falls back to a default and is recorded through the
classification context for rule-table review.
"""

import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, TypeVar

from occhealth.domain.enums import ClinicalDomain, Gender, ResultCategory, YesNo
from occhealth.domain.models import DomainRecord, NormalizedField
from occhealth.infrastructure.classification_context import log_ambiguity_if_context

C = TypeVar('C')

KeywordRules = Sequence[tuple[str, C]]
NumericBands = Sequence[tuple[float, C]]

_TRI_STATE = {
    1: ResultCategory.NORMAL,
    -1: ResultCategory.ABNORMAL,
    0: ResultCategory.NOT_DONE,
}

_TRUTHY = {"true", "yes", "y", "t", "1"}
_FALSY = {"false", "no", "n", "f", "0"}

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+))")

_RESULT_LABELS = {category.value.lower(): category for category in ResultCategory}


def fold_text(text: Any) -> str:
    """Lower-case text and fold typographic apostrophes for matching."""
    if text is None:
        return ""
    return str(text).replace("’", "'").replace("‘", "'").lower()


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_float(value: Any) -> Optional[float]:
    """Parse a measurement into a float.

    Accepts numbers and text with a leading number ("5.6 mmol/L" -> 5.6).
    Booleans, NaN, infinities and non-numeric text yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return None
        number = float(match.group(1))
    else:
        return None
    return number if math.isfinite(number) else None


def _as_integral(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        if math.isfinite(number) and number.is_integer():
            return int(number)
    return None


def normalize_tri_state(value: Any) -> ResultCategory:
    """Map a tri-state answer code to a result category.

    1 -> Normal, -1 -> Abnormal, 0 -> Not Done, anything else -> Unknown.
    """
    code = _as_integral(value)
    if code is None:
        return ResultCategory.UNKNOWN
    return _TRI_STATE.get(code, ResultCategory.UNKNOWN)


def normalize_flag(value: Any, two_valued: bool = False) -> YesNo:
    """Map a boolean flag to Yes / No / Unknown.

    Parameters:
        value: Raw flag (bool, 1/0, or yes/no/true/false text)
        two_valued: Report absent or unreadable flags as No instead of Unknown

    Returns:
        YesNo category
    """
    missing = YesNo.NO if two_valued else YesNo.UNKNOWN
    if isinstance(value, bool):
        return YesNo.YES if value else YesNo.NO
    code = _as_integral(value)
    if code is not None:
        if code == 1:
            return YesNo.YES
        if code == 0:
            return YesNo.NO
        return missing
    if isinstance(value, str):
        folded = value.strip().lower()
        if folded in _TRUTHY:
            return YesNo.YES
        if folded in _FALSY:
            return YesNo.NO
    return missing


def is_flag_set(value: Any) -> bool:
    """True only when a flag normalizes to Yes."""
    return normalize_flag(value) is YesNo.YES


@lru_cache(maxsize=None)
def _word_start_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword))


def _keyword_matches(keyword: str, folded: str, word_start: bool) -> bool:
    if word_start:
        return _word_start_pattern(keyword).search(folded) is not None
    return keyword in folded


def classify_text(
    text: Any,
    rules: KeywordRules,
    default: C,
    field_name: str = "text",
    domain: Optional[ClinicalDomain] = None,
    record_unmatched: bool = True,
    word_start: bool = False,
) -> C:
    """Classify free text with an ordered keyword table.

    Parameters:
        text: Raw text (non-string values are matched on their str())
        rules: Ordered (keyword, category) pairs; keywords are lower-case
        default: Category when nothing matches
        field_name: Field name used when recording unmatched text
        domain: Originating domain used when recording unmatched text
        record_unmatched: Record non-blank text that matches nothing
        word_start: Keywords only match at the start of a word, so "refer"
            matches "referral" but not "prefer"

    Returns:
        Category of the first matching keyword, or default
    """
    if is_blank(text):
        return default

    folded = fold_text(text)
    for keyword, category in rules:
        if _keyword_matches(keyword, folded, word_start):
            return category

    if record_unmatched:
        log_ambiguity_if_context(
            field_name=field_name,
            raw_value=str(text),
            fallback=getattr(default, "value", str(default)),
            domain=domain.value if domain else None,
        )
    return default


def band_numeric(
    value: Any,
    bounds: NumericBands,
    final: C,
    missing: Optional[C] = None,
) -> C:
    """Band a numeric value against ascending upper bounds.

    Parameters:
        value: Raw score or measurement
        bounds: Ascending (upper_bound, band) pairs; value <= bound wins
        final: Band for values above every bound
        missing: Band for absent or unparseable values (defaults to final)

    Returns:
        The selected band
    """
    number = to_float(value)
    if number is None:
        return final if missing is None else missing
    for upper_bound, band in bounds:
        if number <= upper_bound:
            return band
    return final


def normalize_result(
    value: Any,
    default: ResultCategory = ResultCategory.NOT_DONE,
    field_name: str = "result",
    domain: Optional[ClinicalDomain] = None,
    record_unmatched: bool = True,
) -> ResultCategory:
    """Normalize an examination, lab or investigation result.

    Missing or blank values take the default (Not Done); numeric codes go
    through the tri-state mapping; text equal to a result label is
    canonicalised; any other text is Unknown (recorded for review unless
    record_unmatched is False).
    """
    if is_blank(value):
        return default
    if isinstance(value, (bool, int, float, Decimal)):
        return normalize_tri_state(value)

    label = _RESULT_LABELS.get(fold_text(value).strip())
    if label is not None:
        return label

    if record_unmatched:
        log_ambiguity_if_context(
            field_name=field_name,
            raw_value=str(value),
            fallback=ResultCategory.UNKNOWN.value,
            domain=domain.value if domain else None,
        )
    return ResultCategory.UNKNOWN


def normalize_gender(value: Any) -> Gender:
    """Male / Female from the usual spellings; Unknown when blank, Other otherwise."""
    folded = fold_text(value).strip()
    if not folded:
        return Gender.UNKNOWN
    if folded in ("male", "m"):
        return Gender.MALE
    if folded in ("female", "f"):
        return Gender.FEMALE
    return Gender.OTHER


def matches_label(value: Any, label: str) -> bool:
    """Case-insensitive equality of a status text with a label."""
    return fold_text(value).strip() == label.lower()


def as_utc(value: datetime) -> datetime:
    """Make a timestamp timezone-aware (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def text_or_default(value: Any, default: str) -> str:
    """Pass a raw value through as text, or the default when blank."""
    if is_blank(value):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_fields(
    record: Optional[DomainRecord],
    domain: ClinicalDomain,
    columns: Mapping[str, str],
    normalize: Optional[Callable[[Any], Any]] = None,
) -> list[NormalizedField]:
    """Normalize a group of fields of one domain record.

    Parameters:
        record: The domain's current record, or None if absent
        domain: Domain the fields come from
        columns: Output field name -> source column name, in output order
        normalize: Normalizer applied to each raw value; defaults to
                   normalize_result with the field recorded for review

    Returns:
        One NormalizedField per output field, in mapping order
    """
    normalized = []
    for field_name, column in columns.items():
        raw = record.fields.get(column) if record is not None else None
        if normalize is None:
            category = normalize_result(raw, field_name=field_name, domain=domain)
        else:
            category = normalize(raw)
        normalized.append(NormalizedField(
            field=field_name,
            category=getattr(category, "value", category),
            domain=domain,
        ))
    return normalized


def as_section(fields: Iterable[NormalizedField]) -> dict[str, str]:
    """Collapse normalized fields into a section mapping."""
    return {field.field: field.category for field in fields}
