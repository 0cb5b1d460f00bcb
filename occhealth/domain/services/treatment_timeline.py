"""Treatment Timeline Builder.

Builds a patient's chronological list of recommended actions from the free
text of their historical reports. Each report becomes one timeline entry;
its recommendation and notes texts are split into individual
recommendations, and each recommendation is given a category and a status
by ordered keyword tables (first match wins).

Gender-specific actions are filtered when the timeline is built: a male
patient's timeline never carries Women's Health actions and a female
patient's never carries Men's Health actions. Any other recorded gender
drops both; only a patient with no recorded gender keeps both. Summary
counts are computed after filtering.
"""

import logging
import re
from datetime import datetime
from typing import Iterable, Optional, Sequence

from occhealth.domain.enums import ActionCategory, ActionStatus, ClinicalDomain, Gender
from occhealth.domain.models import (
    EmployeeSummary,
    MedicalStaff,
    ReportSnapshot,
    TreatmentAction,
    TreatmentPlanStats,
    TreatmentPlanSummary,
    TreatmentReportEntry,
    TreatmentTimeline,
)
from occhealth.domain.normalizer import as_utc, classify_text, is_blank, normalize_gender

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"

REPORT_SOURCE = "report"
TEXT_FIELDS = ("recommendation_text", "notes_text")

# Order matters: referral and follow-up wording wins over the subject of the
# recommendation ("refer to urologist for PSA" is a Referral). Keywords match
# at the start of a word only, so "prefer" is not a referral.
CATEGORY_RULES = (
    ("refer", ActionCategory.REFERRAL),
    ("specialist", ActionCategory.REFERRAL),
    ("follow up", ActionCategory.FOLLOW_UP),
    ("follow-up", ActionCategory.FOLLOW_UP),
    ("followup", ActionCategory.FOLLOW_UP),
    ("recheck", ActionCategory.FOLLOW_UP),
    ("re-check", ActionCategory.FOLLOW_UP),
    ("review in", ActionCategory.FOLLOW_UP),
    ("repeat", ActionCategory.FOLLOW_UP),
    ("pap smear", ActionCategory.WOMENS_HEALTH),
    ("mammogra", ActionCategory.WOMENS_HEALTH),
    ("breast", ActionCategory.WOMENS_HEALTH),
    ("cervical", ActionCategory.WOMENS_HEALTH),
    ("gynae", ActionCategory.WOMENS_HEALTH),
    ("menopaus", ActionCategory.WOMENS_HEALTH),
    ("pregnan", ActionCategory.WOMENS_HEALTH),
    ("contracept", ActionCategory.WOMENS_HEALTH),
    ("prostate", ActionCategory.MENS_HEALTH),
    ("psa", ActionCategory.MENS_HEALTH),
    ("testosterone", ActionCategory.MENS_HEALTH),
    ("testicular", ActionCategory.MENS_HEALTH),
    ("erectile", ActionCategory.MENS_HEALTH),
    ("screen", ActionCategory.SCREENING),
    ("colonoscopy", ActionCategory.SCREENING),
    ("gastroscopy", ActionCategory.SCREENING),
    ("ultrasound", ActionCategory.SCREENING),
    ("bone density", ActionCategory.SCREENING),
    ("ecg", ActionCategory.SCREENING),
    ("scan", ActionCategory.SCREENING),
    ("monitor", ActionCategory.MONITORING),
    ("track", ActionCategory.MONITORING),
    ("keep a record", ActionCategory.MONITORING),
    ("supplement", ActionCategory.SUPPLEMENTS),
    ("vitamin", ActionCategory.SUPPLEMENTS),
    ("omega", ActionCategory.SUPPLEMENTS),
    ("magnesium", ActionCategory.SUPPLEMENTS),
    ("probiotic", ActionCategory.SUPPLEMENTS),
    ("zinc", ActionCategory.SUPPLEMENTS),
    ("folic", ActionCategory.SUPPLEMENTS),
    ("exercise", ActionCategory.LIFESTYLE),
    ("physical activity", ActionCategory.LIFESTYLE),
    ("walk", ActionCategory.LIFESTYLE),
    ("diet", ActionCategory.LIFESTYLE),
    ("nutrition", ActionCategory.LIFESTYLE),
    ("weight", ActionCategory.LIFESTYLE),
    ("sleep", ActionCategory.LIFESTYLE),
    ("alcohol", ActionCategory.LIFESTYLE),
    ("smok", ActionCategory.LIFESTYLE),
    ("stress", ActionCategory.LIFESTYLE),
    ("hydrat", ActionCategory.LIFESTYLE),
)

STATUS_RULES = (
    ("completed", ActionStatus.COMPLETED),
    ("has been done", ActionStatus.COMPLETED),
    ("ongoing", ActionStatus.ONGOING),
    ("continue", ActionStatus.ONGOING),
    ("daily", ActionStatus.ONGOING),
    ("planned", ActionStatus.PLANNED),
    ("schedule", ActionStatus.PLANNED),
    ("book", ActionStatus.PLANNED),
    ("arrange", ActionStatus.PLANNED),
)

DOMAIN_CATEGORIES = {
    ClinicalDomain.MENS_HEALTH: ActionCategory.MENS_HEALTH,
    ClinicalDomain.WOMENS_HEALTH: ActionCategory.WOMENS_HEALTH,
}

EXCLUDED_CATEGORIES = {
    Gender.MALE: {ActionCategory.WOMENS_HEALTH},
    Gender.FEMALE: {ActionCategory.MENS_HEALTH},
    Gender.OTHER: {ActionCategory.MENS_HEALTH, ActionCategory.WOMENS_HEALTH},
    Gender.UNKNOWN: set(),
}

_ITEM_SEPARATOR = re.compile(r"[\r\n;•]+")
_INLINE_NUMBERING = re.compile(r"(?:^|(?<=\s))\d{1,2}[.)]\s+")
_LEADING_MARKER = re.compile(r"^[\s\-*–·>]+")


def split_recommendations(text: Optional[str]) -> list[str]:
    """Split free text into individual recommendations.

    Items are separated by newlines, semicolons, bullets or numbering
    ("1. ...", "2) ..."). Leading bullet markers are stripped and empty
    items are dropped.
    """
    if is_blank(text):
        return []

    items = []
    for chunk in _ITEM_SEPARATOR.split(str(text)):
        for part in _INLINE_NUMBERING.split(chunk):
            item = _LEADING_MARKER.sub("", part).strip()
            if item:
                items.append(item)
    return items


def categorize(
    recommendation: str,
    domain: Optional[ClinicalDomain] = None,
) -> ActionCategory:
    """Category of one recommendation.

    Men's and women's health domains map straight to their gender
    category; any other source goes through the keyword table.
    """
    if domain in DOMAIN_CATEGORIES:
        return DOMAIN_CATEGORIES[domain]
    return classify_text(
        recommendation,
        CATEGORY_RULES,
        ActionCategory.CLINICAL,
        field_name="treatment_category",
        domain=domain,
        word_start=True,
    )


def action_status(recommendation: str) -> ActionStatus:
    return classify_text(
        recommendation, STATUS_RULES, ActionStatus.NOT_SPECIFIED, record_unmatched=False, word_start=True,
    )


def _snapshot_order(snapshot: ReportSnapshot) -> tuple:
    # Undated reports sort after dated ones.
    if snapshot.report_date is None:
        return (1, datetime.min, snapshot.report_id)
    return (0, as_utc(snapshot.report_date).replace(tzinfo=None), snapshot.report_id)


def _distinct(names: Iterable[Optional[str]]) -> list[str]:
    seen: list[str] = []
    for name in names:
        if is_blank(name):
            continue
        name = name.strip()
        if name not in seen:
            seen.append(name)
    return seen


class TreatmentTimelineBuilder:
    """Builds TreatmentTimeline documents from report history.

    Example Usage:
        ```python
        builder = TreatmentTimelineBuilder()
        timeline = builder.build(employee, storage.list_report_snapshots(employee_id))
        ```
    """

    def build(
        self,
        employee: EmployeeSummary,
        snapshots: Sequence[ReportSnapshot],
        generated_at: Optional[datetime] = None,
    ) -> TreatmentTimeline:
        """Build the timeline for one patient.

        Parameters:
            employee: Patient identity (name and gender)
            snapshots: Historical reports with their domain rows
            generated_at: Build timestamp; latest report date when None

        Returns:
            TreatmentTimeline with gender-filtered actions and counts
        """
        gender = normalize_gender(employee.gender)
        excluded = EXCLUDED_CATEGORIES[gender]
        employee_name = employee.full_name or employee.employee_id

        ordered = sorted(snapshots, key=_snapshot_order)
        entries = []
        for snapshot in ordered:
            actions = [action for action in self.extract_actions(snapshot) if action.category not in excluded]
            entries.append(TreatmentReportEntry(
                report_id=snapshot.report_id,
                report_date=snapshot.report_date,
                doctor=snapshot.doctor_name.strip() if not is_blank(snapshot.doctor_name) else UNASSIGNED,
                nurse=snapshot.nurse_name.strip() if not is_blank(snapshot.nurse_name) else UNASSIGNED,
                employee_name=snapshot.employee_name or employee_name,
                actions=actions,
            ))

        if generated_at is None:
            dates = [as_utc(s.report_date) for s in ordered if s.report_date is not None]
            generated_at = max(dates) if dates else None

        total_actions = sum(len(entry.actions) for entry in entries)
        logger.debug(
            f"Timeline for employee {employee.employee_id}: {len(entries)} reports, "
            f"{total_actions} actions after {gender.value} filtering"
        )

        return TreatmentTimeline(
            employee_id=employee.employee_id,
            employee_name=employee_name,
            gender=gender.value,
            treatment_timeline=entries,
            total_reports=len(entries),
            total_actions=total_actions,
            has_actions=total_actions > 0,
            medical_staff=MedicalStaff(
                doctors=_distinct(s.doctor_name for s in ordered),
                nurses=_distinct(s.nurse_name for s in ordered),
            ),
            generated_at=generated_at,
        )

    def extract_actions(self, snapshot: ReportSnapshot) -> list[TreatmentAction]:
        """All actions of one report, in source order, without duplicates.

        Sources are the report's own recommendation text, then each
        domain's recommendation and notes texts in domain order.
        """
        sources: list[tuple[Optional[ClinicalDomain], str, object]] = [
            (None, f"{REPORT_SOURCE}.recommendation_text", snapshot.report_fields.get("recommendation_text")),
        ]
        for domain in ClinicalDomain:
            fields = snapshot.domains.get(domain)
            if not fields:
                continue
            for name in TEXT_FIELDS:
                sources.append((domain, f"{domain.value}.{name}", fields.get(name)))

        actions = []
        seen = set()
        for domain, source_field, text in sources:
            for recommendation in split_recommendations(text):
                category = categorize(recommendation, domain)
                key = (category, recommendation.casefold())
                if key in seen:
                    continue
                seen.add(key)
                actions.append(TreatmentAction(
                    category=category,
                    recommendation=recommendation,
                    status=action_status(recommendation),
                    source_field=source_field,
                    report_date=snapshot.report_date,
                ))
        return actions


def summarize_timeline(timeline: TreatmentTimeline) -> TreatmentPlanSummary:
    """Drop the per-report actions of a timeline, keeping its counts and staff."""
    return TreatmentPlanSummary(
        employee_id=timeline.employee_id,
        employee_name=timeline.employee_name,
        gender=timeline.gender,
        total_reports=timeline.total_reports,
        total_actions=timeline.total_actions,
        has_actions=timeline.has_actions,
        medical_staff=timeline.medical_staff,
    )


def plan_statistics(timelines: Sequence[TreatmentTimeline]) -> TreatmentPlanStats:
    """Aggregate counts over several patients' timelines.

    Parameters:
        timelines: Timelines after gender filtering

    Returns:
        TreatmentPlanStats with per-category action counts
    """
    by_category = {category.value: 0 for category in ActionCategory}
    for timeline in timelines:
        for entry in timeline.treatment_timeline:
            for action in entry.actions:
                by_category[action.category.value] += 1

    with_actions = sum(1 for timeline in timelines if timeline.has_actions)
    return TreatmentPlanStats(
        total_employees=len(timelines),
        employees_with_actions=with_actions,
        employees_without_actions=len(timelines) - with_actions,
        total_reports=sum(timeline.total_reports for timeline in timelines),
        total_actions=sum(timeline.total_actions for timeline in timelines),
        actions_by_category=by_category,
    )
