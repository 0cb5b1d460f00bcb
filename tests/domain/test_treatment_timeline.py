"""Unit tests for the treatment timeline builder."""

from datetime import datetime, timezone

import pytest

from occhealth.domain.enums import ActionCategory, ActionStatus, ClinicalDomain
from occhealth.domain.models import EmployeeSummary, ReportSnapshot
from occhealth.domain.services.treatment_timeline import (
    TreatmentTimelineBuilder,
    action_status,
    categorize,
    plan_statistics,
    split_recommendations,
    summarize_timeline,
)
from occhealth.infrastructure.classification_context import classification_context


def snapshot(report_id: str, report_date, text=None, domains=None, doctor="John Smith", nurse="Jane Doe"):
    return ReportSnapshot(
        report_id=report_id,
        employee_id="EMP-001",
        report_date=report_date,
        doctor_name=doctor,
        nurse_name=nurse,
        report_fields={"recommendation_text": text},
        domains=domains or {},
    )


@pytest.fixture
def builder():
    return TreatmentTimelineBuilder()


@pytest.fixture
def male():
    return EmployeeSummary(employee_id="EMP-001", first_name="Sipho", last_name="Ndlovu", gender="Male")


@pytest.fixture
def female():
    return EmployeeSummary(employee_id="EMP-002", first_name="Thandi", last_name="Mokoena", gender="Female")


class TestSplitRecommendations:
    """Free text splitting."""

    def test_newlines_semicolons_and_bullets(self):
        text = "Refer to cardiologist\n- Walk daily; Take vitamin D\n• Recheck BP"
        assert split_recommendations(text) == [
            "Refer to cardiologist", "Walk daily", "Take vitamin D", "Recheck BP",
        ]

    def test_inline_numbering(self):
        assert split_recommendations("1. Reduce salt 2) Book ECG") == ["Reduce salt", "Book ECG"]

    def test_numbers_inside_items_are_kept(self):
        assert split_recommendations("Repeat lipid panel in 6 months") == ["Repeat lipid panel in 6 months"]

    def test_blank_text(self):
        assert split_recommendations(None) == []
        assert split_recommendations(" \n; ") == []


class TestCategorize:
    """Category and status keyword tables."""

    @pytest.mark.parametrize("text, expected", [
        ("Refer to urologist for PSA", ActionCategory.REFERRAL),
        ("Follow up in 3 months", ActionCategory.FOLLOW_UP),
        ("Annual mammogram", ActionCategory.WOMENS_HEALTH),
        ("Check testosterone", ActionCategory.MENS_HEALTH),
        ("Colonoscopy at 50", ActionCategory.SCREENING),
        ("Monitor blood pressure at home", ActionCategory.MONITORING),
        ("Take omega 3", ActionCategory.SUPPLEMENTS),
        ("Reduce alcohol intake", ActionCategory.LIFESTYLE),
        ("Start statin therapy", ActionCategory.CLINICAL),
        ("Preferably walk 30 minutes daily", ActionCategory.LIFESTYLE),
        ("Prefer a low-salt diet", ActionCategory.LIFESTYLE),
        ("Preference for evening sessions", ActionCategory.CLINICAL),
        ("Apply capsaicin cream", ActionCategory.CLINICAL),
        ("Referral to dietician", ActionCategory.REFERRAL),
    ])
    def test_keyword_categories(self, text, expected):
        assert categorize(text) == expected

    def test_gender_domains_map_directly(self):
        assert categorize("Annual check", ClinicalDomain.MENS_HEALTH) == ActionCategory.MENS_HEALTH
        assert categorize("Annual check", ClinicalDomain.WOMENS_HEALTH) == ActionCategory.WOMENS_HEALTH

    def test_unmatched_recommendation_is_recorded(self, audit_logger):
        with classification_context(audit_logger, record_id="EMP-001"):
            assert categorize("Start statin therapy", ClinicalDomain.NOTES) == ActionCategory.CLINICAL
        entry = audit_logger.get_logs()[0]
        assert entry["field_name"] == "treatment_category"
        assert entry["fallback"] == "Clinical"
        assert entry["domain"] == "notes"

    @pytest.mark.parametrize("text, expected", [
        ("ECG completed", ActionStatus.COMPLETED),
        ("Continue medication", ActionStatus.ONGOING),
        ("Walk daily", ActionStatus.ONGOING),
        ("Book colonoscopy", ActionStatus.PLANNED),
        ("Reduce salt", ActionStatus.NOT_SPECIFIED),
        ("Discontinue aspirin", ActionStatus.NOT_SPECIFIED),
    ])
    def test_status(self, text, expected):
        assert action_status(text) == expected


class TestBuild:
    """Timeline assembly."""

    def test_reports_are_separate_entries_in_date_order(self, builder, male):
        later = snapshot("RPT-2", datetime(2024, 3, 1), "Refer to cardiologist")
        earlier = snapshot("RPT-1", datetime(2023, 3, 1), "Repeat lipid panel")

        timeline = builder.build(male, [later, earlier])

        assert [entry.report_id for entry in timeline.treatment_timeline] == ["RPT-1", "RPT-2"]
        assert [a.recommendation for a in timeline.treatment_timeline[0].actions] == ["Repeat lipid panel"]
        assert [a.recommendation for a in timeline.treatment_timeline[1].actions] == ["Refer to cardiologist"]
        assert timeline.total_reports == 2
        assert timeline.total_actions == 2
        assert timeline.has_actions is True

    def test_undated_reports_sort_last(self, builder, male):
        timeline = builder.build(male, [
            snapshot("RPT-X", None, "Walk daily"),
            snapshot("RPT-1", datetime(2023, 1, 1), "Reduce salt"),
        ])
        assert [entry.report_id for entry in timeline.treatment_timeline] == ["RPT-1", "RPT-X"]

    def test_male_timeline_drops_womens_health(self, builder, male):
        report = snapshot("RPT-1", datetime(2024, 1, 1), "Annual mammogram; Walk daily", domains={
            ClinicalDomain.WOMENS_HEALTH: {"recommendation_text": "Pap smear due"},
            ClinicalDomain.MENS_HEALTH: {"recommendation_text": "PSA test annually"},
        })

        timeline = builder.build(male, [report])

        categories = [a.category for a in timeline.treatment_timeline[0].actions]
        assert ActionCategory.WOMENS_HEALTH not in categories
        assert ActionCategory.MENS_HEALTH in categories
        assert timeline.total_actions == 2
        assert timeline.gender == "Male"

    def test_female_timeline_drops_mens_health(self, builder, female):
        report = snapshot("RPT-1", datetime(2024, 1, 1), domains={
            ClinicalDomain.MENS_HEALTH: {"recommendation_text": "Prostate check"},
            ClinicalDomain.WOMENS_HEALTH: {"recommendation_text": "Pap smear due"},
        })

        timeline = builder.build(female, [report])

        actions = timeline.treatment_timeline[0].actions
        assert [a.category for a in actions] == [ActionCategory.WOMENS_HEALTH]
        assert actions[0].source_field == "womens_health.recommendation_text"
        assert timeline.total_actions == 1

    def test_unknown_gender_keeps_both(self, builder):
        employee = EmployeeSummary(employee_id="EMP-9", gender=None)
        report = snapshot("RPT-1", datetime(2024, 1, 1), domains={
            ClinicalDomain.MENS_HEALTH: {"recommendation_text": "Prostate check"},
            ClinicalDomain.WOMENS_HEALTH: {"recommendation_text": "Pap smear due"},
        })
        timeline = builder.build(employee, [report])
        assert timeline.total_actions == 2
        assert timeline.employee_name == "EMP-9"
        assert timeline.gender == "Unknown"

    def test_other_gender_drops_both(self, builder):
        employee = EmployeeSummary(employee_id="EMP-8", first_name="Alex", gender="Non-binary")
        report = snapshot("RPT-1", datetime(2024, 1, 1), "Walk daily", domains={
            ClinicalDomain.MENS_HEALTH: {"recommendation_text": "Prostate check"},
            ClinicalDomain.WOMENS_HEALTH: {"recommendation_text": "Pap smear due"},
        })

        timeline = builder.build(employee, [report])

        assert [a.category for a in timeline.treatment_timeline[0].actions] == [ActionCategory.LIFESTYLE]
        assert timeline.total_actions == 1
        assert timeline.gender == "Other"

    def test_duplicates_within_a_report_collapse(self, builder, male):
        report = snapshot("RPT-1", datetime(2024, 1, 1), "Walk daily", domains={
            ClinicalDomain.NOTES: {"notes_text": "walk daily", "recommendation_text": "Walk daily"},
        })
        timeline = builder.build(male, [report])
        actions = timeline.treatment_timeline[0].actions
        assert len(actions) == 1
        assert actions[0].source_field == "report.recommendation_text"

    def test_same_recommendation_in_two_reports_is_not_merged(self, builder, male):
        timeline = builder.build(male, [
            snapshot("RPT-1", datetime(2023, 1, 1), "Walk daily"),
            snapshot("RPT-2", datetime(2024, 1, 1), "Walk daily"),
        ])
        assert [len(entry.actions) for entry in timeline.treatment_timeline] == [1, 1]

    def test_staff_defaults_and_distinct_lists(self, builder, male):
        timeline = builder.build(male, [
            snapshot("RPT-1", datetime(2023, 1, 1), doctor="John Smith", nurse=None),
            snapshot("RPT-2", datetime(2024, 1, 1), doctor="Mary Jones", nurse="Jane Doe"),
            snapshot("RPT-3", datetime(2025, 1, 1), doctor="John Smith", nurse="Jane Doe"),
        ])
        assert timeline.treatment_timeline[0].nurse == "Unassigned"
        assert timeline.medical_staff.doctors == ["John Smith", "Mary Jones"]
        assert timeline.medical_staff.nurses == ["Jane Doe"]

    def test_empty_history(self, builder, male):
        timeline = builder.build(male, [])
        assert timeline.total_reports == 0
        assert timeline.total_actions == 0
        assert timeline.has_actions is False
        assert timeline.generated_at is None
        assert timeline.employee_name == "Sipho Ndlovu"

    def test_generated_at_is_latest_report_date(self, builder, male):
        timeline = builder.build(male, [
            snapshot("RPT-1", datetime(2023, 1, 1)),
            snapshot("RPT-2", datetime(2024, 1, 1)),
        ])
        assert timeline.generated_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestPlanSummaries:
    """Summaries and statistics over several timelines."""

    def test_summary_keeps_counts_and_staff(self, builder, male):
        timeline = builder.build(male, [snapshot("RPT-1", datetime(2024, 1, 1), "Refer to cardiologist; Walk daily")])

        summary = summarize_timeline(timeline)

        assert summary.employee_name == "Sipho Ndlovu"
        assert summary.total_reports == 1
        assert summary.total_actions == 2
        assert summary.has_actions is True
        assert summary.medical_staff.doctors == ["John Smith"]
        assert "treatment_timeline" not in summary.model_dump()

    def test_statistics(self, builder, male, female):
        timelines = [
            builder.build(male, [snapshot("RPT-1", datetime(2024, 1, 1), "Refer to cardiologist; Walk daily")]),
            builder.build(female, [snapshot("RPT-2", datetime(2024, 2, 1), domains={
                ClinicalDomain.WOMENS_HEALTH: {"recommendation_text": "Pap smear due"},
            })]),
            builder.build(female, [snapshot("RPT-3", datetime(2024, 3, 1))]),
        ]

        stats = plan_statistics(timelines)

        assert stats.total_employees == 3
        assert stats.employees_with_actions == 2
        assert stats.employees_without_actions == 1
        assert stats.total_reports == 3
        assert stats.total_actions == 3
        assert list(stats.actions_by_category) == [category.value for category in ActionCategory]
        assert stats.actions_by_category["Referral"] == 1
        assert stats.actions_by_category["Lifestyle"] == 1
        assert stats.actions_by_category["Women's Health"] == 1
        assert stats.actions_by_category["Men's Health"] == 0

    def test_statistics_of_nothing(self):
        stats = plan_statistics([])
        assert stats.total_employees == 0
        assert set(stats.actions_by_category.values()) == {0}
