"""Unit tests for ClassificationAuditLogger and the classification context."""

import threading

from occhealth.infrastructure.audit.classification_audit_logger import (
    ClassificationAuditLogger,
    get_classification_audit_logger,
)
from occhealth.infrastructure.classification_context import (
    classification_context,
    get_classification_context,
    log_ambiguity_if_context,
)


class TestClassificationAuditLogger:
    """Test suite for ClassificationAuditLogger."""

    def test_init(self):
        audit = ClassificationAuditLogger()
        assert len(audit) == 0
        assert audit.get_logs() == []

    def test_log_ambiguity(self):
        audit = ClassificationAuditLogger()
        audit.log_ambiguity(
            field_name="sleep_rating",
            raw_value="Restless",
            fallback="UNKNOWN",
            domain="lifestyle",
            record_id="RPT-001",
        )

        assert len(audit) == 1
        entry = audit.get_logs()[0]
        assert entry["field_name"] == "sleep_rating"
        assert entry["raw_value"] == "Restless"
        assert entry["fallback"] == "UNKNOWN"
        assert entry["domain"] == "lifestyle"
        assert entry["record_id"] == "RPT-001"
        assert entry["event_id"]
        assert entry["logged_at"].tzinfo is not None

    def test_logs_are_newest_first(self):
        audit = ClassificationAuditLogger()
        for value in ("first", "second", "third"):
            audit.log_ambiguity(field_name="mood_feeling", raw_value=value, fallback="UNKNOWN")
        assert [entry["raw_value"] for entry in audit.get_logs()] == ["third", "second", "first"]

    def test_filter_by_field(self):
        audit = ClassificationAuditLogger()
        audit.log_ambiguity(field_name="psa", raw_value="borderline", fallback="Unknown")
        audit.log_ambiguity(field_name="sleep_rating", raw_value="Restless", fallback="UNKNOWN")
        logs = audit.get_logs(field_name="psa")
        assert len(logs) == 1
        assert logs[0]["raw_value"] == "borderline"

    def test_buffer_is_bounded(self):
        audit = ClassificationAuditLogger(max_events=2)
        for value in ("a", "b", "c"):
            audit.log_ambiguity(field_name="f", raw_value=value, fallback="X")
        assert len(audit) == 2
        assert [entry["raw_value"] for entry in audit.get_logs()] == ["c", "b"]

    def test_clear(self):
        audit = ClassificationAuditLogger()
        audit.log_ambiguity(field_name="f", raw_value="v", fallback="X")
        audit.clear()
        assert len(audit) == 0

    def test_concurrent_logging(self):
        audit = ClassificationAuditLogger()

        def worker(n: int):
            for i in range(50):
                audit.log_ambiguity(field_name="f", raw_value=f"{n}-{i}", fallback="X")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(audit) == 200

    def test_process_wide_instance(self):
        assert get_classification_audit_logger() is get_classification_audit_logger()


class TestClassificationContext:
    """Context scoping of ambiguity recording."""

    def test_no_context_by_default(self):
        assert get_classification_context() is None
        log_ambiguity_if_context("f", "v", "X")

    def test_context_routes_events_to_logger(self, audit_logger):
        with classification_context(audit_logger, record_id="RPT-7"):
            log_ambiguity_if_context("sleep_rating", "Restless", "UNKNOWN", domain="lifestyle")

        assert audit_logger.get_logs()[0]["record_id"] == "RPT-7"
        assert get_classification_context() is None

    def test_blank_values_are_ignored(self, audit_logger):
        with classification_context(audit_logger):
            log_ambiguity_if_context("f", "  ", "X")
            log_ambiguity_if_context("f", None, "X")
        assert len(audit_logger) == 0

    def test_disabled_logger(self):
        with classification_context(None, record_id="RPT-1"):
            log_ambiguity_if_context("f", "v", "X")

    def test_context_is_restored_after_error(self, audit_logger):
        try:
            with classification_context(audit_logger):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert get_classification_context() is None
