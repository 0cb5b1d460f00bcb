"""Audit logging for classification ambiguities."""

from occhealth.infrastructure.audit.classification_audit_logger import (
    ClassificationAuditLogger,
    get_classification_audit_logger,
)

__all__ = ["ClassificationAuditLogger", "get_classification_audit_logger"]
