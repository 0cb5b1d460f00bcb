"""Classification Context Management.

This module provides context variables for passing the classification audit
logger through the normalizer without the domain layer owning it.

Architecture:
    - Uses contextvars for thread-safe and task-safe context passing
    - asyncio.to_thread copies the context, so worker threads see it too
    - Graceful degradation when no context is set (e.g., in unit tests)
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Optional

from occhealth.infrastructure.audit.classification_audit_logger import ClassificationAuditLogger

_classification_context: ContextVar[Optional[dict[str, Any]]] = ContextVar(
    'classification_context',
    default=None
)


def get_classification_context() -> Optional[dict[str, Any]]:
    """Get current classification context.

    Returns:
        Optional[dict]: Context dictionary with audit logger and record_id,
                        or None if no context is set
    """
    return _classification_context.get()


@contextmanager
def classification_context(
    audit_logger: Optional[ClassificationAuditLogger],
    record_id: Optional[str] = None,
):
    """Context manager scoping ambiguity recording to one report or timeline.

    Parameters:
        audit_logger: ClassificationAuditLogger instance, or None to disable
        record_id: Report or employee identifier being processed

    Example:
        ```python
        with classification_context(audit_logger, record_id="RPT-001"):
            report = assembler.assemble(identity, records)
        ```
    """
    token = _classification_context.set({
        'audit_logger': audit_logger,
        'record_id': record_id,
    })
    try:
        yield _classification_context.get()
    finally:
        _classification_context.reset(token)


def log_ambiguity_if_context(
    field_name: str,
    raw_value: Optional[str],
    fallback: str,
    domain: Optional[str] = None,
) -> None:
    """Record an unmatched free-text value if a context is active.

    Parameters:
        field_name: Name of the classified field
        raw_value: Text that matched no keyword pattern
        fallback: Category applied instead
        domain: Originating clinical domain, if known
    """
    context = get_classification_context()
    if not context:
        return

    audit_logger = context.get('audit_logger')
    if audit_logger is None:
        return

    if raw_value is None or not str(raw_value).strip():
        return

    audit_logger.log_ambiguity(
        field_name=field_name,
        raw_value=str(raw_value),
        fallback=fallback,
        domain=domain,
        record_id=context.get('record_id'),
    )
