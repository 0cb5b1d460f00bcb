"""Classification Audit Logger.

This module records free-text values that matched none of the keyword
patterns of a classifier. Each event carries the field, the raw text, the
originating domain and the fallback category that was applied, so that the
keyword rule tables can be reviewed against real-world input.

Architecture:
    - Infrastructure layer component
    - Called from the domain normalizer through classification_context
    - Bounded in-memory buffer; oldest events are dropped first
"""

import logging
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 1000


class ClassificationAuditLogger:
    """Buffer of ClassificationAmbiguous events.

    Example Usage:
        ```python
        audit = ClassificationAuditLogger()
        audit.log_ambiguity(
            field_name="sleep_rating",
            raw_value="Restless",
            fallback="UNKNOWN",
            domain="lifestyle",
            record_id="RPT-001",
        )
        for event in audit.get_logs():
            ...
        ```
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS):
        """Initialize classification audit logger.

        Parameters:
            max_events: Maximum number of events kept in memory
        """
        self._logs: deque[dict] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def log_ambiguity(
        self,
        field_name: str,
        raw_value: str,
        fallback: str,
        domain: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> None:
        """Record one unmatched free-text value.

        Parameters:
            field_name: Name of the classified field
            raw_value: Text that matched no keyword pattern
            fallback: Category applied instead
            domain: Originating clinical domain, if known
            record_id: Report or record being processed, if known
        """
        entry = {
            "event_id": str(uuid.uuid4()),
            "field_name": field_name,
            "raw_value": raw_value,
            "fallback": fallback,
            "domain": domain,
            "record_id": record_id,
            "logged_at": datetime.now(timezone.utc),
        }
        with self._lock:
            self._logs.append(entry)
        logger.info(
            f"Unclassified value for {domain or '-'}.{field_name}: "
            f"{raw_value!r} -> {fallback}"
        )

    def get_logs(self, field_name: Optional[str] = None) -> list[dict]:
        """Get buffered events, newest first.

        Parameters:
            field_name: Only return events for this field

        Returns:
            List of event dictionaries
        """
        with self._lock:
            logs = list(self._logs)
        if field_name:
            logs = [entry for entry in logs if entry["field_name"] == field_name]
        return list(reversed(logs))

    def clear(self) -> None:
        """Drop all buffered events."""
        with self._lock:
            self._logs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._logs)


_classification_audit_logger: Optional[ClassificationAuditLogger] = None


def get_classification_audit_logger() -> ClassificationAuditLogger:
    """Get the process-wide classification audit logger."""
    global _classification_audit_logger
    if _classification_audit_logger is None:
        _classification_audit_logger = ClassificationAuditLogger()
    return _classification_audit_logger
