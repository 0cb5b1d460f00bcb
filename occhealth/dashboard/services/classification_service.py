"""Classification review service for dashboard API.

Exposes the buffered classification ambiguities so that the keyword rule
tables can be reviewed against the free text clinicians actually write.
"""

import logging
from typing import Optional

from occhealth.dashboard.models.classification import AmbiguitiesResponse, AmbiguityEntry
from occhealth.domain.ports import Result
from occhealth.infrastructure.audit.classification_audit_logger import ClassificationAuditLogger

logger = logging.getLogger(__name__)


class ClassificationService:
    """Service for querying classification ambiguities."""

    def __init__(self, audit_logger: ClassificationAuditLogger):
        self.audit_logger = audit_logger

    def get_ambiguities(
        self,
        field_name: Optional[str] = None,
        limit: int = 100,
    ) -> Result[AmbiguitiesResponse]:
        """Get buffered ambiguities, newest first.

        Parameters:
            field_name: Only return events for this field
            limit: Maximum number of events to return

        Returns:
            Result containing AmbiguitiesResponse
        """
        logs = self.audit_logger.get_logs(field_name=field_name)
        return Result.success_result(AmbiguitiesResponse(
            total=len(logs),
            events=[AmbiguityEntry(**entry) for entry in logs[:limit]],
        ))
