"""Comprehensive report service for dashboard API and CLI.

This service orchestrates one report build: the base report is resolved,
the patient's domain records are fetched concurrently, and the assembler
turns them into the ComprehensiveReport. Unmatched free-text values seen
while building are recorded against the report id.
"""

import logging
import time
from typing import Optional

from occhealth.domain.models import ComprehensiveReport
from occhealth.domain.ports import DomainStoragePort, ReportNotFoundError, Result, StorageError
from occhealth.domain.services.record_resolver import DomainRecordResolver
from occhealth.domain.services.report_assembler import ReportAssembler
from occhealth.infrastructure.audit.classification_audit_logger import ClassificationAuditLogger
from occhealth.infrastructure.classification_context import classification_context

logger = logging.getLogger(__name__)


class ComprehensiveReportService:
    """Service for building Comprehensive Medical Reports."""

    def __init__(
        self,
        storage: DomainStoragePort,
        audit_logger: Optional[ClassificationAuditLogger] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize ComprehensiveReportService.

        Parameters:
            storage: Storage adapter instance
            audit_logger: Receives classification ambiguities (None to disable)
            timeout: Seconds allowed per domain fetch (None for no limit)
        """
        self.storage = storage
        self.audit_logger = audit_logger
        self.resolver = DomainRecordResolver(storage, timeout=timeout)
        self.assembler = ReportAssembler()

    async def build(self, report_id: str) -> Result[ComprehensiveReport]:
        """Build the report for one medical report id.

        Parameters:
            report_id: Medical report identifier

        Returns:
            Result containing the ComprehensiveReport, or a failure with
            error_type "ReportNotFoundError" or "StorageError"
        """
        start = time.perf_counter()
        with classification_context(self.audit_logger, record_id=report_id):
            try:
                identity = await self.resolver.resolve_identity(report_id)
                records = await self.resolver.resolve(identity.employee_id)
                report = self.assembler.assemble(identity, records)
            except ReportNotFoundError as e:
                logger.info(str(e))
                return Result.failure_result(e)
            except StorageError as e:
                logger.error(f"Failed to build report {report_id}: {str(e)}")
                return Result.failure_result(e)

        logger.info(
            f"Built report {report_id} for employee {report.employee_id} "
            f"in {time.perf_counter() - start:.3f}s"
        )
        return Result.success_result(report)
