"""Dependency injection for dashboard API.

This module provides dependency injection functions for FastAPI,
following Hexagonal Architecture principles by using the storage adapters
and the process-wide classification audit logger.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from occhealth.domain.ports import ClinicalStoragePort
from occhealth.infrastructure.audit.classification_audit_logger import (
    ClassificationAuditLogger,
    get_classification_audit_logger,
)
from occhealth.main import create_storage_adapter

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_adapter() -> ClinicalStoragePort:
    """Get storage adapter instance (cached).

    The adapter (DuckDB or PostgreSQL) is selected from environment
    configuration and cached so it is not recreated on every request.

    Returns:
        ClinicalStoragePort: Configured storage adapter instance

    Raises:
        ValueError: If database type is unsupported
    """
    return create_storage_adapter()


def get_audit_logger() -> ClassificationAuditLogger:
    """Get the classification audit logger shared by all requests."""
    return get_classification_audit_logger()


# Type aliases for dependency injection
StorageDep = Annotated[ClinicalStoragePort, Depends(get_storage_adapter)]
AuditLoggerDep = Annotated[ClassificationAuditLogger, Depends(get_audit_logger)]
