"""Health check endpoint for dashboard API."""

import asyncio
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from occhealth.dashboard.api.dependencies import AuditLoggerDep, StorageDep
from occhealth.dashboard.models.health import DatabaseHealth, HealthResponse
from occhealth.domain.ports import ClinicalStoragePort
from occhealth.infrastructure.settings import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


async def check_database_health(storage: ClinicalStoragePort) -> DatabaseHealth:
    """Check database connection health.

    Parameters:
        storage: Storage adapter instance

    Returns:
        DatabaseHealth: Database health status
    """
    db_type = getattr(storage, "dialect", None) or "unknown"

    start_time = time.perf_counter()
    result = await asyncio.to_thread(storage.query, "SELECT 1")
    if result.is_success():
        response_time = (time.perf_counter() - start_time) * 1000
        return DatabaseHealth(
            status="connected",
            type=db_type,
            response_time_ms=round(response_time, 2)
        )

    logger.warning(f"Database query failed: {result.error}")
    return DatabaseHealth(status="disconnected", type=db_type, response_time_ms=None)


@router.get("/health", response_model=HealthResponse)
async def health_check(storage: StorageDep, audit_logger: AuditLoggerDep) -> HealthResponse:
    """Health check endpoint.

    Reports database connectivity and the number of buffered classification
    ambiguities. Used by monitoring tools and load balancers.
    """
    db_health = await check_database_health(storage)

    return HealthResponse(
        status="healthy" if db_health.status == "connected" else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        version=APP_VERSION,
        database=db_health,
        classification_ambiguities=len(audit_logger),
    )
