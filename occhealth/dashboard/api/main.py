"""Main FastAPI application for the Occupational Health Insight Engine.

This module sets up the FastAPI application with all routes, middleware,
and configuration for the dashboard API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from occhealth.dashboard.api.dependencies import get_storage_adapter
from occhealth.dashboard.api.logging_config import setup_logging
from occhealth.dashboard.api.middleware import setup_middleware
from occhealth.dashboard.api.routes import (
    classification,
    health,
    reports,
    treatment_plans,
)
from occhealth.infrastructure.settings import APP_VERSION, settings

setup_logging(use_json=settings.json_logs, log_level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"{settings.app_name} API starting up...")
    logger.info("API documentation available at /api/docs")
    logger.info(f"Logging level: {settings.log_level}")
    logger.info(f"Domain fetch timeout: {settings.domain_fetch_timeout}s")
    yield
    logger.info(f"{settings.app_name} API shutting down...")
    if get_storage_adapter.cache_info().currsize:
        get_storage_adapter().close()
        get_storage_adapter.cache_clear()


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Comprehensive medical reports and treatment timelines for occupational health",
    version=APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time", "X-Request-ID"],
)

setup_middleware(app)

app.include_router(health.router)
app.include_router(reports.router)
app.include_router(treatment_plans.router)
app.include_router(classification.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.app_name} API",
        "version": APP_VERSION,
        "docs": "/api/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "occhealth.dashboard.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
