"""Tests for the request middleware and the logging configuration."""

import io
import json
import logging
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from occhealth.dashboard.api.logging_config import StructuredFormatter, setup_logging
from occhealth.dashboard.api.middleware import setup_middleware
from occhealth.domain.ports import ReportNotFoundError, StorageError


@pytest.fixture
def failing_app_client():
    """A bare app whose routes raise, wrapped in the dashboard middleware."""
    app = FastAPI()
    setup_middleware(app)

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/storage")
    async def storage():
        raise StorageError("password=hunter2 rejected", operation="connect")

    @app.get("/missing")
    async def missing():
        raise ReportNotFoundError("RPT-404")

    @app.get("/bad")
    async def bad():
        raise ValueError("limit must be positive")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("boom")

    with TestClient(app) as client:
        yield client


class TestMiddleware:
    """LoggingMiddleware and ErrorHandlingMiddleware."""

    def test_request_id_is_generated(self, failing_app_client):
        response = failing_app_client.get("/ok")
        assert response.headers["X-Request-ID"]
        assert float(response.headers["X-Process-Time"]) >= 0

    def test_request_id_is_propagated(self, failing_app_client):
        response = failing_app_client.get("/ok", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_storage_error_hides_details(self, failing_app_client):
        response = failing_app_client.get("/storage", headers={"X-Request-ID": "req-1"})

        assert response.status_code == 500
        body = response.json()
        assert body["detail"] == "Storage is unavailable"
        assert body["request_id"] == "req-1"
        assert "hunter2" not in response.text

    def test_not_found(self, failing_app_client):
        response = failing_app_client.get("/missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Report not found: RPT-404"

    def test_value_error(self, failing_app_client):
        response = failing_app_client.get("/bad")
        assert response.status_code == 400
        assert response.json()["detail"] == "limit must be positive"

    def test_unexpected_error(self, failing_app_client):
        response = failing_app_client.get("/boom")
        assert response.status_code == 500
        assert "boom" not in response.json()["detail"]


class TestLogging:
    """setup_logging and StructuredFormatter."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_lines(self):
        stream = io.StringIO()
        setup_logging(use_json=True, log_level="INFO", stream=stream)

        logging.getLogger("occhealth.test").info("Built report", extra={"report_id": "RPT-001"})

        line = json.loads(stream.getvalue().strip())
        assert line["level"] == "INFO"
        assert line["logger"] == "occhealth.test"
        assert line["message"] == "Built report"
        assert line["report_id"] == "RPT-001"

    def test_level_filtering(self):
        stream = io.StringIO()
        setup_logging(log_level="warning", stream=stream)

        logging.getLogger("occhealth.test").info("hidden")
        logging.getLogger("occhealth.test").warning("shown")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "WARNING - shown" in output

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(log_level="chatty", stream=io.StringIO())
        assert logging.getLogger().level == logging.INFO

    def test_exception_is_included(self):
        formatter = StructuredFormatter()
        try:
            raise StorageError("query failed")
        except StorageError:
            record = logging.getLogger("occhealth.test").makeRecord(
                "occhealth.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info(),
            )
        assert "StorageError" in json.loads(formatter.format(record))["exception"]
