"""Logging configuration shared by the dashboard API and the CLI.

JSON lines (one object per record) are used when OH_JSON_LOGS is set, a
plain single-line format otherwise. Request and report identifiers passed
through ``extra=`` are carried into the JSON output.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes copied from a record's ``extra=`` into the JSON object
CONTEXT_FIELDS = ("request_id", "client_ip", "endpoint", "status_code", "report_id", "employee_id")

# Chatty libraries kept at WARNING whatever the application level
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "fastapi", "httpx")


class StructuredFormatter(logging.Formatter):
    """Render log records as JSON objects.

    Example output:
        {"timestamp": "2024-03-02T10:00:00+00:00", "level": "INFO",
         "logger": "occhealth.dashboard.services.report_service",
         "message": "Built report RPT-001 ...", "report_id": "RPT-001"}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        })
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(use_json: bool = False, log_level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Configure the root logger with a single stream handler.

    Calling it again replaces the previous handler, so the CLI can reconfigure
    logging after the API module has been imported.

    Parameters:
        use_json: Emit JSON lines instead of plain text
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream; stdout when None
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        StructuredFormatter() if use_json
        else logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT)
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
