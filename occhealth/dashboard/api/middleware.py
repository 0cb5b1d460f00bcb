"""Request middleware for the dashboard API.

Every request gets an X-Request-ID (taken from the caller when supplied) and
an X-Process-Time header. Exceptions that escape a route are turned into
JSON error bodies that never echo storage internals.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from occhealth.domain.ports import EmployeeNotFoundError, ReportNotFoundError, StorageError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _error_body(request: Request, error: str, detail: str) -> dict:
    return {
        "error": error,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "client_ip": request.client.host if request.client else "unknown",
            "endpoint": request.url.path,
        }

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} in {process_time:.3f}s",
            extra={**context, "status_code": response.status_code},
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Map exceptions that escape the routes to JSON responses.

    Error Mapping:
        ReportNotFoundError / EmployeeNotFoundError -> 404
        StorageError -> 500 "Storage is unavailable"
        ValueError -> 400
        anything else -> 500 with a generic message
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except (ReportNotFoundError, EmployeeNotFoundError) as e:
            return JSONResponse(status_code=404, content=_error_body(request, "Not Found", str(e)))
        except StorageError as e:
            logger.error(f"Storage error on {request.url.path}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content=_error_body(request, "Internal server error", "Storage is unavailable"),
            )
        except ValueError as e:
            logger.warning(f"Bad request on {request.url.path}: {str(e)}")
            return JSONResponse(status_code=400, content=_error_body(request, "Bad Request", str(e)))
        except Exception as e:
            logger.error(f"Unexpected error on {request.url.path}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content=_error_body(
                    request,
                    "Internal server error",
                    "An unexpected error occurred. Please check logs for details.",
                ),
            )


def setup_middleware(app) -> None:
    """Install the middleware.

    Starlette runs the last added middleware first, so LoggingMiddleware is
    outermost and its request id is set before ErrorHandlingMiddleware runs.
    """
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)
