"""
Error Handling - Exception to HTTP Mapping

Two layers:

1. register_exception_handlers(): FatigueServiceError subclasses are
   translated to status codes by type, with the error's to_dict() as body.
2. ErrorHandlingMiddleware: last line of defense for anything else.
   Logs the full traceback server-side and returns a generic 500.

Status mapping (first match wins):
    OriginAuthInvalidError   401
    OriginRateLimitedError   429 (+ Retry-After)
    OriginTimeoutError       504
    OriginError              502
    ValidationError          422
    CacheError               503
    ConfigurationError       503
    FatigueServiceError      500
"""

import math
import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from adfatigue.core.config.constants import HEADER_REQUEST_ID, HEADER_RETRY_AFTER
from adfatigue.core.exceptions import (
    CacheError,
    ConfigurationError,
    FatigueServiceError,
    OriginAuthInvalidError,
    OriginError,
    OriginRateLimitedError,
    OriginTimeoutError,
    ValidationError,
)
from adfatigue.core.logging.logger import get_logger, get_request_id
from adfatigue.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[FatigueServiceError], int], ...] = (
    (OriginAuthInvalidError, 401),
    (OriginRateLimitedError, 429),
    (OriginTimeoutError, 504),
    (OriginError, 502),
    (ValidationError, 422),
    (CacheError, 503),
    (ConfigurationError, 503),
)


def status_code_for(exc: FatigueServiceError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def fatigue_error_handler(request: Request, exc: FatigueServiceError) -> JSONResponse:
    """Translate a service error into a JSON response."""
    status_code = status_code_for(exc)
    if exc.request_id is None:
        exc.request_id = get_request_id()

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"Request failed: {exc.message}",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
    )
    get_metrics_collector().record_error(type(exc).__name__, "api")

    headers = {}
    if exc.request_id:
        headers[HEADER_REQUEST_ID] = exc.request_id
    if isinstance(exc, OriginRateLimitedError):
        headers[HEADER_RETRY_AFTER] = str(math.ceil(exc.retry_after_seconds))

    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FatigueServiceError, fatigue_error_handler)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catch-all for exceptions no handler claimed.

    Internal details stay in the logs; clients get the error type and,
    outside production, the traceback.
    """

    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            error_type = type(e).__name__
            logger.error(
                f"Unhandled exception in request: {request.method} {request.url.path}",
                method=request.method,
                path=request.url.path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )
            get_metrics_collector().record_error(error_type, "unhandled_exception")

            error_response = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred while processing your request",
                "error_type": error_type,
            }
            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = str(e)

            return JSONResponse(status_code=500, content=error_response)
