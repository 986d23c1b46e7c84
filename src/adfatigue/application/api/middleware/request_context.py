"""
Request Context Middleware

STAGE-1.1: Every request gets a request id (taken from X-Request-ID when
the client sends one), bound into the logging context for the duration of
the request and echoed back on the response. Completion is logged with
status code and duration.
"""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from adfatigue.core.config.constants import HEADER_REQUEST_ID
from adfatigue.core.logging.logger import clear_request_id, get_logger, set_request_id

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[HEADER_REQUEST_ID] = request_id

            logger.info(
                f"Request completed: {request.method} {request.url.path}",
                stage="1.2",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_seconds=round(time.perf_counter() - start_time, 4),
            )
            return response
        finally:
            clear_request_id()
