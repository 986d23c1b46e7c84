"""
Middleware Package

- error_handler: Service error to HTTP status mapping + catch-all 500
- request_context: Request id correlation and request logging

Order matters: middleware added last runs first. setup_middleware() adds
the request context middleware last so the request id is bound before
anything (including the catch-all error handler) logs.
"""

from fastapi import FastAPI

from adfatigue.core.config.settings import get_settings

from .error_handler import ErrorHandlingMiddleware, register_exception_handlers, status_code_for
from .request_context import RequestContextMiddleware


def setup_middleware(app: FastAPI) -> None:
    settings = get_settings()
    register_exception_handlers(app)
    app.add_middleware(
        ErrorHandlingMiddleware,
        include_traceback=(settings.app.ENVIRONMENT == "development"),
    )
    app.add_middleware(RequestContextMiddleware)


__all__ = [
    "ErrorHandlingMiddleware",
    "RequestContextMiddleware",
    "register_exception_handlers",
    "setup_middleware",
    "status_code_for",
]
