"""
Exception handlers for restcrud applications.

Route handlers never catch model failures; they land here. Handles:
- InvalidQueryParameterError / InvalidRequestBodyError: malformed input (400)
- ConstraintViolationError: database constraint violations (422)
- Any other exception: logged with traceback, answered with 500, either by
  UnhandledErrorMiddleware (inside CORS) or by the app-level handler
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from restcrud.runtime.errors import (
    ConstraintViolationError,
    InvalidQueryParameterError,
    InvalidRequestBodyError,
)
from restcrud.runtime.logging import get_api_logger, log_with_context

INTERNAL_ERROR_BODY = {"error": "Internal server error"}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the generic error path on a FastAPI application.

    Args:
        app: FastAPI application instance
    """
    logger = get_api_logger()

    @app.exception_handler(InvalidQueryParameterError)
    async def query_parameter_handler(
        request: Request, exc: InvalidQueryParameterError
    ) -> Response:
        """Convert malformed list parameters to 400 Bad Request."""
        log_with_context(
            logger,
            logging.WARNING,
            f"Rejected {request.method} {request.url.path}: {exc}",
            parameter=exc.parameter,
        )
        return JSONResponse(
            status_code=400,
            content={"error": str(exc), "parameter": exc.parameter},
        )

    @app.exception_handler(InvalidRequestBodyError)
    async def request_body_handler(request: Request, exc: InvalidRequestBodyError) -> Response:
        """Convert malformed request bodies to 400 Bad Request."""
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(ConstraintViolationError)
    async def constraint_violation_handler(
        request: Request, exc: ConstraintViolationError
    ) -> Response:
        """Convert database constraint violations to 422 Unprocessable Entity."""
        detail: dict[str, Any] = {
            "error": str(exc),
            "type": "constraint_violation",
            "constraint_type": exc.constraint_type,
        }
        if exc.field:
            detail["field"] = exc.field
        return JSONResponse(status_code=422, content=detail)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        """Last resort for apps without the error middleware."""
        return internal_error_response(request, exc)


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log an unhandled failure and answer 500 without leaking details."""
    log_with_context(
        get_api_logger(),
        logging.ERROR,
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=exc,
        status=500,
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content=INTERNAL_ERROR_BODY)


def create_error_middleware() -> Any:
    """
    Create a middleware that turns unhandled exceptions into the 500 response.

    Starlette runs the ``Exception`` handler outside every user middleware,
    so its response would miss the CORS and Content-Range headers. Add this
    middleware before CORSMiddleware so the 500 passes through both.

    Returns:
        Starlette middleware class
    """
    from starlette.middleware.base import BaseHTTPMiddleware

    class UnhandledErrorMiddleware(BaseHTTPMiddleware):
        """Middleware answering unhandled exceptions with a logged 500."""

        async def dispatch(self, request: Request, call_next: Any) -> Response:
            try:
                return await call_next(request)  # type: ignore[no-any-return]
            except Exception as exc:
                return internal_error_response(request, exc)

    return UnhandledErrorMiddleware
