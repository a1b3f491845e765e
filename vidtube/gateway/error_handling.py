"""
VidTube - Exception Handlers

Renders typed service errors as ErrorResponse bodies:

    {"detail": ..., "error_code": ..., "request_id": ...}

Only the error's safe message is returned. The internal reason and the
chained cause are logged.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vidtube.auth.schemas import ErrorResponse
from vidtube.errors import AuthServiceError


logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    detail: str,
    error_code: Optional[str],
) -> JSONResponse:
    body = ErrorResponse(
        detail=detail,
        error_code=error_code,
        request_id=getattr(request.state, "request_id", None),
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for service errors and request validation failures."""

    @app.exception_handler(AuthServiceError)
    async def handle_service_error(request: Request, exc: AuthServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "%s %s -> %d %s: %s (reason=%s, cause=%r)",
            request.method,
            request.url.path,
            exc.status_code,
            exc.error_code,
            exc.message,
            exc.reason,
            exc.__cause__,
        )
        return _error_response(request, exc.status_code, exc.message, exc.error_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.warning(
            "%s %s -> 400 validation_error: %d error(s)",
            request.method,
            request.url.path,
            len(errors),
        )
        # First message only; input values may contain passwords
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error_response(request, 400, message, "validation_error")
