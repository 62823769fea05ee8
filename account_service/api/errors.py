"""Translate failures into HTTP responses at the request boundary."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..domain.errors import AccountServiceError, Unauthenticated, ValidationError

logger = logging.getLogger(__name__)


def _render(error: AccountServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, Unauthenticated) else None
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.code, "detail": error.message},
        headers=headers,
    )


async def handle_service_error(request: Request, exc: AccountServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    return _render(exc)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()} - {""})
    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request"
    return _render(ValidationError(message))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    content = {"error": "internal_error", "detail": "Internal server error"}
    if get_settings().debug:
        content["exception"] = type(exc).__name__
        content["message"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def install_error_handlers(app: FastAPI) -> None:
    """Register the boundary handlers on ``app``."""
    app.add_exception_handler(AccountServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
