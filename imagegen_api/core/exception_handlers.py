"""Exception handlers producing the ``{"error": {...}}`` response body.

Throttled responses also carry ``Retry-After`` and ``X-RateLimit-*`` headers
when enabled. Unexpected exceptions become a generic 500 without any detail.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from imagegen_api.core.config import settings
from imagegen_api.core.errors import AppError, ThrottledAppError
from imagegen_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

RATE_LIMIT_HEADERS = {
    "Retry-After": "retry_after",
    "X-RateLimit-Limit": "limit",
    "X-RateLimit-Remaining": "remaining",
    "X-RateLimit-Reset": "reset_at",
}


def _throttle_headers(exc: AppError) -> dict[str, str] | None:
    if not isinstance(exc, ThrottledAppError) or not exc.details:
        return None
    if not settings.app.rate_limit_include_headers:
        return None
    return {header: str(exc.details.get(field, 0)) for header, field in RATE_LIMIT_HEADERS.items()}


def _error_body(code: str, message: str, details=None) -> dict:
    body = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return {"error": body}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError with the status code its class declares."""
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": exc.status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.details),
        headers=_throttle_headers(exc),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
