"""Global exception handlers for consistent error responses.

Every failure ends as ``{"error": "<message>"}`` with the status of its
error class:

- InvalidMethodError → 405 + Allow
- MessageTooLongError → 413
- other ClientInputError → 400
- RateLimitExceededError → 429 + Retry-After
- UpstreamError → 502, UpstreamTimeoutError → 504
- ConfigurationAppError and any unexpected Exception → 500, generic message
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_proxy.core.config import settings
from chat_proxy.core.errors import (
    AppError,
    ConfigurationAppError,
    InvalidMethodError,
    MessageTooLongError,
    RateLimitExceededError,
    UpstreamError,
    UpstreamTimeoutError,
)
from chat_proxy.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Server error."

# Most specific classes first
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (InvalidMethodError, 405),
    (MessageTooLongError, 413),
    (RateLimitExceededError, 429),
    (UpstreamTimeoutError, 504),
    (UpstreamError, 502),
    (ConfigurationAppError, 500),
)


def status_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status (400 for plain client errors)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _headers_for(exc: AppError) -> dict[str, str]:
    details = exc.details or {}
    headers: dict[str, str] = {}

    if isinstance(exc, InvalidMethodError):
        headers["Allow"] = ", ".join(details.get("allowed_methods", ["POST"]))
    elif isinstance(exc, RateLimitExceededError):
        headers["Retry-After"] = str(details.get("retry_after", 0))
        if settings.app.rate_limit_include_headers:
            headers["X-RateLimit-Limit"] = str(details.get("limit", ""))
            headers["X-RateLimit-Remaining"] = str(details.get("remaining", 0))
            headers["X-RateLimit-Reset"] = str(details.get("reset_at", ""))

    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Turn a domain error into its JSON response.

    Server-side faults (5xx from configuration problems) are logged at error
    level and answered with the generic message; everything else passes its
    own message through to the caller.
    """
    status_code = status_for(exc)
    is_server_fault = isinstance(exc, ConfigurationAppError)

    log = logger.error if is_server_fault else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    message = GENERIC_SERVER_ERROR if is_server_fault else exc.message
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=_headers_for(exc) or None,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Reshape framework HTTP errors (404, framework 405, ...) to the error body."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the exception type and message; the caller only ever sees the
    generic message.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(status_code=500, content={"error": GENERIC_SERVER_ERROR})


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
