"""Application-level exception types.

This module defines the domain errors raised by the admission guard and the
upstream adapters. Each subclass maps to exactly one HTTP status in
``chat_proxy.core.exception_handlers``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and response headers.

    Details are logged and used to build headers; they are never part of the
    response body.
    """

    max_chars: int
    actual_chars: int
    allowed_methods: list[str]
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    upstream_status: int
    timeout_seconds: float
    model: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message returned to the caller.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ClientInputError(AppError):
    """Raised when the request itself is unacceptable (4xx)."""


class InvalidMethodError(ClientInputError):
    """Raised when the request method is not the accepted write method."""


class MissingMessageError(ClientInputError):
    """Raised when the body has no non-empty string ``message``."""


class MessageTooLongError(ClientInputError):
    """Raised when the message exceeds the configured character maximum."""


class ContentRejectedError(ClientInputError):
    """Raised when the message matches the configured denylist."""


class RateLimitExceededError(AppError):
    """Raised when the caller exhausted its budget for the current window."""


class UpstreamTimeoutError(AppError):
    """Raised when the completion service did not answer in time."""


class UpstreamError(AppError):
    """Raised when the completion service answered with a failure."""


class ConfigurationAppError(AppError):
    """Raised when the service is misconfigured (e.g., missing credential)."""
