"""Per-caller rate limiting for the chat endpoint.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Fixed-window limit per caller key, process-local (best effort per instance).
- Caller key: first ``X-Forwarded-For`` entry, then the connection address,
  then the shared sentinel ``unknown``.
"""

from __future__ import annotations

import logging

from fastapi import Request

from chat_proxy.adapters.rate_limit.base import AbstractRateLimiter
from chat_proxy.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from chat_proxy.core.config import settings
from chat_proxy.core.errors import RateLimitExceededError
from chat_proxy.core.logging import fingerprint

logger = logging.getLogger(__name__)

UNKNOWN_CALLER = "unknown"

_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int, int] | None = None
_limiter_pinned = False


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests. If
    the limit/window configuration changes (primarily in tests) the default
    in-memory limiter is rebuilt; a limiter installed with
    ``set_rate_limiter`` is kept as is.
    """

    global _limiter, _limiter_config

    if _limiter is not None and _limiter_pinned:
        return _limiter

    config = (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_seconds,
        settings.app.rate_limit_max_keys,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = InMemoryFixedWindowRateLimiter(
            limit=settings.app.rate_limit_requests,
            window_seconds=settings.app.rate_limit_window_seconds,
            max_keys=settings.app.rate_limit_max_keys,
        )
        _limiter_config = config

    return _limiter


def set_rate_limiter(limiter: AbstractRateLimiter | None) -> None:
    """Install a limiter (e.g., one backed by a shared store), or reset to default.

    Passing None drops the current limiter and all of its state; the next
    call to ``get_rate_limiter`` builds a fresh in-memory one.
    """

    global _limiter, _limiter_config, _limiter_pinned

    _limiter = limiter
    _limiter_config = None
    _limiter_pinned = limiter is not None


def resolve_caller_key(request: Request) -> str:
    """Derive the rate-limit key for the current request.

    Callers with neither a forwarded-for header nor a connection address
    share the ``ip:unknown`` bucket.
    """

    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client else None
    return f"ip:{client_host or UNKNOWN_CALLER}"


def enforce_rate_limit(request: Request) -> None:
    """Consume one unit of the caller's budget.

    Raises:
        RateLimitExceededError: When the caller is over its limit for the
            current window. ``details`` carries the retry hint in seconds.
    """

    if not settings.app.rate_limit_enabled:
        return

    key = resolve_caller_key(request)
    result = get_rate_limiter().consume(key)
    key_hash = fingerprint(key)

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_s": settings.app.rate_limit_window_seconds,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "count": result.count,
            "window_s": settings.app.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    raise RateLimitExceededError(
        code="rate_limited",
        message="Too many requests. Try again shortly.",
        details={
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
        },
    )
