"""Request validation for the chat endpoint.

All checks raise a ``ClientInputError`` subclass on rejection and never touch
shared state. The body is read under a byte cap before any parsing.

The denylist is a coarse, best-effort filter (case-insensitive regular
expression search), not a safety guarantee.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Iterable

from fastapi import Request
from pydantic import ValidationError

from chat_proxy.core.config import settings
from chat_proxy.core.errors import (
    ConfigurationAppError,
    ContentRejectedError,
    InvalidMethodError,
    MessageTooLongError,
    MissingMessageError,
)
from chat_proxy.schemas.chat import ChatRequest

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("POST",)


def validate_method(method: str) -> None:
    """Reject anything but POST.

    Raises:
        InvalidMethodError: With the accepted methods in ``details``.
    """
    if method.upper() not in ALLOWED_METHODS:
        raise InvalidMethodError(
            code="method_not_allowed",
            message="Use POST",
            details={"allowed_methods": list(ALLOWED_METHODS)},
        )


async def read_body_limited(request: Request, max_bytes: int | None = None) -> bytes:
    """Read the request body in chunks, enforcing a byte cap.

    A declared Content-Length over the cap is rejected before anything is
    read; otherwise the stream is consumed until it ends or passes the cap.

    Args:
        request: Incoming request.
        max_bytes: Byte cap; defaults to ``APP_MAX_BODY_BYTES``.

    Returns:
        The raw body if it is within the cap.

    Raises:
        MessageTooLongError: If the body is larger than ``max_bytes``.
    """
    limit = max_bytes if max_bytes is not None else settings.app.max_body_bytes

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        logger.warning(
            "validation.body_rejected_by_header",
            extra={"content_length": int(declared), "max_bytes": limit},
        )
        raise _body_too_large(limit)

    size = 0
    chunks: list[bytes] = []
    async for chunk in request.stream():
        if not chunk:
            continue
        size += len(chunk)
        if size > limit:
            logger.warning(
                "validation.body_rejected_by_stream",
                extra={"size": size, "max_bytes": limit},
            )
            raise _body_too_large(limit)
        chunks.append(chunk)

    return b"".join(chunks)


def decode_body(raw: bytes) -> Any:
    """Decode a raw request body as JSON.

    Raises:
        MissingMessageError: If the body is empty or not valid JSON.
    """
    if not raw:
        raise _missing_message()
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        # RecursionError: nesting deeper than the decoder can follow
        raise _missing_message() from exc


def parse_chat_request(payload: Any) -> ChatRequest:
    """Build the request envelope from a decoded JSON payload.

    Raises:
        MissingMessageError: If the payload is not an object, or ``message``
            is absent, not a string, or blank.
    """
    if not isinstance(payload, dict):
        raise _missing_message()
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as exc:
        raise _missing_message() from exc


def validate_message(message: str, *, max_chars: int | None = None) -> str:
    """Apply the size and content checks to a chat message.

    Args:
        message: Message text from the envelope.
        max_chars: Character limit; defaults to ``APP_MAX_INPUT_CHARS``.

    Returns:
        The message, unchanged.

    Raises:
        MessageTooLongError: If the message is longer than ``max_chars``.
        ContentRejectedError: If the message matches the denylist.
    """
    limit = max_chars if max_chars is not None else settings.app.max_input_chars

    if len(message) > limit:
        raise MessageTooLongError(
            code="message_too_long",
            message=f"Message too long (max {limit} chars).",
            details={"max_chars": limit, "actual_chars": len(message)},
        )

    pattern = find_denied_pattern(message)
    if pattern is not None:
        logger.info(
            "validation.content_rejected",
            extra={"pattern": pattern, "message_chars": len(message)},
        )
        raise ContentRejectedError(
            code="content_rejected",
            message="Message contains disallowed content.",
        )

    return message


def find_denied_pattern(message: str) -> str | None:
    """Return the first denylist pattern that matches message, or None."""
    for compiled in get_denylist(tuple(settings.app.denylist_patterns)):
        if compiled.search(message):
            return compiled.pattern
    return None


@lru_cache(maxsize=8)
def get_denylist(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    """Compile the configured denylist (cached per distinct pattern tuple)."""
    return compile_denylist(patterns)


def compile_denylist(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    """Compile denylist patterns case-insensitively, skipping blank entries.

    Raises:
        ConfigurationAppError: If a pattern is not a valid regular expression.
    """
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as exc:
            raise ConfigurationAppError(
                code="invalid_denylist_pattern",
                message=f"Invalid denylist pattern: {pattern!r} ({exc})",
            ) from exc
    return tuple(compiled)


def _missing_message() -> MissingMessageError:
    return MissingMessageError(code="missing_message", message="Missing message")


def _body_too_large(max_bytes: int) -> MessageTooLongError:
    max_chars = settings.app.max_input_chars
    return MessageTooLongError(
        code="body_too_large",
        message=f"Message too long (max {max_chars} chars).",
        details={"max_chars": max_chars, "max_bytes": max_bytes},
    )
