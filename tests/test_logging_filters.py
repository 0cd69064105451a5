"""Tests for redaction and request correlation in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from chat_proxy.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    fingerprint,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired like production: request id + redaction + JSON."""
    logger = logging.getLogger("test_chat_proxy_logging")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_credentials(capture):
    logger, stream = capture

    logger.info(
        "upstream_call",
        extra={"api_key": "sk-secret-123", "authorization": "Bearer abc", "model": "gpt-4o-mini"},
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "Bearer abc" not in output
    assert "[REDACTED]" in output
    assert "gpt-4o-mini" in output


def test_redacts_user_content(capture):
    logger, stream = capture

    logger.info(
        "chat_event",
        extra={
            "user_message": "my address is 1 Main St",
            "reply_text": "Sure, here is how",
            "messages": [{"role": "user", "content": "private"}],
            "message_chars": 23,
        },
    )

    output = stream.getvalue()
    assert "1 Main St" not in output
    assert "here is how" not in output
    assert "private" not in output
    assert "message_chars" in output


def test_redacts_nested_keys(capture):
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={"headers": {"Authorization": "Bearer xyz", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "Bearer xyz" not in output
    assert "pytest" in output


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info("rate_limit.allowed", extra={"key_hash": "abcd", "limit": 20, "remaining": 19})

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.allowed"
    assert record["limit"] == 20
    assert record["key_hash"] == "abcd"
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context(capture):
    logger, stream = capture

    set_request_id("req-123")
    logger.info("with_context")

    record = json.loads(stream.getvalue())
    assert record["request_id"] == "req-123"


def test_fingerprint_is_stable_and_opaque():
    assert fingerprint("ip:203.0.113.7") == fingerprint("ip:203.0.113.7")
    assert "203.0.113.7" not in fingerprint("ip:203.0.113.7")
    assert len(fingerprint("x")) == 16
