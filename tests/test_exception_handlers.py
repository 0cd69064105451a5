"""Tests for global exception handlers.

Validates that every error class maps to its HTTP status, that the body is
always ``{"error": "..."}``, and that internal details never leak.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_proxy.core.errors import (
    AppError,
    ConfigurationAppError,
    ContentRejectedError,
    InvalidMethodError,
    MessageTooLongError,
    MissingMessageError,
    RateLimitExceededError,
    UpstreamError,
    UpstreamTimeoutError,
)
from chat_proxy.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


def _raise_route(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def endpoint():
        raise exc


class TestStatusMapping:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (InvalidMethodError(code="m", message="m"), 405),
            (MissingMessageError(code="m", message="m"), 400),
            (MessageTooLongError(code="m", message="m"), 413),
            (ContentRejectedError(code="m", message="m"), 400),
            (RateLimitExceededError(code="m", message="m"), 429),
            (UpstreamTimeoutError(code="m", message="m"), 504),
            (UpstreamError(code="m", message="m"), 502),
            (ConfigurationAppError(code="m", message="m"), 500),
            (AppError(code="m", message="m"), 400),
        ],
    )
    def test_status_for(self, exc, expected):
        assert status_for(exc) == expected


class TestAppErrorHandler:
    def test_client_error_body(self, client, app_with_handlers):
        _raise_route(
            app_with_handlers,
            "/too-long",
            MessageTooLongError(
                code="message_too_long",
                message="Message too long (max 700 chars).",
                details={"max_chars": 700, "actual_chars": 900},
            ),
        )

        response = client.get("/too-long")

        assert response.status_code == 413
        # Details are for logs only
        assert response.json() == {"error": "Message too long (max 700 chars)."}

    def test_invalid_method_sets_allow_header(self, client, app_with_handlers):
        _raise_route(
            app_with_handlers,
            "/method",
            InvalidMethodError(
                code="method_not_allowed",
                message="Use POST",
                details={"allowed_methods": ["POST"]},
            ),
        )

        response = client.get("/method")

        assert response.status_code == 405
        assert response.headers["Allow"] == "POST"

    def test_rate_limit_sets_retry_after(self, client, app_with_handlers):
        _raise_route(
            app_with_handlers,
            "/limited",
            RateLimitExceededError(
                code="rate_limited",
                message="Too many requests. Try again shortly.",
                details={"retry_after": 37, "limit": 20, "remaining": 0, "reset_at": 1700000060},
            ),
        )

        response = client.get("/limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "37"
        assert response.headers["X-RateLimit-Reset"] == "1700000060"

    def test_configuration_error_is_generic_500(self, client, app_with_handlers):
        _raise_route(
            app_with_handlers,
            "/config",
            ConfigurationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY (or OPENAI_API_KEY)",
            ),
        )

        response = client.get("/config")

        assert response.status_code == 500
        assert response.json() == {"error": "Server error."}
        assert "LLM_API_KEY" not in response.text


class TestGeneralExceptionHandler:
    def test_registered(self, app_with_handlers):
        assert Exception in app_with_handlers.exception_handlers
        assert AppError in app_with_handlers.exception_handlers

    def test_never_leaks_details(self):
        request = AsyncMock()
        request.url.path = "/api/chat"
        request.method = "POST"

        exc = ValueError("connection string postgres://user:pw@db")
        response = asyncio.run(general_exception_handler(request, exc))

        body = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert body == {"error": "Server error."}
        assert "ValueError" not in response.body.decode()
        assert "Traceback" not in response.body.decode()

    def test_multiple_setups_do_not_fail(self):
        app = FastAPI()
        setup_exception_handlers(app)
        setup_exception_handlers(app)
        assert AppError in app.exception_handlers
