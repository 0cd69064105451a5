"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set here, before anything imports
``chat_proxy.core.config``, so the global settings see them.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "20")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "60")

import pytest  # noqa: E402

from chat_proxy.adapters.llm.base import AbstractLLMClient  # noqa: E402
from chat_proxy.core.rate_limit import set_rate_limiter  # noqa: E402
from chat_proxy.services.chat_service import ChatService, set_chat_service  # noqa: E402
from chat_proxy.services.prompts import get_prompt  # noqa: E402


class FakeLLMClient(AbstractLLMClient):
    """Scriptable stand-in for the upstream completion client."""

    def __init__(
        self,
        reply: str = "Hi there",
        *,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.reply = reply
        self.delay = delay
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.cancelled = False

    async def complete(self, messages, **kwargs: Any) -> str:
        self.calls.append({"messages": messages, "options": kwargs})
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    """Every test starts with an empty in-memory limiter."""
    set_rate_limiter(None)
    yield
    set_rate_limiter(None)


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def chat_service(fake_llm: FakeLLMClient):
    """Install a ChatService backed by the fake client for route tests."""
    service = ChatService(
        fake_llm,
        prompt=get_prompt("practical"),
        timeout_seconds=0.2,
        generation_options={"temperature": 0.5, "max_tokens": 650},
    )
    set_chat_service(service)
    yield service
    set_chat_service(None)
