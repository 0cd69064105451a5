"""Chat service: one bounded upstream completion per admitted message.

The service assembles the prompt, calls the LLM client under a timeout and
turns the outcome into either reply text or a domain error. The timeout is
enforced with ``asyncio.wait_for``: when it fires the in-flight call is
cancelled at its current await point, and the timer is disposed of on every
path. Nothing here retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from chat_proxy.adapters.llm.base import AbstractLLMClient
from chat_proxy.adapters.llm.factory import create_llm_client
from chat_proxy.core.config import settings
from chat_proxy.core.errors import UpstreamError, UpstreamTimeoutError
from chat_proxy.services.prompts import PromptTemplate, build_messages, get_prompt

logger = logging.getLogger(__name__)


class ChatService:
    """Relay a user message to the completion service with a bounded wait."""

    def __init__(
        self,
        llm: AbstractLLMClient,
        *,
        prompt: PromptTemplate,
        timeout_seconds: float,
        generation_options: dict[str, Any] | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._llm = llm
        self._prompt = prompt
        self._timeout_seconds = timeout_seconds
        self._generation_options = dict(generation_options or {})

    @property
    def prompt(self) -> PromptTemplate:
        return self._prompt

    async def reply(self, message: str) -> str:
        """Return the model's reply to message.

        Raises:
            UpstreamTimeoutError: If no answer arrived within the timeout.
            UpstreamError: If the completion service reported a failure.
        """
        messages = build_messages(self._prompt, message)
        start = time.perf_counter()

        try:
            text = await asyncio.wait_for(
                self._llm.complete(messages, **self._generation_options),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "chat.upstream_timeout",
                extra={
                    "timeout_seconds": self._timeout_seconds,
                    "prompt_variant": self._prompt.name,
                },
            )
            raise UpstreamTimeoutError(
                code="upstream_timeout",
                message="Upstream timeout.",
                details={"timeout_seconds": self._timeout_seconds},
            ) from exc
        except UpstreamTimeoutError:
            logger.warning(
                "chat.upstream_timeout",
                extra={
                    "timeout_seconds": self._timeout_seconds,
                    "prompt_variant": self._prompt.name,
                    "source": "client",
                },
            )
            raise
        except UpstreamError as exc:
            logger.warning(
                "chat.upstream_error",
                extra={"error_code": exc.code, "prompt_variant": self._prompt.name},
            )
            raise

        logger.info(
            "chat.replied",
            extra={
                "prompt_variant": self._prompt.name,
                "message_chars": len(message),
                "reply_chars": len(text),
                "upstream_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return text


_service: ChatService | None = None


def build_chat_service() -> ChatService:
    """Build a ChatService from the global settings.

    Raises:
        ConfigurationAppError: If the credential or prompt variant is invalid.
    """
    return ChatService(
        create_llm_client(),
        prompt=get_prompt(settings.app.prompt_variant),
        timeout_seconds=settings.llm.timeout_seconds,
        generation_options={
            "temperature": settings.llm.temperature,
            "max_tokens": settings.llm.max_reply_tokens,
            "presence_penalty": settings.llm.presence_penalty,
            "frequency_penalty": settings.llm.frequency_penalty,
        },
    )


def get_chat_service() -> ChatService:
    """Return the process-wide ChatService, creating it on first use."""

    global _service
    if _service is None:
        _service = build_chat_service()
    return _service


def set_chat_service(service: ChatService | None) -> None:
    """Replace the process-wide ChatService (None rebuilds it on next use)."""

    global _service
    _service = service
