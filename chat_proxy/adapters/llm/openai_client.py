"""OpenAI chat completions adapter."""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from chat_proxy.adapters.llm.base import AbstractLLMClient, ChatMessage
from chat_proxy.core.errors import UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_ERROR = "Upstream error."

_PASSTHROUGH_PARAMS = (
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
    "seed",
)


def extract_error_message(body: Any) -> str:
    """Pull a human-readable message out of an upstream error body.

    Accepts the inner ``error`` object (what the SDK exposes) as well as the
    full ``{"error": {...}}`` envelope; anything else yields the default.
    """
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
        inner = body.get("error")
        if isinstance(inner, dict):
            message = inner.get("message")
            if isinstance(message, str) and message:
                return message
    return DEFAULT_UPSTREAM_ERROR


def extract_reply_text(response: Any) -> str:
    """Return the first choice's content, trimmed, or "" when any part is missing."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        return ""
    return content.strip()


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI chat completions.

    Uses the official OpenAI Python SDK with async support. SDK retries are
    disabled: each ``complete`` call is exactly one HTTP request.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        """Initialize the OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            model: Model name (e.g., "gpt-4o-mini").
            base_url: Optional custom base URL for the API.
            timeout_seconds: SDK-level request timeout in seconds.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model

    async def complete(
        self,
        messages: list[ChatMessage],
        **kwargs: Any,
    ) -> str:
        """Send messages to chat completions and return the reply text.

        Args:
            messages: Ordered role-tagged messages.
            **kwargs: temperature, max_tokens, top_p, penalties, seed.

        Returns:
            str: Trimmed completion text ("" when the response has none).

        Raises:
            UpstreamTimeoutError: If the SDK timed out.
            UpstreamError: On any non-success status or connection failure.
        """
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.pop("temperature", 0.5),
        }
        for param in _PASSTHROUGH_PARAMS:
            if kwargs.get(param) is not None:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except openai.APITimeoutError as exc:
            raise UpstreamTimeoutError(
                code="upstream_timeout",
                message="Upstream timeout.",
                details={"model": self.model},
            ) from exc
        except openai.APIStatusError as exc:
            logger.warning(
                "llm.upstream_status_error",
                extra={"upstream_status": exc.status_code, "model": self.model},
            )
            raise UpstreamError(
                code="upstream_error",
                message=extract_error_message(exc.body),
                details={"upstream_status": exc.status_code, "model": self.model},
            ) from exc
        except openai.APIConnectionError as exc:
            logger.warning(
                "llm.upstream_unreachable",
                extra={"error_type": type(exc).__name__, "model": self.model},
            )
            raise UpstreamError(
                code="upstream_unreachable",
                message=DEFAULT_UPSTREAM_ERROR,
                details={"model": self.model},
            ) from exc

        return extract_reply_text(response)
