from abc import ABC, abstractmethod
from typing import Any


ChatMessage = dict[str, str]


class AbstractLLMClient(ABC):
	"""Interface for chat completion clients."""

	@abstractmethod
	async def complete(
		self,
		messages: list[ChatMessage],
		**kwargs: Any,
	) -> str:
		"""Request one completion for an ordered list of role-tagged messages.

		Implementations perform exactly one upstream request (no retries) and
		must tolerate cancellation at their await points.

		Args:
			messages: ``{"role": ..., "content": ...}`` dicts, system first.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Returns:
			str: The first candidate's text, trimmed; empty when absent.

		Raises:
			UpstreamError: If the provider answered with a failure.
			UpstreamTimeoutError: If the provider's own timeout fired.
		"""
		...
