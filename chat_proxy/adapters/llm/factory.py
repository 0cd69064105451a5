"""Factory pattern for creating LLM client instances."""

from chat_proxy.adapters.llm.base import AbstractLLMClient
from chat_proxy.adapters.llm.openai_client import OpenAIClient
from chat_proxy.core.config import LLMSettings, settings
from chat_proxy.core.errors import ConfigurationAppError


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the LLM client for the configured provider.

    Args:
        llm_settings: Optional settings; defaults to the global ``settings.llm``.

    Returns:
        AbstractLLMClient: Configured client.

    Raises:
        ConfigurationAppError: If the provider is unknown or its credential
            is missing.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider == "openai":
        if not cfg.api_key:
            raise ConfigurationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY (or OPENAI_API_KEY)",
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise ConfigurationAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )
