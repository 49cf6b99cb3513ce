"""Language-model clients.

Currently supported providers:
- Ollama (local, through its OpenAI-compatible endpoint)
- OpenAI (gpt-4o-mini, gpt-4o, etc.)
- Anthropic (claude-sonnet-4-5, claude-3-5-haiku, etc.)

Usage:
    from devlog.llm import create_client

    client = create_client(provider_type="openai", api_key="sk-xxx")
    response = client.complete("Summarize...", timeout=30)
"""

import logging
from typing import Literal, Optional

from devlog.config import Settings
from devlog.exceptions import LLMUnavailableError
from devlog.llm.base import ChatMessage, LanguageModelClient, LLMResponse

logger = logging.getLogger(__name__)

# Type alias for provider names
ProviderType = Literal["ollama", "openai", "anthropic"]

DEFAULT_MODELS: dict[str, str] = {
    "ollama": "llama3.2",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-5-20250514",
}


def create_client(
    provider_type: ProviderType,
    api_key: str = "",
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    max_tokens: int = 1024,
    temperature: float = 0.3,
) -> LanguageModelClient:
    """Factory function to create language-model clients.

    Args:
        provider_type: "ollama", "openai" or "anthropic"
        api_key: API key for the provider (unused by Ollama)
        model: Optional model override (uses provider default if not specified)
        base_url: Endpoint override (required in practice for Ollama)
        max_tokens: Default response budget
        temperature: Default sampling temperature

    Returns:
        Configured LanguageModelClient instance

    Raises:
        ValueError: If provider_type is unknown or api_key is missing
    """
    model = model or DEFAULT_MODELS.get(provider_type)

    if provider_type == "ollama":
        from devlog.llm.openai_provider import OpenAIClient

        return OpenAIClient(
            api_key=api_key or "ollama",
            model=model,
            base_url=base_url or "http://localhost:11434/v1",
            provider="ollama",
            max_tokens=max_tokens,
            temperature=temperature,
        )

    if not api_key:
        raise ValueError(f"API key is required for {provider_type} provider")

    if provider_type == "openai":
        from devlog.llm.openai_provider import OpenAIClient

        return OpenAIClient(
            api_key=api_key,
            model=model,
            base_url=base_url,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    elif provider_type == "anthropic":
        from devlog.llm.anthropic_provider import AnthropicClient

        return AnthropicClient(
            api_key=api_key,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    else:
        raise ValueError(
            f"Unknown provider type: {provider_type}. "
            f"Supported providers: {', '.join(get_available_providers())}"
        )


def create_client_from_settings(settings: Settings) -> LanguageModelClient:
    """
    Build the configured client.

    Raises:
        LLMUnavailableError: If the client cannot be constructed
    """
    provider = settings.llm_provider.lower()
    api_keys = {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
        "ollama": "",
    }
    try:
        return create_client(
            provider_type=provider,  # type: ignore[arg-type]
            api_key=api_keys.get(provider, ""),
            model=settings.llm_model or None,
            base_url=settings.ollama_base_url if provider == "ollama" else None,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    except ValueError as e:
        raise LLMUnavailableError(str(e), operation="create llm client") from e


def get_available_providers() -> list[str]:
    """Get list of available provider types."""
    return ["ollama", "openai", "anthropic"]


__all__ = [
    "ChatMessage",
    "LanguageModelClient",
    "LLMResponse",
    "ProviderType",
    "create_client",
    "create_client_from_settings",
    "get_available_providers",
]
