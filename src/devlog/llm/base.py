"""Base interface and types for language-model clients."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal, Optional, TypedDict


class ChatMessage(TypedDict):
    """A single chat turn."""

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class LLMResponse:
    """Standardized response from language-model clients.

    Attributes:
        content: The generated text
        prompt_tokens: Number of tokens in the prompt
        completion_tokens: Number of tokens in the completion
        total_tokens: Total tokens used
        finish_reason: Why generation stopped (stop, length, etc.)
        model: The model that actually answered
        duration_ms: Time taken for the API call in milliseconds
        raw_response: Provider-specific raw response for debugging
    """

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    finish_reason: str
    model: str
    duration_ms: float
    raw_response: Any = None


class LanguageModelClient(ABC):
    """Abstract base class for language-model clients.

    Clients are constructed once and passed to the components that need
    them. Every call takes a timeout in seconds; exceeding it fails only that
    call, surfaced as ``LLMError`` with ``timed_out=True``.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'openai', 'anthropic')."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier being used."""
        ...

    @abstractmethod
    def chat_complete(
        self,
        messages: list[ChatMessage],
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a reply to a chat transcript.

        Args:
            messages: Conversation so far (system messages allowed)
            timeout: Per-call timeout in seconds
            max_tokens: Maximum tokens in the response
            temperature: Sampling temperature

        Returns:
            LLMResponse with the completion and metadata

        Raises:
            LLMError: On timeout, auth, or transport failures
        """
        ...

    def complete(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Single-prompt completion."""
        return self.chat_complete(
            [{"role": "user", "content": prompt}],
            timeout=timeout,
            max_tokens=max_tokens,
            temperature=temperature,
        )
