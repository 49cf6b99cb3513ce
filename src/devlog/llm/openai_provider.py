"""OpenAI-compatible client (OpenAI and Ollama)."""

import logging
import time
from typing import Any, Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from devlog.exceptions import LLMError
from devlog.llm.base import ChatMessage, LanguageModelClient, LLMResponse
from devlog.llm.llm_logger import llm_logger

logger = logging.getLogger(__name__)


class OpenAIClient(LanguageModelClient):
    """Client using the OpenAI Python SDK.

    With ``base_url`` pointed at an Ollama server the same SDK talks to its
    OpenAI-compatible endpoint; Ollama ignores the API key.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        provider: str = "openai",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ):
        """Initialize the client.

        Args:
            api_key: API key (any non-empty value for Ollama)
            model: Model to use
            base_url: Override for the API endpoint
            provider: Identifier reported by ``provider_name``
            max_tokens: Default response budget
            temperature: Default sampling temperature
        """
        if not api_key:
            raise ValueError(f"API key is required for {provider} provider")

        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self._model = model
        self._provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info(f"Initialized {provider} client with model: {model}")

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model_name(self) -> str:
        return self._model

    def chat_complete(
        self,
        messages: list[ChatMessage],
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        max_tokens = max_tokens or self.max_tokens
        temperature = self.temperature if temperature is None else temperature
        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": list(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if timeout is not None:
            request_params["timeout"] = timeout

        request_id = llm_logger.log_request(
            self._provider,
            self._model,
            "\n\n".join(m["content"] for m in messages),
            max_tokens,
            temperature,
            timeout=timeout,
        )
        start_time = time.time()
        try:
            response = self.client.chat.completions.create(**request_params)
        except APITimeoutError as e:
            llm_logger.log_error(request_id, e, timed_out=True)
            raise LLMError(self._provider, e, timed_out=True) from e
        except OpenAIError as e:
            llm_logger.log_error(request_id, e)
            raise LLMError(self._provider, e) from e
        duration_ms = (time.time() - start_time) * 1000

        usage = response.usage
        result = LLMResponse(
            content=(response.choices[0].message.content or "").strip(),
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            finish_reason=response.choices[0].finish_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
            raw_response=response,
        )
        llm_logger.log_response(request_id, result)
        return result
