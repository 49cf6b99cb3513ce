"""Anthropic client implementation."""

import logging
import time
from typing import Any, Optional

from anthropic import Anthropic, AnthropicError, APITimeoutError

from devlog.exceptions import LLMError
from devlog.llm.base import ChatMessage, LanguageModelClient, LLMResponse
from devlog.llm.llm_logger import llm_logger

logger = logging.getLogger(__name__)


class AnthropicClient(LanguageModelClient):
    """Client using the Anthropic Python SDK.

    System messages are lifted into the ``system`` parameter since the
    Messages API does not accept them inline.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250514",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ):
        if not api_key:
            raise ValueError("Anthropic API key is required")

        self.client = Anthropic(api_key=api_key)
        self._model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info(f"Initialized Anthropic client with model: {model}")

    @property
    def provider_name(self) -> str:
        return "anthropic"

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

        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        turns = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] != "system"
        ]
        request_params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)
        if timeout is not None:
            request_params["timeout"] = timeout

        request_id = llm_logger.log_request(
            "anthropic",
            self._model,
            "\n\n".join(m["content"] for m in messages),
            max_tokens,
            temperature,
            timeout=timeout,
        )
        start_time = time.time()
        try:
            response = self.client.messages.create(**request_params)
        except APITimeoutError as e:
            llm_logger.log_error(request_id, e, timed_out=True)
            raise LLMError("anthropic", e, timed_out=True) from e
        except AnthropicError as e:
            llm_logger.log_error(request_id, e)
            raise LLMError("anthropic", e) from e
        duration_ms = (time.time() - start_time) * 1000

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )
        prompt_tokens = response.usage.input_tokens
        completion_tokens = response.usage.output_tokens
        result = LLMResponse(
            content=content.strip(),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            finish_reason=response.stop_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
            raw_response=response,
        )
        llm_logger.log_response(request_id, result)
        return result
