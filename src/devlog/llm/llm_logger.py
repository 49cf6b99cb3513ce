"""
Language-model call log.

When ``llm_logging_enabled`` is set, every commit summary and worklog section
request is written as one JSON record to ``<log dir>/llm/requests.log``,
followed by a response or error record carrying the same request id. Records
include the per-call timeout so slow sections can be spotted.
"""

import json
import logging
import logging.handlers
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from devlog.config import Settings
from devlog.config import settings as default_settings
from devlog.llm.base import LLMResponse

logger = logging.getLogger(__name__)

PROMPT_PREVIEW_CHARS = 500
CONTENT_PREVIEW_CHARS = 200


def _preview(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class LLMLogger:
    """Writes language-model call records to a rotating file."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.records = logging.getLogger("devlog.llm.requests")
        self._handler_ready = False

    @property
    def enabled(self) -> bool:
        return self.settings.llm_logging_enabled

    def _ensure_handler(self) -> None:
        if self._handler_ready or not self.settings.log_file_enabled:
            return
        self._handler_ready = True

        log_dir = self.settings.log_directory / "llm"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(
                log_dir / "requests.log",
                maxBytes=self.settings.log_max_bytes,
                backupCount=self.settings.log_backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"LLM request log unavailable: {e}")
            return

        handler.setFormatter(logging.Formatter("[%(asctime)s] %(message)s"))
        self.records.addHandler(handler)
        self.records.setLevel(logging.INFO)
        self.records.propagate = False

    def _write(self, level: int, record: dict[str, Any]) -> None:
        self._ensure_handler()
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        self.records.log(level, json.dumps(record))

    def log_request(
        self,
        provider: str,
        model: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Record an outgoing request.

        Returns:
            Request id to pass to ``log_response`` / ``log_error``; empty
            when request logging is off
        """
        if not self.enabled or not self.settings.llm_log_requests:
            return ""

        request_id = f"{provider}-{uuid.uuid4().hex[:12]}"
        self._write(
            logging.INFO,
            {
                "type": "request",
                "request_id": request_id,
                "provider": provider,
                "model": model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "timeout": timeout,
                "prompt_chars": len(prompt),
                "prompt": _preview(prompt, PROMPT_PREVIEW_CHARS),
            },
        )
        return request_id

    def log_response(self, request_id: str, response: LLMResponse) -> None:
        if not self.enabled or not self.settings.llm_log_responses:
            return

        record: dict[str, Any] = {
            "type": "response",
            "request_id": request_id,
            "model": response.model,
            "finish_reason": response.finish_reason,
            "duration_ms": round(response.duration_ms, 2),
            "content": _preview(response.content, CONTENT_PREVIEW_CHARS),
        }
        if self.settings.llm_log_tokens:
            record["tokens"] = response.total_tokens
        self._write(logging.INFO, record)

    def log_error(
        self, request_id: str, error: Exception, timed_out: bool = False
    ) -> None:
        if not self.enabled:
            return

        self._write(
            logging.ERROR,
            {
                "type": "error",
                "request_id": request_id,
                "timed_out": timed_out,
                "error": f"{type(error).__name__}: {error}",
            },
        )


llm_logger = LLMLogger()
