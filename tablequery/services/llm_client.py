from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from tablequery.config import settings
from tablequery.errors import ModelResponseMalformed, ModelUnavailable
from tablequery.utils.logger import logger


class LLMClient:
    """Thin wrapper around a local Ollama chat endpoint.

    One blocking POST per call, bounded by ``timeout``. Nothing is retried:
    an unreachable server or a malformed reply is raised to the caller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = (base_url or settings.ollama_url).rstrip("/")
        self.model = model or settings.ollama_model
        self.timeout = timeout if timeout is not None else settings.ollama_timeout_seconds
        self._session = requests.Session()

    def is_available(self) -> bool:
        """Return True when the Ollama server answers its model listing."""
        try:
            resp = self._session.get(f"{self.base_url}/api/tags", timeout=5)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Ollama not reachable at %s: %s", self.base_url, exc)
            return False
        return True

    def chat(self, messages: List[Dict[str, str]], temperature: Optional[float] = None) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
        }
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        try:
            resp = self._session.post(
                f"{self.base_url}/api/chat", json=payload, timeout=self.timeout
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Ollama chat call failed: %s", exc)
            raise ModelUnavailable(
                f"Could not reach the model at {self.base_url}. "
                f"Ensure Ollama is running and '{self.model}' is pulled. ({exc})"
            ) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ModelResponseMalformed("Model response is not valid JSON") from exc

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ModelResponseMalformed("Model response has no message.content text")
        return content

    def generate_sql_text(self, messages: List[Dict[str, str]]) -> str:
        return self.chat(messages, temperature=settings.sql_temperature)


llm_client = LLMClient()
