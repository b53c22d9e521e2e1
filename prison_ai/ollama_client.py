from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from prison_common.errors import CapabilityError

from .config import Settings
from .generator_base import TextGenerator

LOGGER = logging.getLogger(__name__)


class OllamaClient(TextGenerator):
    def __init__(
        self,
        host: str,
        model: str,
        keep_alive: str = "5m",
        timeout: float = 300.0,
        temperature: float = 0.0,
    ) -> None:
        self.host = host.rstrip("/")
        self.model = model
        self.keep_alive = keep_alive
        self.timeout = timeout
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> "OllamaClient":
        return cls(
            host=settings.ollama_host,
            model=settings.chat_model,
            keep_alive=settings.keep_alive,
            timeout=settings.request_timeout,
        )

    def _payload(self, messages: List[Dict[str, str]], stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "stream": stream,
            "keep_alive": self.keep_alive,
            "options": {"temperature": self.temperature},
        }

    def generate_text(self, prompt: str, schema: Optional[Dict[str, Any]] = None) -> str:
        url = f"{self.host}/api/chat"
        payload = self._payload([{"role": "user", "content": prompt}], stream=False)
        if schema is not None:
            payload["format"] = schema
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            LOGGER.error("Text generation request to %s failed: %s", url, exc)
            raise CapabilityError(f"Text generation failed: {exc}") from exc

        content = (data.get("message") or {}).get("content")
        if content is None:
            raise CapabilityError(f"No message content returned from Ollama: {data}")
        return content
