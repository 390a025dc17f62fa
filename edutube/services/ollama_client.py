from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx

from edutube.services.errors import UpstreamServiceError
from edutube.services.llm.base import DEFAULT_SUMMARIZE_INSTRUCTION, ChatMessage, system_user

logger = logging.getLogger(__name__)


class OllamaTextGenerator:
    """
    Minimal Ollama client for local generation.

    Uses /api/generate (simple) to keep integration stable; chat messages are
    flattened into one system string and one prompt.

    Env overrides:
      - OLLAMA_TIMEOUT_SEC (default 300)
      - OLLAMA_NUM_PREDICT (default 2048)
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout_s = float(os.getenv("OLLAMA_TIMEOUT_SEC", "300"))
        self.num_predict = int(os.getenv("OLLAMA_NUM_PREDICT", "2048"))
        self._transport = transport

    @staticmethod
    def _flatten(messages: list[ChatMessage]) -> tuple[str | None, str]:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system") or None
        prompt = "\n\n".join(m["content"] for m in messages if m["role"] != "system")
        return system, prompt

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        url = f"{self.base_url}/api/generate"
        system, prompt = self._flatten(messages)

        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": self.num_predict,
                "temperature": self.temperature if temperature is None else temperature,
            },
        }
        if system:
            payload["system"] = system
        if json_mode:
            payload["format"] = "json"

        timeout = httpx.Timeout(self.timeout_s, connect=10.0)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                r = await client.post(url, json=payload)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise UpstreamServiceError(f"Ollama request failed: {e}") from e

        # Ollama returns {"response": "...", ...}
        text = (data.get("response") or "").strip()
        logger.info("Ollama %s returned %d chars", self.model, len(text))
        return text

    async def summarize(
        self,
        context: str,
        instruction: str = DEFAULT_SUMMARIZE_INSTRUCTION,
        *,
        temperature: float | None = None,
    ) -> str:
        return await self.generate(system_user(instruction, context), temperature=temperature)
