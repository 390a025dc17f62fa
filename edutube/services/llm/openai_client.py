from __future__ import annotations

import logging
import os
import time

from edutube.services.errors import UpstreamServiceError
from edutube.services.llm.base import DEFAULT_SUMMARIZE_INSTRUCTION, ChatMessage, system_user

logger = logging.getLogger(__name__)


# ----------------------------
# OpenAI call helpers (SDK v1+)
# ----------------------------

def _build_openai_client():
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY is missing")

    timeout_sec = float(os.getenv("OPENAI_TIMEOUT_SEC", "180"))
    max_retries = int(os.getenv("OPENAI_MAX_RETRIES", "2"))

    from openai import AsyncOpenAI  # type: ignore

    return AsyncOpenAI(api_key=api_key, timeout=timeout_sec, max_retries=max_retries)


class OpenAITextGenerator:
    """
    Chat-completions backed generator.

    A fresh AsyncOpenAI client is built per call so the generator can be shared
    between event loops (API process and asyncio.run() inside Celery tasks).
    """

    def __init__(self, model: str = "gpt-4o-mini", temperature: float = 0.3) -> None:
        self.model = model
        self.temperature = temperature

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        client = _build_openai_client()
        temp = self.temperature if temperature is None else temperature
        started = time.perf_counter()

        from openai import OpenAIError  # type: ignore

        try:
            if json_mode:
                try:
                    chat = await client.chat.completions.create(
                        model=self.model,
                        messages=messages,
                        temperature=temp,
                        response_format={"type": "json_object"},
                    )
                except TypeError:
                    # Older SDK may not support response_format -> prompt-only JSON
                    patched = list(messages)
                    patched[-1] = {
                        "role": patched[-1]["role"],
                        "content": patched[-1]["content"] + "\n\nReturn ONLY valid JSON.",
                    }
                    chat = await client.chat.completions.create(
                        model=self.model,
                        messages=patched,
                        temperature=temp,
                    )
            else:
                chat = await client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temp,
                )
        except OpenAIError as e:
            raise UpstreamServiceError(f"OpenAI request failed: {e}") from e
        finally:
            await client.close()

        raw_text = (chat.choices[0].message.content or "").strip()
        logger.info(
            "OpenAI %s returned %d chars in %.0fms",
            self.model, len(raw_text), (time.perf_counter() - started) * 1000,
        )
        return raw_text

    async def summarize(
        self,
        context: str,
        instruction: str = DEFAULT_SUMMARIZE_INSTRUCTION,
        *,
        temperature: float | None = None,
    ) -> str:
        return await self.generate(system_user(instruction, context), temperature=temperature)
