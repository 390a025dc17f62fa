from __future__ import annotations

from typing import Protocol, TypedDict


class ChatMessage(TypedDict):
    role: str  # system | user | assistant
    content: str


class TextGenerator(Protocol):
    """Generative text capability consumed by the study pipeline."""

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        ...

    async def summarize(self, context: str, instruction: str, *, temperature: float | None = None) -> str:
        """Instruction as the system message, context as the user message."""
        ...


DEFAULT_SUMMARIZE_INSTRUCTION = "Summarize the following content into clear, concise study notes:"


def system_user(system: str, user: str) -> list[ChatMessage]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
