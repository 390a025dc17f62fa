from __future__ import annotations

from edutube.core.config import Settings
from edutube.services.llm.base import TextGenerator


def build_text_generator(settings: Settings) -> TextGenerator:
    provider = settings.study_materials_provider

    if provider == "ollama":
        from edutube.services.ollama_client import OllamaTextGenerator

        return OllamaTextGenerator(base_url=settings.ollama_base_url, model=settings.ollama_model)

    if provider == "openai":
        from edutube.services.llm.openai_client import OpenAITextGenerator

        return OpenAITextGenerator(model=settings.openai_model)

    raise ValueError(f"Unknown STUDY_MATERIALS_PROVIDER: {provider!r} (use openai or ollama)")
