import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Always load .env from the project root (stable, regardless of CWD)
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=BASE_DIR / ".env", override=False)


def _env_float(name: str, default: float | None) -> float | None:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return float(v)


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./edutube.db")
    env: str = os.getenv("ENV", "local")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # LLM provider: openai | ollama
    study_materials_provider: str = os.getenv("STUDY_MATERIALS_PROVIDER", "openai").lower()
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "qwen2.5:7b-instruct")

    # Video search
    twelvelabs_base_url: str = os.getenv("TWELVELABS_BASE_URL", "https://api.twelvelabs.io/v1.3")
    twelvelabs_index_id: str = os.getenv("TWELVELABS_INDEX_ID", "")

    # Generation: unified | chain
    generation_strategy: str = os.getenv("STUDY_GENERATION_STRATEGY", "unified").lower()
    generation_timeout_sec: float | None = _env_float("STUDY_GENERATION_TIMEOUT_SEC", None)
    cache_ttl_sec: float = _env_float("STUDY_CACHE_TTL_SEC", 300.0)
    cache_cooldown_sec: float = _env_float("STUDY_CACHE_COOLDOWN_SEC", 30.0)


settings = Settings()


def is_test_env() -> bool:
    return os.getenv("ENV", settings.env) == "test"


_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Install one stream handler on the root logger.
    Safe to call from both the API process and the Celery worker.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    if any(getattr(h, "_edutube", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler._edutube = True  # type: ignore[attr-defined]
    root.addHandler(handler)
