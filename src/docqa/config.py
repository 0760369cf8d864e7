"""Environment driven settings for the document QA service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_LLM_MODEL = "meta-llama/llama-3.2-3b-instruct:free"
DEFAULT_OPENAI_BASE_URL = "https://openrouter.ai/api/v1"
MAX_UPLOAD_BYTES = 50 * 1024 * 1024


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _int_from_env(name: str, default: int, *, minimum: int | None = None) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default
    if minimum is not None and parsed < minimum:
        LOGGER.warning("%s must be >= %s (got %s); using default %s", name, minimum, parsed, default)
        return default
    return parsed


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


@dataclass(slots=True)
class Settings:
    embedding_provider: str = "hash"
    embedding_dimension: int = 384
    embedding_max_tokens: int = 100
    embedding_model_path: str = DEFAULT_EMBEDDING_MODEL
    embedding_device: Optional[str] = None
    retrieval_top_k: int = 3
    llm_provider: str = "demo"
    llm_model: str = DEFAULT_LLM_MODEL
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.7
    llm_timeout_seconds: float = 60.0
    openai_api_key: Optional[str] = None
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    frontend_url: str = "http://localhost:3000"
    log_dir: str = "logs"
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build :class:`Settings` from the current process environment."""

    return Settings(
        embedding_provider=_str_from_env("EMBEDDING_PROVIDER", "hash").lower(),
        embedding_dimension=_int_from_env("EMBEDDING_DIMENSION", 384, minimum=1),
        embedding_max_tokens=_int_from_env("EMBEDDING_MAX_TOKENS", 100, minimum=1),
        embedding_model_path=_str_from_env("EMBEDDING_MODEL_PATH", DEFAULT_EMBEDDING_MODEL),
        embedding_device=os.getenv("EMBEDDING_DEVICE") or None,
        retrieval_top_k=_int_from_env("RETRIEVAL_TOP_K", 3, minimum=1),
        llm_provider=_str_from_env("LLM_PROVIDER", "demo").lower(),
        llm_model=_str_from_env("LLM_MODEL", DEFAULT_LLM_MODEL),
        llm_max_tokens=_int_from_env("LLM_MAX_TOKENS", 1000, minimum=1),
        llm_temperature=_float_from_env("LLM_TEMPERATURE", 0.7),
        llm_timeout_seconds=_float_from_env("LLM_TIMEOUT_SECONDS", 60.0),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=_str_from_env("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
        max_upload_bytes=_int_from_env("MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES, minimum=1),
        frontend_url=_str_from_env("FRONTEND_URL", "http://localhost:3000"),
        log_dir=_str_from_env("LOG_DIR", "logs"),
        log_level=_str_from_env("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached process settings."""

    return load_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = ["MAX_UPLOAD_BYTES", "Settings", "get_settings", "load_settings", "reset_settings_cache"]
