"""Runtime settings read from the environment (and an optional ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Build it once at the edge (CLI, app factory) with :meth:`from_env` and
    pass it down; nothing below the edge reads the environment.
    """

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    mock_llm: bool = False
    analysis_timeout: float = 30.0
    selected_text_timeout: float = 10.0
    cache_ttl: float = 86400.0
    confidence_threshold: float = 0.7
    database_url: str | None = None
    log_level: str = "INFO"

    @property
    def use_fixture_client(self) -> bool:
        return self.mock_llm or not self.gemini_api_key

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            mock_llm=_env_bool("MOCK_GEMINI_API"),
            analysis_timeout=_env_float("ANALYSIS_TIMEOUT", 30.0),
            selected_text_timeout=_env_float("SELECTED_TEXT_TIMEOUT", 10.0),
            cache_ttl=_env_float("CACHE_TTL", 86400.0),
            confidence_threshold=_env_float("ANALYSIS_CONFIDENCE_THRESHOLD", 0.7),
            database_url=os.getenv("DATABASE_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
