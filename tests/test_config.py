"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from tc_analyzer.config import Settings

_VARS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "MOCK_GEMINI_API",
    "ANALYSIS_TIMEOUT",
    "SELECTED_TEXT_TIMEOUT",
    "CACHE_TTL",
    "ANALYSIS_CONFIDENCE_THRESHOLD",
    "DATABASE_URL",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    def test_defaults(self, clean_env) -> None:
        settings = Settings.from_env(dotenv=False)
        assert settings == Settings()
        assert settings.use_fixture_client

    def test_reads_environment(self, clean_env) -> None:
        clean_env.setenv("GEMINI_API_KEY", "secret")
        clean_env.setenv("ANALYSIS_TIMEOUT", "12.5")
        clean_env.setenv("CACHE_TTL", "60")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("DATABASE_URL", "postgresql://localhost/tc")
        settings = Settings.from_env(dotenv=False)
        assert settings.gemini_api_key == "secret"
        assert settings.analysis_timeout == 12.5
        assert settings.cache_ttl == 60.0
        assert settings.log_level == "DEBUG"
        assert settings.database_url == "postgresql://localhost/tc"
        assert not settings.use_fixture_client

    @pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("YES", True), ("false", False)])
    def test_mock_flag(self, clean_env, value, expected) -> None:
        clean_env.setenv("GEMINI_API_KEY", "secret")
        clean_env.setenv("MOCK_GEMINI_API", value)
        assert Settings.from_env(dotenv=False).use_fixture_client is expected

    def test_bad_number(self, clean_env) -> None:
        clean_env.setenv("ANALYSIS_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="ANALYSIS_TIMEOUT"):
            Settings.from_env(dotenv=False)

    def test_blank_number_uses_default(self, clean_env) -> None:
        clean_env.setenv("CACHE_TTL", "  ")
        assert Settings.from_env(dotenv=False).cache_ttl == 86400.0
