"""Tests for settings and configuration."""

import pytest
from pydantic import ValidationError

from newsroom.models.settings import Settings


def test_settings_defaults(monkeypatch):
    """Test that settings have proper default values."""
    for var in (
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "DIFFBOT_TOKEN",
        "NEWSROOM_AI_LOG",
        "LLM_TIMEOUT",
        "EXTRACTION_DELAY",
        "DEBUG",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)

    settings = Settings()
    assert settings.debug is False
    assert settings.log_level == "INFO"
    assert settings.openai_api_key is None
    assert settings.diffbot_token is None
    assert settings.llm_timeout == 20.0
    assert settings.llm_json_deadline is None
    assert settings.extraction_delay == 2.0
    assert settings.repair_min_output_tokens == 1200
    assert settings.openai_token_param == "max_completion_tokens"
    assert settings.openai_alternate_token_param == "max_tokens"
    assert settings.gemini_model == "gemini-2.0-flash"
    assert settings.ai_log is True


def test_settings_from_env(monkeypatch):
    """Test that settings are loaded from environment variables."""
    monkeypatch.setenv("OPENAI_API_KEY", "test_openai_key")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("EXTRACTION_DELAY", "0.5")
    monkeypatch.setenv("NEWSROOM_AI_LOG", "0")

    settings = Settings()
    assert settings.openai_api_key == "test_openai_key"
    assert settings.debug is True
    assert settings.extraction_delay == 0.5
    assert settings.ai_log is False


def test_settings_validation():
    """Test that out-of-range values are rejected."""
    with pytest.raises(ValidationError):
        Settings(extraction_delay=-1)

    with pytest.raises(ValidationError):
        Settings(llm_timeout=0)

    settings = Settings(gemini_api_key="valid_key", llm_timeout=45, ai_log=False)
    assert settings.gemini_api_key == "valid_key"
    assert settings.llm_timeout == 45.0
    assert settings.ai_log is False


def test_settings_case_insensitive(monkeypatch):
    """Test that environment variable names are case insensitive."""
    monkeypatch.setenv("gemini_api_key", "lowercase_key")
    monkeypatch.setenv("DIFFBOT_TOKEN", "uppercase_token")

    settings = Settings()
    assert settings.gemini_api_key == "lowercase_key"
    assert settings.diffbot_token == "uppercase_token"
