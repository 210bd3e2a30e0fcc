"""Settings and configuration management."""

import logging
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Primary provider (OpenAI-compatible chat completions)
    openai_api_key: Optional[str] = Field(None, description="OpenAI key")
    openai_model: str = Field("gpt-4o-mini", description="Primary model id")
    openai_fallback_model: Optional[str] = Field(
        None, description="Model retried when the primary model returns nothing"
    )
    openai_base_url: str = Field(
        "https://api.openai.com/v1", description="Chat completions base URL"
    )
    openai_token_param: str = Field(
        "max_completion_tokens",
        description="Token limit parameter name tried first",
    )
    openai_alternate_token_param: Optional[str] = Field(
        "max_tokens",
        description="Token limit parameter name used after a parameter rejection",
    )

    # Secondary provider (Gemini)
    gemini_api_key: Optional[str] = Field(None, description="Gemini key")
    gemini_model: str = Field("gemini-2.0-flash", description="Secondary model id")
    gemini_fallback_model: Optional[str] = Field(
        None, description="Model retried when the secondary model returns nothing"
    )
    gemini_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST base URL",
    )

    # Article extraction
    diffbot_token: Optional[str] = Field(None, description="Diffbot token")

    # Application Settings
    debug: bool = Field(False, description="Debug mode")
    log_level: str = Field("INFO", description="Log level")
    ai_log: bool = Field(
        True,
        validation_alias=AliasChoices("newsroom_ai_log", "ai_log"),
        description="Log start/ok/error events for every LLM request",
    )

    # API Timeout Settings (in seconds)
    llm_timeout: float = Field(
        20.0, ge=1.0, le=300.0, description="LLM request timeout in seconds"
    )
    llm_json_deadline: Optional[float] = Field(
        None,
        ge=1.0,
        le=900.0,
        description="Ceiling for a structured call including its repair round",
    )
    extraction_timeout: float = Field(
        30.0, ge=5.0, le=120.0, description="Extraction API request timeout in seconds"
    )

    # Structured generation
    repair_min_output_tokens: int = Field(
        1200,
        ge=64,
        le=32000,
        description="Lower bound on the token budget of a JSON repair call",
    )

    # Extraction queue rate limiting
    extraction_delay: float = Field(
        2.0,
        ge=0.0,
        le=60.0,
        description="Seconds to wait between extraction requests",
    )

    default_user_agent: str = Field(
        "Newsroom-Bot/1.0",
        min_length=5,
        max_length=100,
        description="Default User-Agent for HTTP requests",
    )
