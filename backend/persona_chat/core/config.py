from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONTENT_PATH = Path(__file__).resolve().parents[1] / "data" / "conversation.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    # NOTE: Keep as string to avoid pydantic-settings JSON-decoding complex types from .env.
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    content_path: str = Field(default=str(DEFAULT_CONTENT_PATH), alias="CONTENT_PATH")
    confidence_threshold: float = Field(default=3.0, alias="LLM_CONFIDENCE_THRESHOLD")
    llm_fallback_enabled: bool = Field(default=False, alias="LLM_FALLBACK_ENABLED")
    groq_api_key: str = Field(default="", alias="GROQ_API_KEY")
    llm_base_url: str = Field(default="https://api.groq.com/openai", alias="LLM_BASE_URL")
    llm_model: str = Field(default="llama-3.1-8b-instant", alias="LLM_MODEL")
    llm_temperature: float = Field(default=0.9, alias="LLM_TEMPERATURE")
    llm_top_p: float = Field(default=0.95, alias="LLM_TOP_P")
    llm_max_tokens: int = Field(default=300, alias="LLM_MAX_TOKENS")
    llm_timeout_sec: float = Field(default=20.0, gt=0, alias="LLM_TIMEOUT_SEC")
    llm_max_retries: int = Field(default=2, ge=0, le=5, alias="LLM_MAX_RETRIES")
    llm_history_turns: int = Field(default=8, ge=0, alias="LLM_HISTORY_TURNS")
    llm_max_reply_chars: int = Field(default=500, ge=20, alias="LLM_MAX_REPLY_CHARS")
    max_message_chars: int = Field(default=1000, ge=1, alias="MAX_MESSAGE_CHARS")
    response_validation_enabled: bool = Field(
        default=True, alias="RESPONSE_VALIDATION_ENABLED"
    )

    model_config = SettingsConfigDict(env_file=(".env", "backend/.env"), extra="ignore")

    @field_validator("confidence_threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            raise ValueError("LLM_CONFIDENCE_THRESHOLD must be a finite number >= 0")
        return value

    def remote_credential(self) -> str | None:
        """Return the remote generation credential, or None when absent."""

        key = (self.groq_api_key or "").strip()
        return key or None

    def parsed_cors_origins(self) -> List[str]:
        """Return CORS origins parsed from env var.

        Supports comma-delimited strings (recommended) and JSON list strings.
        """

        raw = (self.cors_origins or "").strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                import json

                value: Any = json.loads(raw)
                if isinstance(value, list):
                    items = [str(item).strip() for item in value]
                    return [item for item in items if item]
            except ValueError:
                pass
        return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
