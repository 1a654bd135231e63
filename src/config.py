"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Everything except the OpenAI key has a sensible
default for local development; the key is checked when the LLM client
is built at startup.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class SessionBackend(str, Enum):
    """Where conversation sessions are kept."""

    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    Central configuration for the AI Recruiter service.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. Secrets should NEVER
    be committed; use `.env.example` as the template.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── LLM ──────────────────────────────────────────────────────
    openai_api_key: str = Field(default="", description="OpenAI API key for extraction and generation")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="Chat completions base URL")
    openai_model: str = Field(default="gpt-4o", description="Model used for every LLM call")
    llm_temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Sampling temperature")
    llm_timeout_seconds: float = Field(default=60.0, gt=0, description="Per-request timeout for LLM calls")

    # ── Webhook ──────────────────────────────────────────────────
    webhook_url: str = Field(default="", description="Where completed vacancies are forwarded (empty = disabled)")
    webhook_timeout_seconds: float = Field(default=15.0, gt=0, description="Timeout for the webhook POST")

    # ── Sessions ─────────────────────────────────────────────────
    session_backend: SessionBackend = SessionBackend.MEMORY
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    session_ttl_seconds: int = Field(default=86400, ge=60, description="Idle sessions are evicted after this")
    history_window: int = Field(default=10, ge=0, le=100, description="Transcript entries sent with extraction")

    # ── Feature Flags ────────────────────────────────────────────
    feature_heuristic_autofill: bool = Field(default=False, description="Pattern-based auto-fill of empty fields")
    feature_webhook: bool = Field(default=True, description="Forward generated vacancies to the webhook")

    # ── HTTP ─────────────────────────────────────────────────────
    cors_origins: str = Field(default="*", description="Comma-separated allowed origins for the chat frontend")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def webhook_enabled(self) -> bool:
        return self.feature_webhook and bool(self.webhook_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
