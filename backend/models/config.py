import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    For local development, load `.env` automatically so the OpenAI key and
    Discord bot token can live in `backend/.env`.

    Do NOT auto-load `.env` when running under pytest or in CI, so tests
    never talk to a real classifier or guild by accident.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', or 'production'",
    )

    DATABASE_URL: str = "sqlite:///./data/modledger.db"
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    # Safety: avoid creating DB schema automatically unless explicitly enabled.
    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    # Performance settings
    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Content classifier (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str = Field(
        default="",
        description="API key for the content classifier; empty disables classification",
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to classify messages",
    )
    OPENAI_BASE_URL: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible servers (vLLM, LM Studio)",
    )
    CLASSIFIER_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Attempts per message before the message is passed through",
    )
    CLASSIFIER_RETRY_DELAY: float = Field(
        default=1.0,
        ge=0,
        description="Base delay in seconds between classifier attempts (doubles each retry)",
    )
    CLASSIFIER_TIMEOUT: float = Field(
        default=20.0,
        description="Per-request timeout for the classifier in seconds",
    )
    CLASSIFIER_CONTEXT_MESSAGES: int = Field(
        default=5,
        description="Number of preceding channel messages sent as context",
    )

    # Punishment executor (Discord REST)
    PUNISHMENT_EXECUTOR: str = Field(
        default="discord",
        description="Executor: 'discord' or 'none' (record only)",
    )
    DISCORD_BOT_TOKEN: str = Field(
        default="",
        description="Bot token used for timeouts and bans",
    )
    DISCORD_GUILD_ID: str = Field(
        default="",
        description="Guild the bot moderates",
    )
    DISCORD_API_BASE: str = Field(
        default="https://discord.com/api/v10",
        description="Discord REST API base URL",
    )
    DISCORD_REQUEST_TIMEOUT: float = Field(
        default=10.0,
        description="Timeout for Discord REST calls in seconds",
    )

    # Background jobs
    SCHEDULER_ENABLED: bool = Field(
        default=True,
        description="Run the mute expiry job in the background",
    )
    MUTE_EXPIRY_INTERVAL_MINUTES: int = Field(
        default=5,
        description="How often expired mutes are cleared",
    )

    # Rate limiting for the manual moderation test endpoint
    RATE_LIMIT_ENABLED: bool = Field(
        default=True,
        description="Enable slowapi rate limits",
    )
    TEST_MODERATION_RATE_LIMIT: str = Field(
        default="20/minute",
        description="slowapi limit string for POST /api/moderation/test",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("PUNISHMENT_EXECUTOR")
    @classmethod
    def validate_executor(cls, v: str) -> str:
        """Only known executors are accepted."""
        v = v.strip().lower()
        if v not in ("discord", "none"):
            raise ValueError("PUNISHMENT_EXECUTOR must be 'discord' or 'none'")
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN) without validation errors
    )


settings = Settings()
