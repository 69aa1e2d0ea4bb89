"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "ClipVote Ingest"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Database (system of record)
    DATABASE_URL: str = Field(
        "postgresql://localhost:5432/clipvote", description="PostgreSQL connection string"
    )
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT_S: float = 5.0

    # Event queues
    VOTE_QUEUE_NAME: str = "vote_queue"
    COMMENT_QUEUE_NAME: str = "comment_queue"
    VOTE_BATCH_SIZE: int = 500
    COMMENT_BATCH_SIZE: int = 200
    MAX_RETRIES: int = 5
    DEAD_LETTER_CAP: int = 1000
    POISON_CAP: int = 1000

    # Worker scheduling
    WORKER_INTERVAL_S: int = 60
    SYNC_INTERVAL_S: int = 60
    LOCK_TTL_MS: int = 60000

    # Derived caches
    VOTE_CACHE_TTL_S: int = 15
    DAILY_LEADERBOARD_TTL_S: int = 48 * 60 * 60
    LEADERBOARD_KEY_SCHEME: str = "namespaced"

    # Reconciliation limits
    SYNC_VOTERS_LIMIT: int = 1000
    SYNC_DAILY_VOTERS_LIMIT: int = 500
    SYNC_CREATORS_LIMIT: int = 500

    # Observability
    METRICS_ENABLED: bool = True

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v

    @field_validator("LEADERBOARD_KEY_SCHEME")
    @classmethod
    def validate_key_scheme(cls, v: str) -> str:
        """Validate clip leaderboard key scheme."""
        valid_schemes = {"namespaced", "legacy"}
        v = v.lower()
        if v not in valid_schemes:
            raise ValueError(f"LEADERBOARD_KEY_SCHEME must be one of {valid_schemes}")
        return v

    @field_validator("DEAD_LETTER_CAP", "POISON_CAP", "MAX_RETRIES")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Caps and retry limits must be at least 1."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
