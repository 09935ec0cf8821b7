"""Application configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./stock_ledger.db"

    # Ledger concurrency
    LEDGER_LOCK_TIMEOUT_SECONDS: float = 5.0
    LEDGER_LOCK_RETRIES: int = 2
    LEDGER_RETRY_BACKOFF_SECONDS: float = 0.05

    # Side read cache for list/report endpoints (0 disables it)
    READ_CACHE_TTL_SECONDS: int = 30

    # Seed the reason catalog on startup
    SEED_DEFAULT_REASONS: bool = True

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("LEDGER_LOCK_TIMEOUT_SECONDS")
    @classmethod
    def validate_lock_timeout(cls, v: float) -> float:
        """A ledger lock wait must be bounded and positive."""
        if v <= 0:
            raise ValueError("LEDGER_LOCK_TIMEOUT_SECONDS must be greater than 0")
        return v

    @field_validator("LEDGER_LOCK_RETRIES", "READ_CACHE_TTL_SECONDS")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must be 0 or greater")
        return v


settings = Settings()
