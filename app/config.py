"""
DevMatch — Application Configuration

Every tunable is read from the process environment, with a ``.env`` file as
fallback, into one pydantic-settings model.  ``get_settings()`` memoises that
model so request handlers, the chat gateway and scripts share a single
parsed copy.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the DevMatch backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Database
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    DB_CALL_TIMEOUT_SECONDS: float = 5.0

    # ------------------------------------------------------------------ #
    # Bearer credentials
    # ------------------------------------------------------------------ #
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 300

    # ------------------------------------------------------------------ #
    # Redis – optional cross-process chat fan-out
    # ------------------------------------------------------------------ #
    REDIS_URL: str = ""
    REDIS_CHANNEL: str = "devmatch:rooms"

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def redis_enabled(self) -> bool:
        return bool(self.REDIS_URL)

    @field_validator("DB_CALL_TIMEOUT_SECONDS", "REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @field_validator("ACCESS_TOKEN_EXPIRE_MINUTES")
    @classmethod
    def _expiry_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Token expiry must be positive, got {v}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Parse the environment on first call; later calls reuse the result."""
    return Settings()  # type: ignore[call-arg]
