"""Pydantic Settings configuration models.

3-tier config hierarchy (lowest to highest priority):
1. Pydantic defaults (in code below)
2. .env file (loaded by Pydantic Settings)
3. Environment variables (e.g., ORDERFLOW_CONCURRENCY__MAX_RETRIES=8)
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})
VALID_JWT_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})


class ConcurrencyConfig(BaseModel):
    """Optimistic-lock retry policy for order read-modify-write."""

    max_retries: int = Field(default=5, ge=1, le=20)
    base_delay_ms: int = Field(default=10, ge=0, le=1000)
    max_delay_ms: int = Field(default=200, ge=0, le=5000)
    jitter_ms: int = Field(default=10, ge=0, le=1000)


class NotificationConfig(BaseModel):
    """Station display fan-out transport."""

    enabled: bool = True
    redis_url: str = "redis://localhost:6379/0"
    channel_prefix: str = "orderflow"
    connect_timeout_seconds: float = Field(default=2.0, gt=0, le=30)


class IdentityConfig(BaseModel):
    """Bearer token verification settings."""

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = Field(default=12 * 60, ge=1, le=7 * 24 * 60)

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_JWT_ALGORITHMS:
            raise ValueError(
                f"jwt_algorithm must be one of {sorted(VALID_JWT_ALGORITHMS)}, got {v}"
            )
        return v


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Env var examples:
        ORDERFLOW_LOG_LEVEL=DEBUG
        ORDERFLOW_DB_PATH=/var/lib/orderflow/orders.db
        ORDERFLOW_NOTIFICATIONS__REDIS_URL=redis://redis:6379/1
        ORDERFLOW_IDENTITY__JWT_SECRET=...
    """

    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"
    db_path: str = "data/orders.db"
    db_busy_timeout_ms: int = 5000
    order_number_min_digits: int = Field(default=3, ge=1, le=8)
    concurrency: ConcurrencyConfig = ConcurrencyConfig()
    notifications: NotificationConfig = NotificationConfig()
    identity: IdentityConfig = IdentityConfig()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v}"
            )
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v}"
            )
        return v

    @property
    def db_url(self) -> str:
        """Async SQLAlchemy URL for the configured SQLite file."""
        return f"sqlite+aiosqlite:///{self.db_path}"
