"""Configuration for ChainHive."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Built once at process start and handed to the components that need it.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAINHIVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nodit API
    nodit_api_key: str = ""
    nodit_base_url: str = "https://web3.nodit.io/v1"
    nodit_webhook_secret: Optional[str] = None
    user_agent: str = "ChainHive/1.0.0"

    # Retry
    retry_max_retries: int = Field(default=3, ge=1)
    retry_backoff_ms: int = Field(default=1000, ge=0)
    retry_timeout_ms: int = Field(default=30000, gt=0)
    retry_exponential_backoff: bool = True

    # Circuit breaker
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_time_ms: int = Field(default=60000, ge=0)

    # Rate limiting (100 requests per minute)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_window_ms: int = Field(default=60000, gt=0)

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"

    # Per-chain JSON-RPC endpoints, primary first
    rpc_urls: dict[str, list[str]] = Field(default_factory=dict)


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, applying explicit overrides."""
    return Settings(**overrides)
