# src/silverrate/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Values come from environment variables or a local .env file. Pricing
constants are exposed as an immutable PricingConfig via pricing_config().

Files that USE this module:
- silverrate.app (loads settings for bot configuration)
- silverrate.adapters.providers.* (timeouts, retries and cache TTLs)
- silverrate.adapters.persistence.* (data file paths)
- silverrate.adapters.telegram.* (channel and admin configuration)
- silverrate.application.* (poll intervals, history window, pricing config)

Files that this module USES:
- silverrate.shared.validators (validation functions for settings)
- silverrate.domain.models (PricingConfig, CurrencyPair)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from decimal import Decimal  # Exact decimal values for pricing constants
from pathlib import Path  # Object-oriented filesystem paths
from typing import Optional  # Type hints for optional values

from pydantic import Field, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from silverrate.domain.models import CurrencyPair, PricingConfig
from silverrate.shared.validators import (
    validate_api_key,  # Validate API key format
    validate_bot_token,  # Validate Telegram bot token format
    validate_channel_id,  # Validate Telegram channel ID format
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Telegram ---
    # Only required when the bot is started (checked in app.main)
    bot_token: str = Field(default="", alias="BOT_TOKEN")
    channel_id: str = Field(default="", alias="CHANNEL_ID")
    admin_username: str = Field(default="", alias="ADMIN_USERNAME")

    # --- AI commentary (OpenAI-compatible endpoint, optional) ---
    ai_api_key: str = Field(default="", alias="AI_API_KEY")
    ai_base_url: str = Field(default="https://api.openai.com/v1", alias="AI_BASE_URL")
    ai_model: str = Field(default="gpt-4o-mini", alias="AI_MODEL")

    # --- HTTP Settings ---
    http_timeout_seconds: int = Field(default=8, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=60)
    http_retries: int = Field(default=2, alias="HTTP_RETRIES", ge=0, le=5)
    fetch_timeout_seconds: float = Field(default=20.0, alias="FETCH_TIMEOUT_SECONDS", gt=0, le=120)
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; SilverRateBot/0.4; +https://t.me/)",
        alias="HTTP_USER_AGENT",
    )

    # --- Cache Settings (in seconds) ---
    spot_cache_seconds: int = Field(default=25, alias="SPOT_CACHE_SECONDS", ge=0, le=3600)
    fx_cache_seconds: int = Field(default=3600, alias="FX_CACHE_SECONDS", ge=0, le=86400)

    # --- Pricing (fractions, e.g. 0.06 == 6%) ---
    import_duty_pct: Decimal = Field(default=Decimal("0.06"), alias="IMPORT_DUTY_PCT", ge=0, lt=1)
    gst_pct: Decimal = Field(default=Decimal("0.03"), alias="GST_PCT", ge=0, lt=1)
    local_premium_pct: Decimal = Field(default=Decimal("0.03"), alias="LOCAL_PREMIUM_PCT", ge=0, lt=1)
    shanghai_premium_pct: Decimal = Field(default=Decimal("0.04"), alias="SHANGHAI_PREMIUM_PCT", ge=0, lt=1)

    # --- Polling / refresh loop ---
    domestic_poll_seconds: float = Field(default=30.0, alias="DOMESTIC_POLL_SECONDS", ge=5)
    shanghai_poll_seconds: float = Field(default=60.0, alias="SHANGHAI_POLL_SECONDS", ge=5)
    # Shanghai loop pauses after this long without a /shanghai request
    shanghai_idle_minutes: float = Field(default=30.0, alias="SHANGHAI_IDLE_MINUTES", ge=1)

    # --- History ---
    history_window_days: int = Field(default=7, alias="HISTORY_WINDOW_DAYS", ge=2, le=365)
    history_file: Path = Field(default=Path("./data/daily-prices.json"), alias="HISTORY_FILE")
    extremes_file: Path = Field(default=Path("./data/daily-extremes.json"), alias="EXTREMES_FILE")

    # --- Logging (for server deployment) ---
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate bot token format when one is supplied."""
        if v and not validate_bot_token(v):
            raise ValueError("Invalid BOT_TOKEN format")
        return v

    @field_validator("channel_id")
    @classmethod
    def validate_channel_id(cls, v: str) -> str:
        """Validate channel ID format."""
        if v and not validate_channel_id(v):
            raise ValueError("Invalid channel ID format")
        return v

    @field_validator("ai_api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if v and not validate_api_key(v):
            raise ValueError("Invalid AI_API_KEY format")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v

    def pricing_config(self) -> PricingConfig:
        """Domestic (India) pricing configuration."""
        return PricingConfig(
            import_duty=self.import_duty_pct,
            gst=self.gst_pct,
            premium=self.local_premium_pct,
            currency=CurrencyPair.USD_INR,
        )

    def shanghai_config(self) -> PricingConfig:
        """SGE pricing configuration: premium only, no Indian duties."""
        return PricingConfig(
            import_duty=Decimal("0"),
            gst=Decimal("0"),
            premium=self.shanghai_premium_pct,
            currency=CurrencyPair.USD_CNY,
        )

    @property
    def data_dir(self) -> Path:
        return self.history_file.parent


# Global settings instance
settings = Settings()
