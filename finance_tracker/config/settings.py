"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Backend REST API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        ...,
        description="Base URL of the backend API (e.g. https://api.example.com/api)"
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Request timeout; None keeps the transport default"
    )

    # Opt-in retry helper
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made by the bounded retry helper"
    )
    retry_min_wait_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Lower bound of the exponential backoff"
    )
    retry_max_wait_seconds: float = Field(
        default=8.0,
        ge=0.0,
        description="Upper bound of the exponential backoff"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash."""
        return v.rstrip("/")


class StorageSettings(BaseSettings):
    """Local persistent state configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    local_state_path: Optional[str] = Field(
        default=None,
        description="JSON file holding local state; None keeps it in memory"
    )

    # Fixed keys within the local state
    auth_token_key: str = Field(
        default="authToken",
        description="Key of the bearer token"
    )
    reminders_key: str = Field(
        default="payment-reminders",
        description="Key of the payment reminders blob"
    )
    audit_log_key: str = Field(
        default="audit-log",
        description="Key of the local audit log"
    )
    audit_log_max_events: int = Field(
        default=500,
        ge=10,
        le=10000,
        description="Oldest audit events are dropped beyond this size"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Display formatting
    currency_symbol: str = Field(
        default="R$",
        description="Currency symbol used by format_currency"
    )
    thousands_separator: str = Field(
        default=".",
        max_length=1,
        description="Digit group separator"
    )
    decimal_separator: str = Field(
        default=",",
        min_length=1,
        max_length=1,
        description="Decimal separator"
    )
    date_format: str = Field(
        default="%d/%m/%Y",
        description="strftime format for displayed dates"
    )

    # Consistency policy for transaction + balance writes
    paired_write_mode: Literal["compensating", "atomic"] = Field(
        default="compensating",
        description="How transaction writes and balance writes are kept together"
    )

    # Reminders
    default_reminder_notify_days: int = Field(
        default=3,
        ge=0,
        le=60,
        description="Days before due date a reminder fires by default"
    )

    # Aggregation
    top_ranking_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Entries kept in top-category/top-account rankings"
    )
    series_weeks: int = Field(default=12, ge=1, le=104)
    series_months: int = Field(default=12, ge=1, le=120)
    series_years: int = Field(default=5, ge=1, le=50)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("api", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
