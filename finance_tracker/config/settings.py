"""
Configuration Management for the Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per collection
    transactions_sheet_name: str = Field(
        default="transactions",
        description="Name of the sheet holding transaction documents"
    )
    budgets_sheet_name: str = Field(
        default="budgets",
        description="Name of the sheet holding budget documents"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class RateSettings(BaseSettings):
    """Exchange rate source configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    source: str = Field(
        default="offline",
        pattern="^(offline|remote)$",
        description="'offline' uses the built-in table, 'remote' asks the rate API first"
    )
    api_url: str = Field(
        default="https://api.exchangerate-api.com/v4/latest/{base}",
        description="Rate API URL; {base} is replaced with the base currency code"
    )
    timeout_secs: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="HTTP timeout for the rate API"
    )
    cache_ttl_secs: int = Field(
        default=3600,
        ge=0,
        description="How long fetched rates are reused"
    )


class LocalStoreSettings(BaseSettings):
    """Local key-value storage for preferences and converter history."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: str = Field(
        default=".finance_tracker/local_store.json",
        description="JSON file holding locally persisted settings"
    )
    history_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of conversions kept in the history"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Identity of the local user; every record is scoped to it
    user_id: str = Field(
        default="local-user",
        min_length=1,
        description="Owner id stamped on every transaction and budget"
    )
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Default currency when no preference has been saved"
    )

    # Sanity limits
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        description="Amounts above this are rejected as typos"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def rates(self) -> RateSettings:
        return RateSettings()

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

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


def validate_all_settings() -> dict[str, Optional[str] | bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus
    {setting_name_error: message} for the ones that failed.
    Useful for startup checks.
    """
    results: dict[str, Optional[str] | bool] = {}

    settings = get_settings()

    for name in ("google_sheets", "rates", "local_store", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
