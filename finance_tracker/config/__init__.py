"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LocalStoreSettings,
    RateSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LocalStoreSettings",
    "RateSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
