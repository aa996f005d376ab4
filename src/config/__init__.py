"""Configuration package."""

from src.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LocalStoreSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LocalStoreSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
