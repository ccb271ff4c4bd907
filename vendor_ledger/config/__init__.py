"""Configuration package."""

from vendor_ledger.config.settings import (
    AppSettings,
    Settings,
    StorageSettings,
    UploadSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "Settings",
    "StorageSettings",
    "UploadSettings",
    "get_settings",
    "validate_all_settings",
]
