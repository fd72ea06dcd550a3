"""Configuration package."""

from docuhub.config.settings import (
    AppSettings,
    IntakeSettings,
    SeedSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "IntakeSettings",
    "SeedSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
