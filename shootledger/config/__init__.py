"""Configuration package."""

from shootledger.config.settings import (
    AppSettings,
    ReportSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ReportSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
