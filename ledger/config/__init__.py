"""Configuration package."""

from ledger.config.settings import (
    AppSettings,
    DatabaseSettings,
    LedgerConfig,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LedgerConfig",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
