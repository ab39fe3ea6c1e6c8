"""Configuration package."""

from debt_ledger.config.settings import (
    AppSettings,
    AuditSettings,
    CommitteeSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuditSettings",
    "CommitteeSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
