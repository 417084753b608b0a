"""
Configuration package for the trip journal core.
"""

from .settings import (
    Settings,
    Environment,
    LogLevel,
    StoreBackend,
    StoreSettings,
    SessionSettings,
    IntentionSettings,
    settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "Settings",
    "Environment",
    "LogLevel",
    "StoreBackend",
    "StoreSettings",
    "SessionSettings",
    "IntentionSettings",
    "settings",
    "get_settings",
    "reload_settings",
]
