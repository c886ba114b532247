"""Configuration package."""

from aiwallet.config.settings import (
    AppSettings,
    BackendSettings,
    MirrorSettings,
    ServerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BackendSettings",
    "MirrorSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
