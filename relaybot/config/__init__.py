"""Configuration module for the relay bot."""

from .settings import Settings, get_settings, is_admin

__all__ = [
    "Settings",
    "get_settings",
    "is_admin"
]
