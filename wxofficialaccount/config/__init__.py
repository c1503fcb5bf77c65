"""
Configuration module
"""

from .settings import (
    Settings,
    get_settings,
    is_configured,
    missing_credentials,
)

__all__ = [
    "Settings",
    "get_settings",
    "is_configured",
    "missing_credentials",
]
