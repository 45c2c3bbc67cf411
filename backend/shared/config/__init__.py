"""
Unified Configuration Access Point

    from shared.config import get_settings

    ttl = get_settings().context.cache_ttl_seconds
"""

from .settings import (
    ApplicationSettings,
    ContextSettings,
    Environment,
    get_settings,
    reload_settings,
    settings,
)

__all__ = [
    "ApplicationSettings",
    "ContextSettings",
    "Environment",
    "get_settings",
    "reload_settings",
    "settings",
]
