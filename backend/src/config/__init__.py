"""
Configuration module for the FamilyHub backend.

Provides centralized configuration for:
- Calendar feed publishing (PRODID, UID domain, horizon)
- CORS origins
"""

from backend.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
