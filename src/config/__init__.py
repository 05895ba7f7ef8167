"""
Configuration management for openMenu DAT Tools.
"""

from .settings import (
    load_settings,
    save_settings,
    get_default_settings,
    Settings,
    RESAMPLE_FILTERS,
)

__all__ = [
    'load_settings',
    'save_settings',
    'get_default_settings',
    'Settings',
    'RESAMPLE_FILTERS',
]
