"""
Settings management for openMenu DAT Tools.
Handles loading, saving, and managing application settings.
"""

import json
import os
import traceback
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from constants import (
    CONFIG_FILE,
    SCRIPT_DIR,
    DEFAULT_MENU_DATA_DIR,
    DEFAULT_BACKUP_DIR,
)

RESAMPLE_FILTERS = ("lanczos", "bicubic", "bilinear", "nearest")


@dataclass
class Settings:
    """Application settings with default values."""

    work_dir: str = ""
    menu_data_dir: str = ""  # Folder holding BOX.DAT / ICON.DAT / META.DAT
    backup_dir: str = ""  # Timestamped DAT copies land here before overwrites
    proceed_without_backup: bool = False
    resample_filter: str = "bicubic"  # lanczos, bicubic, bilinear, nearest

    def __post_init__(self):
        """Set default paths if not specified."""
        if not self.work_dir:
            self.work_dir = SCRIPT_DIR
        if not self.menu_data_dir:
            self.menu_data_dir = DEFAULT_MENU_DATA_DIR
        if not self.backup_dir:
            self.backup_dir = DEFAULT_BACKUP_DIR
        if self.resample_filter not in RESAMPLE_FILTERS:
            self.resample_filter = "bicubic"

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Create Settings from dictionary."""
        # Filter out unknown keys
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered_data)


def get_default_settings() -> Dict[str, Any]:
    """Get default settings as a dictionary."""
    return Settings().to_dict()


def load_settings(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load settings from config file.

    Args:
        config_file: Path to the JSON config. Defaults to CONFIG_FILE.

    Returns:
        Dictionary of settings with defaults for missing values
    """
    config_file = config_file or CONFIG_FILE
    default_settings = get_default_settings()

    try:
        if os.path.exists(config_file):
            with open(config_file, "r") as f:
                loaded_settings = json.load(f)
                # Merge with defaults to handle new settings
                default_settings.update(loaded_settings)
        else:
            # Create config file with defaults
            save_settings(default_settings, config_file)
    except (OSError, ValueError) as e:
        from utils.logging import log_error

        log_error(
            "Failed to load settings, using defaults",
            type(e).__name__,
            traceback.format_exc(),
        )

    return default_settings


def save_settings(
    settings_to_save: Dict[str, Any], config_file: Optional[str] = None
) -> bool:
    """
    Save settings to config file.

    Args:
        settings_to_save: Dictionary of settings to save
        config_file: Path to the JSON config. Defaults to CONFIG_FILE.

    Returns:
        True if successful, False otherwise
    """
    config_file = config_file or CONFIG_FILE
    try:
        # Create directory if it doesn't exist
        config_dir = os.path.dirname(config_file)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(settings_to_save, f, indent=2)
        return True
    except (OSError, TypeError) as e:
        from utils.logging import log_error

        log_error("Failed to save settings", type(e).__name__, traceback.format_exc())
        return False
