"""
Utility functions for openMenu DAT Tools.
"""

from .logging import format_entry, get_log_file, log_error, update_log_file_path

__all__ = [
    "format_entry",
    "get_log_file",
    "log_error",
    "update_log_file_path",
]
