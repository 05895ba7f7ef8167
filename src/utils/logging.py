"""
Error log for openMenu DAT Tools.

DAT load failures and failed backups end up in error.log so a broken
menu_data folder can be diagnosed after the fact.
"""

import os
from datetime import datetime
from typing import Optional

from constants import LOG_FILE

SEPARATOR = "-" * 80

_log_file: str = LOG_FILE


def get_log_file() -> str:
    return _log_file


def update_log_file_path(work_dir: str) -> None:
    """Write future entries to <work_dir>/logs/error.log."""
    global _log_file
    logs_dir = os.path.join(work_dir, "logs")
    os.makedirs(logs_dir, exist_ok=True)
    _log_file = os.path.join(logs_dir, "error.log")


def format_entry(
    error_msg: str,
    error_type: Optional[str] = None,
    traceback_str: Optional[str] = None,
) -> str:
    """Render one log entry, terminated by a separator line."""
    lines = [f"[{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}] ERROR: {error_msg}"]
    if error_type:
        lines.append(f"Type: {error_type}")
    if traceback_str:
        lines.append(f"Traceback:\n{traceback_str.rstrip()}")
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def log_error(
    error_msg: str,
    error_type: Optional[str] = None,
    traceback_str: Optional[str] = None,
) -> None:
    """
    Append an entry to the error log.

    Never raises: if the log can't be written the entry goes to stdout.

    Args:
        error_msg: What went wrong, e.g. "Failed to load BOX.DAT: ..."
        error_type: Exception class name, if any
        traceback_str: Formatted traceback, if any
    """
    entry = format_entry(error_msg, error_type, traceback_str)
    try:
        log_dir = os.path.dirname(_log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with open(_log_file, "a") as f:
            f.write(entry)
    except OSError as e:
        print(f"Failed to write to log file: {e}")
        print(entry)
