"""
Global constants for openMenu DAT Tools.
Contains build info, path configuration and DAT file naming.
"""

import os

# **************************************************************** #
#                       Build Info                                     #
# **************************************************************** #
APP_VERSION = "dev"

# **************************************************************** #
#                       Environment Detection                        #
# **************************************************************** #
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))

# **************************************************************** #
#                       Path Configuration                           #
# **************************************************************** #
if DEV_MODE:
    TEMP_LOG_DIR = os.path.join(SCRIPT_DIR, "..", "workdir")
    CONFIG_FILE = os.path.join(SCRIPT_DIR, "..", "workdir", "config.json")
    DEFAULT_MENU_DATA_DIR = os.path.join(SCRIPT_DIR, "..", "workdir", "menu_data")
    DEFAULT_BACKUP_DIR = os.path.join(SCRIPT_DIR, "..", "workdir", "dat_backups")
else:
    TEMP_LOG_DIR = SCRIPT_DIR
    CONFIG_FILE = os.path.join(SCRIPT_DIR, "config.json")
    DEFAULT_MENU_DATA_DIR = os.path.join(SCRIPT_DIR, "tools", "openMenu", "menu_data")
    DEFAULT_BACKUP_DIR = os.path.join(SCRIPT_DIR, "dat_backups")

LOG_FILE = os.path.join(TEMP_LOG_DIR, "error.log")

# **************************************************************** #
#                       DAT Files                                    #
# **************************************************************** #
BOX_DAT_NAME = "BOX.DAT"
ICON_DAT_NAME = "ICON.DAT"
META_DAT_NAME = "META.DAT"

# Timestamp format used in backup file names (BOX_20240101120000.DAT)
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
