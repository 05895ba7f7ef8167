"""Data models for openMenu DAT containers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from constants import BOX_DAT_NAME, ICON_DAT_NAME, META_DAT_NAME


class DatFormatError(ValueError):
    """Raised while parsing a DAT file whose structure is invalid."""
    pass


class BackupError(OSError):
    """Raised when a DAT file could not be copied to the backup folder."""
    pass


class DatRole(Enum):
    """The three DAT stores read by openMenu.

    Each member carries (file_name, record_size, backup_prefix).
    """

    # 256x256 RGB565 twiddled PVR + 32-byte header
    ARTWORK = (BOX_DAT_NAME, 0x20020, "BOX")
    # 128x128 variant of the same texture
    ICON = (ICON_DAT_NAME, 0x8020, "ICON")
    # 8 bytes of fields + 376 bytes of description
    METADATA = (META_DAT_NAME, 0x180, "META")

    def __init__(self, file_name: str, record_size: int, backup_prefix: str):
        self.file_name = file_name
        self.record_size = record_size
        self.backup_prefix = backup_prefix

    @property
    def is_texture(self) -> bool:
        return self is not DatRole.METADATA

    @classmethod
    def from_record_size(cls, record_size: int) -> Optional["DatRole"]:
        for role in cls:
            if role.record_size == record_size:
                return role
        return None


class ContainerState(Enum):
    """Lifecycle of an in-memory DAT container.

    UNLOADED -> CLEAN on a successful load, any state -> DIRTY on set/delete,
    DIRTY -> CLEAN on save. Edits never mark a container as loaded: a
    container that was never loaded stays is_loaded=False until it is
    loaded or saved.
    """

    UNLOADED = "unloaded"
    CLEAN = "clean"
    DIRTY = "dirty"


@dataclass(frozen=True)
class DatEntry:
    """One index record plus its payload."""

    name: str  # Normalized serial, at most 10 ASCII characters
    slot: int  # Data offset = record_size * slot; 0 until the next save
    data: bytes


@dataclass(frozen=True)
class Texture:
    """Header fields of a PVR payload stored in BOX.DAT / ICON.DAT."""

    width: int
    height: int
    global_index: int
    data: bytes  # Full payload: GBIX + PVRT headers + twiddled pixels

    @property
    def pixel_data(self) -> bytes:
        return self.data[32:]


@dataclass
class SaveResult:
    """Outcome of a backup-then-save operation."""

    success: bool
    message: str = ""  # Error text on failure, warning text on degraded success
    error: Optional[Exception] = None
