"""openMenu DAT container (BOX.DAT, ICON.DAT, META.DAT).

All three files share one layout and differ only in record size:

  Header (16B):      "DAT\\x01" | record size (u32) | entry count (u32) | reserved (u32)
  Index (count*16B): name (10B ASCII, NUL padded) | reserved (u16) | slot (u32)
  Padding:           zeros up to record_size * first slot
  Data:              one record_size block per entry at record_size * slot

All integers are little-endian. Slots are reassigned on every save so the
data region starts at the first slot that clears the index.
"""

import os
import shutil
import struct
import traceback
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

from constants import BACKUP_TIMESTAMP_FORMAT
from utils.logging import log_error

from .meta_record import MetadataRecord
from .models import (
    BackupError,
    ContainerState,
    DatEntry,
    DatFormatError,
    DatRole,
    SaveResult,
    Texture,
)
from .pvr_encoder import read_texture
from .serial import SERIAL_KEY_LENGTH, normalize_serial

DAT_MAGIC = b"DAT\x01"
HEADER_SIZE = 16
INDEX_ENTRY_SIZE = 16
MIN_STARTING_SLOT = 1

_HEADER = struct.Struct("<4sIII")
_INDEX_ENTRY = struct.Struct("<10s2xI")

PayloadView = Union[Texture, MetadataRecord]


def starting_slot(entry_count: int, record_size: int) -> int:
    """First slot whose data offset does not land inside the header + index."""
    index_end = HEADER_SIZE + entry_count * INDEX_ENTRY_SIZE
    return max(MIN_STARTING_SLOT, -(-index_end // record_size))


class DatContainer:
    """In-memory cache of one DAT file."""

    def __init__(self, role: DatRole):
        self.role = role
        self._entries: Dict[str, DatEntry] = {}
        self._state = ContainerState.UNLOADED
        # Only load() and save() tie the container to a file on disk
        self._loaded = False
        self._load_error = ""
        self._file_path = ""

    @classmethod
    def for_artwork(cls) -> "DatContainer":
        return cls(DatRole.ARTWORK)

    @classmethod
    def for_icon(cls) -> "DatContainer":
        return cls(DatRole.ICON)

    @classmethod
    def for_metadata(cls) -> "DatContainer":
        return cls(DatRole.METADATA)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def record_size(self) -> int:
        return self.role.record_size

    @property
    def state(self) -> ContainerState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def has_unsaved_changes(self) -> bool:
        return self._state is ContainerState.DIRTY

    @property
    def load_error(self) -> str:
        return self._load_error

    @property
    def file_path(self) -> str:
        return self._file_path

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, serial: object) -> bool:
        return isinstance(serial, str) and self.has_entry(serial)

    def __repr__(self) -> str:
        return (
            f"<DatContainer {self.role.file_name} entries={len(self._entries)} "
            f"state={self._state.value}>"
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, path: str) -> bool:
        """
        Load a DAT file into memory, replacing any cached entries.

        Structural problems never raise: the container is left empty and
        unloaded, and load_error describes what was wrong.

        Returns:
            True if the file was loaded
        """
        self._entries = {}
        self._state = ContainerState.UNLOADED
        self._loaded = False
        self._load_error = ""
        self._file_path = path

        if not os.path.isfile(path):
            return self._fail_load(f"{self.role.file_name} file not found: {path}")

        try:
            with open(path, "rb") as f:
                entries = self._read_entries(f, os.fstat(f.fileno()).st_size)
        except DatFormatError as e:
            return self._fail_load(str(e))
        except OSError as e:
            return self._fail_load(f"Error reading file: {e}", e)

        self._entries = entries
        self._state = ContainerState.CLEAN
        self._loaded = True
        return True

    def _fail_load(self, message: str, exc: Optional[Exception] = None) -> bool:
        self._entries = {}
        self._state = ContainerState.UNLOADED
        self._loaded = False
        self._load_error = message
        log_error(
            f"Failed to load {self._file_path}: {message}",
            type(exc).__name__ if exc else DatFormatError.__name__,
            traceback.format_exc() if exc else None,
        )
        return False

    def _read_entries(self, f, file_size: int) -> Dict[str, DatEntry]:
        if file_size < HEADER_SIZE:
            raise DatFormatError("File too small for header")

        magic, record_size, entry_count, _reserved = _HEADER.unpack(f.read(HEADER_SIZE))
        if magic != DAT_MAGIC:
            raise DatFormatError(f"Invalid magic header {magic!r} (expected b'DAT\\x01')")
        if record_size != self.record_size:
            raise DatFormatError(
                f"Unexpected entry size 0x{record_size:X} (expected 0x{self.record_size:X})"
            )

        index_end = HEADER_SIZE + entry_count * INDEX_ENTRY_SIZE
        if file_size < index_end:
            raise DatFormatError("File truncated - cannot contain all entry headers")

        index = f.read(entry_count * INDEX_ENTRY_SIZE)
        entries: Dict[str, DatEntry] = {}
        for i in range(entry_count):
            raw_name, slot = _INDEX_ENTRY.unpack_from(index, i * INDEX_ENTRY_SIZE)
            name = raw_name.decode("ascii", errors="replace").rstrip("\x00").strip()
            # Empty names are placeholders
            if not name:
                continue

            offset = record_size * slot
            if offset < index_end:
                raise DatFormatError(
                    f"Entry '{name}' data offset 0x{offset:X} overlaps the index"
                )
            if offset + record_size > file_size:
                raise DatFormatError(
                    f"Entry '{name}' data offset 0x{offset:X} exceeds file size"
                )

            f.seek(offset)
            key = normalize_serial(name) or name.upper()
            entries[key] = DatEntry(name=name, slot=slot, data=f.read(record_size))

        return entries

    # ------------------------------------------------------------------
    # Lookup and mutation
    # ------------------------------------------------------------------

    def has_entry(self, serial: str) -> bool:
        key = normalize_serial(serial)
        return bool(key) and key in self._entries

    def get(self, serial: str) -> Optional[bytes]:
        """Raw payload for a serial, or None."""
        key = normalize_serial(serial)
        if not key:
            return None
        entry = self._entries.get(key)
        return entry.data if entry else None

    def get_view(self, serial: str) -> Optional[PayloadView]:
        """
        Payload interpreted for this container's role.

        Texture for BOX.DAT / ICON.DAT (None when the payload is not a valid
        PVR), MetadataRecord for META.DAT.
        """
        data = self.get(serial)
        if data is None:
            return None
        if self.role.is_texture:
            return read_texture(data)
        return MetadataRecord.from_bytes(data)

    def set(self, serial: str, data: bytes) -> None:
        """
        Add or replace the payload for a serial.

        Raises:
            ValueError: If the serial normalizes to nothing or the payload is
                not exactly one record long.
        """
        key = normalize_serial(serial)
        if not key:
            raise ValueError(f"Serial {serial!r} is empty after normalization")
        if data is None or len(data) != self.record_size:
            size = "None" if data is None else len(data)
            raise ValueError(
                f"{self.role.file_name} payload must be exactly {self.record_size} bytes, got {size}"
            )

        existing = self._entries.get(key)
        if existing is not None:
            self._entries[key] = DatEntry(name=existing.name, slot=existing.slot, data=bytes(data))
        else:
            # Slot is assigned on save
            self._entries[key] = DatEntry(name=key, slot=0, data=bytes(data))
        self._state = ContainerState.DIRTY

    def set_view(self, serial: str, view: PayloadView) -> None:
        """Store a Texture or MetadataRecord."""
        if isinstance(view, MetadataRecord):
            self.set(serial, view.to_bytes())
        else:
            self.set(serial, view.data)

    def delete(self, serial: str) -> bool:
        """Remove the entry for a serial. Returns True if one was removed."""
        key = normalize_serial(serial)
        if not key or key not in self._entries:
            return False
        del self._entries[key]
        self._state = ContainerState.DIRTY
        return True

    def clear(self) -> None:
        """Drop every entry."""
        self._entries = {}
        self._state = ContainerState.DIRTY

    def keys(self) -> List[str]:
        """Serials stored in this container, in index order."""
        return [entry.name for entry in self._entries.values()]

    def entries(self) -> Tuple[DatEntry, ...]:
        return tuple(self._entries.values())

    def merge_from(self, source: "DatContainer", overwrite_existing: bool) -> int:
        """
        Copy entries from another loaded container with the same record size.

        Args:
            source: Container to copy from
            overwrite_existing: Replace entries that already exist here

        Returns:
            Number of entries copied
        """
        if source is None:
            return 0
        if source.record_size != self.record_size:
            raise ValueError(
                f"Cannot merge {source.role.file_name} (0x{source.record_size:X}) into "
                f"{self.role.file_name} (0x{self.record_size:X})"
            )
        if not source.is_loaded:
            return 0

        merged = 0
        for entry in source.entries():
            key = normalize_serial(entry.name)
            if not key:
                continue
            if overwrite_existing or key not in self._entries:
                self.set(key, entry.data)
                merged += 1
        return merged

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(self, path: str) -> None:
        """
        Write every entry to path with a freshly computed layout.

        OSError (disk full, permissions...) propagates to the caller.
        """
        record_size = self.record_size
        first_slot = starting_slot(len(self._entries), record_size)

        # Final slots must be known before the index is written
        laid_out = {}
        for i, (key, entry) in enumerate(self._entries.items()):
            laid_out[key] = DatEntry(name=entry.name, slot=first_slot + i, data=entry.data)

        header = _HEADER.pack(DAT_MAGIC, record_size, len(laid_out), 0)
        index = b"".join(
            _INDEX_ENTRY.pack(_encode_name(entry.name), entry.slot)
            for entry in laid_out.values()
        )
        padding = b"\x00" * (record_size * first_slot - len(header) - len(index))

        with open(path, "wb") as f:
            f.write(header)
            f.write(index)
            f.write(padding)
            for entry in laid_out.values():
                f.write(entry.data)

        self._entries = laid_out
        self._file_path = path
        self._state = ContainerState.CLEAN
        self._loaded = True

    def backup_and_save(
        self,
        path: str,
        backup_dir: str,
        proceed_without_backup: bool = False,
    ) -> SaveResult:
        """
        Copy the existing file to a timestamped backup, then save.

        If the backup fails and proceed_without_backup is False, nothing is
        written and the result carries a BackupError.
        """
        backup_error: Optional[BackupError] = None
        try:
            backup_file(path, backup_dir, self.role.backup_prefix)
        except OSError as e:
            backup_error = BackupError(f"Failed to create backup: {e}")
            log_error(str(backup_error), type(e).__name__, traceback.format_exc())

        if backup_error is not None and not proceed_without_backup:
            return SaveResult(success=False, message=str(backup_error), error=backup_error)

        self.save(path)

        if backup_error is not None:
            return SaveResult(
                success=True,
                message=f"Warning: {backup_error}, but {self.role.file_name} was saved.",
                error=backup_error,
            )
        return SaveResult(success=True)

    @staticmethod
    def create_empty_file(path: str, role: DatRole) -> None:
        """
        Write the smallest DAT file openMenu accepts for a role.

        BOX.DAT / ICON.DAT get a bare header. META.DAT gets one placeholder
        index entry pointing at a zeroed record in slot 1.
        """
        record_size = role.record_size
        with open(path, "wb") as f:
            if role is not DatRole.METADATA:
                f.write(_HEADER.pack(DAT_MAGIC, record_size, 0, 0))
                return

            f.write(_HEADER.pack(DAT_MAGIC, record_size, 1, 0))
            f.write(_INDEX_ENTRY.pack(b"", MIN_STARTING_SLOT))
            f.write(b"\x00" * (record_size * MIN_STARTING_SLOT - HEADER_SIZE - INDEX_ENTRY_SIZE))
            f.write(b"\x00" * record_size)


def _encode_name(name: str) -> bytes:
    return name.encode("ascii", errors="replace")[:SERIAL_KEY_LENGTH]


def backup_file(
    path: str,
    backup_dir: str,
    prefix: str,
    timestamp: Optional[str] = None,
) -> Optional[str]:
    """
    Copy path to <backup_dir>/<prefix>_<timestamp>.DAT.

    Returns:
        The backup path, or None if there was no file to back up
    """
    os.makedirs(backup_dir, exist_ok=True)
    if not os.path.exists(path):
        return None

    timestamp = timestamp or datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
    backup_path = os.path.join(backup_dir, f"{prefix}_{timestamp}.DAT")
    counter = 1
    while os.path.exists(backup_path):
        backup_path = os.path.join(backup_dir, f"{prefix}_{timestamp}_{counter}.DAT")
        counter += 1
    shutil.copy2(path, backup_path)
    return backup_path


def validate_dat_file(path: str, expected_record_size: int) -> Tuple[bool, str]:
    """Check magic and record size without reading entries."""
    try:
        if not os.path.isfile(path):
            return False, "File not found"
        with open(path, "rb") as f:
            header = f.read(HEADER_SIZE)
    except OSError as e:
        return False, f"Error reading file: {e}"

    if len(header) < HEADER_SIZE:
        return False, "File too small for header"
    magic, record_size, _count, _reserved = _HEADER.unpack(header)
    if magic != DAT_MAGIC:
        return False, "Invalid magic header (expected DAT\\x01)"
    if record_size != expected_record_size:
        found = DatRole.from_record_size(record_size)
        hint = f", looks like {found.file_name}" if found else ""
        return False, (
            f"Unexpected entry size 0x{record_size:X} "
            f"(expected 0x{expected_record_size:X}{hint})"
        )
    return True, ""
