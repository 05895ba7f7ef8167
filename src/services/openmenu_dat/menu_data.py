"""openMenu menu_data folder: BOX.DAT, ICON.DAT and META.DAT together.

Keeps the artwork and icon stores in step (every artwork write also writes
its icon) and handles backups for the whole folder.
"""

import os
import traceback
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from PIL import Image

from config.settings import Settings
from constants import BACKUP_TIMESTAMP_FORMAT
from utils.logging import log_error

from .dat_container import DatContainer, backup_file
from .meta_record import MetadataRecord
from .models import DatRole, SaveResult
from .pvr_encoder import ICON_HEIGHT, ICON_WIDTH, PvrEncoder
from .serial import normalize_serial, translate_for_artwork


class MenuData:
    """The three DAT stores of one openMenu menu_data folder."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.encoder = PvrEncoder(self.settings.resample_filter)
        self.box = DatContainer.for_artwork()
        self.icon = DatContainer.for_icon()
        self.meta = DatContainer.for_metadata()

    def container(self, role: DatRole) -> DatContainer:
        return {
            DatRole.ARTWORK: self.box,
            DatRole.ICON: self.icon,
            DatRole.METADATA: self.meta,
        }[role]

    def path_for(self, role: DatRole) -> str:
        return os.path.join(self.settings.menu_data_dir, role.file_name)

    def load_all(self) -> Dict[DatRole, str]:
        """
        Load every DAT file present in the menu_data folder.

        Returns:
            {role: load error} for each file that exists but failed to load
        """
        errors = {}
        for role in DatRole:
            path = self.path_for(role)
            if not os.path.exists(path):
                continue
            container = self.container(role)
            if not container.load(path):
                errors[role] = container.load_error
        return errors

    # ------------------------------------------------------------------
    # Artwork
    # ------------------------------------------------------------------

    def has_artwork(self, serial: str) -> bool:
        return self.box.has_entry(translate_for_artwork(serial) or "")

    def get_artwork(self, serial: str) -> Optional[bytes]:
        return self.box.get(translate_for_artwork(serial) or "")

    def get_icon(self, serial: str) -> Optional[bytes]:
        return self.icon.get(translate_for_artwork(serial) or "")

    def set_artwork_from_image(self, serial: str, image: Image.Image) -> str:
        """
        Encode an image into both BOX.DAT and ICON.DAT.

        Returns:
            The key the artwork was stored under
        """
        key = normalize_serial(translate_for_artwork(serial))
        box_data = self.encoder.encode_image(image)
        icon_data = self.encoder.encode_image(image, ICON_WIDTH, ICON_HEIGHT)
        self.box.set(key, box_data)
        self.icon.set(key, icon_data)
        return key

    def set_artwork_from_file(self, serial: str, image_path: str) -> str:
        with Image.open(image_path) as img:
            return self.set_artwork_from_image(serial, img)

    def delete_artwork(self, serial: str) -> bool:
        key = translate_for_artwork(serial) or ""
        removed_box = self.box.delete(key)
        removed_icon = self.icon.delete(key)
        return removed_box or removed_icon

    def regenerate_icons(self) -> int:
        """
        Rebuild ICON.DAT from BOX.DAT by downscaling every artwork entry.

        Entries that do not decode as 256x256 textures are skipped.

        Returns:
            Number of icons generated
        """
        self.icon = DatContainer.for_icon()
        generated = 0
        for entry in self.box.entries():
            icon_data = self.encoder.downscale_box_to_icon(entry.data)
            if icon_data is None:
                log_error(f"Skipping icon for {entry.name}: artwork is not a 256x256 PVR")
                continue
            self.icon.set(entry.name, icon_data)
            generated += 1
        return generated

    @staticmethod
    def serials_sharing_artwork(serial: str, serials: Iterable[str]) -> List[str]:
        """Which of serials resolve to the same artwork key as serial."""
        target = normalize_serial(translate_for_artwork(serial))
        if not target:
            return []
        return [
            s for s in serials if normalize_serial(translate_for_artwork(s)) == target
        ]

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_metadata(self, serial: str) -> Optional[MetadataRecord]:
        return self.meta.get_view(serial)

    def set_metadata(self, serial: str, record: MetadataRecord) -> None:
        self.meta.set_view(serial, record)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save(self, role: DatRole, proceed_without_backup: Optional[bool]) -> SaveResult:
        if proceed_without_backup is None:
            proceed_without_backup = self.settings.proceed_without_backup
        os.makedirs(self.settings.menu_data_dir, exist_ok=True)
        return self.container(role).backup_and_save(
            self.path_for(role), self.settings.backup_dir, proceed_without_backup
        )

    def save_artwork(self, proceed_without_backup: Optional[bool] = None) -> SaveResult:
        """Back up and save BOX.DAT, then ICON.DAT."""
        box_result = self._save(DatRole.ARTWORK, proceed_without_backup)
        if not box_result.success:
            return box_result
        icon_result = self._save(DatRole.ICON, proceed_without_backup)

        messages = []
        if box_result.message:
            messages.append(f"{DatRole.ARTWORK.file_name}: {box_result.message}")
        if icon_result.message:
            messages.append(f"{DatRole.ICON.file_name}: {icon_result.message}")
        return SaveResult(
            success=icon_result.success,
            message="\n".join(messages),
            error=icon_result.error or box_result.error,
        )

    def save_metadata(self, proceed_without_backup: Optional[bool] = None) -> SaveResult:
        return self._save(DatRole.METADATA, proceed_without_backup)

    def backup_all(self) -> SaveResult:
        """Copy every existing DAT file to the backup folder with one timestamp."""
        timestamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        try:
            for role in DatRole:
                backup_file(
                    self.path_for(role), self.settings.backup_dir, role.backup_prefix, timestamp
                )
        except OSError as e:
            log_error("Failed to back up DAT files", type(e).__name__, traceback.format_exc())
            return SaveResult(success=False, message=f"Failed to create backup: {e}", error=e)
        return SaveResult(success=True)

    def clear_all(self) -> SaveResult:
        """Back up, then replace every DAT file with an empty one."""
        result = self.backup_all()
        if not result.success:
            return result

        os.makedirs(self.settings.menu_data_dir, exist_ok=True)
        for role in DatRole:
            DatContainer.create_empty_file(self.path_for(role), role)

        self.box = DatContainer.for_artwork()
        self.icon = DatContainer.for_icon()
        self.meta = DatContainer.for_metadata()
        return SaveResult(success=True)
