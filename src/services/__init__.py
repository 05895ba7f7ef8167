"""
Services layer for openMenu DAT Tools.
Handles the DAT containers, PVR artwork conversion and serial translation.
"""

from .openmenu_dat import (
    DatContainer,
    DatRole,
    MenuData,
    MetadataRecord,
    PvrEncoder,
    normalize_serial,
    translate_serial,
    translate_for_artwork,
)

__all__ = [
    'DatContainer',
    'DatRole',
    'MenuData',
    'MetadataRecord',
    'PvrEncoder',
    'normalize_serial',
    'translate_serial',
    'translate_for_artwork',
]
