from .models import (  # noqa: F401
    BackupError,
    ContainerState,
    DatEntry,
    DatFormatError,
    DatRole,
    SaveResult,
    Texture,
)
from .serial import (  # noqa: F401
    normalize_serial,
    translate_serial,
    translate_for_artwork,
    artwork_key,
)
from .pvr_encoder import (  # noqa: F401
    PvrEncoder,
    decode_pvr,
    decode_to_image,
    read_texture,
    save_as_png,
    to_png_bytes,
    twiddle,
    untwiddle,
    morton_index,
)
from .meta_record import Genre, MetadataRecord, genre_names  # noqa: F401
from .dat_container import DatContainer, validate_dat_file, backup_file  # noqa: F401
from .menu_data import MenuData  # noqa: F401
