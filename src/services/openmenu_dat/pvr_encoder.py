"""Dreamcast PVR texture encoder/decoder for openMenu artwork.

BOX.DAT and ICON.DAT records are small PVR files:

  GBIX block (16B): "GBIX" | size=8 (u32) | global index (u32) | pad (u32)
  PVRT block (16B): "PVRT" | data size (u32) | pixel format (u8) |
                    data format (u8) | pad (u16) | width (u16) | height (u16)
  Pixel data:       width * height RGB565 words, square twiddled

All integers are little-endian. Twiddling stores pixel (x, y) at the
Morton index built by interleaving the bits of x (odd positions) and y
(even positions), which is the PowerVR's native texture layout.
"""

import io
import struct
from functools import lru_cache
from typing import BinaryIO, List, Optional, Sequence, Tuple

from PIL import Image

from .models import Texture

# BOX.DAT texture (256x256)
TEXTURE_WIDTH = 256
TEXTURE_HEIGHT = 256
# ICON.DAT texture (128x128)
ICON_WIDTH = 128
ICON_HEIGHT = 128

GLOBAL_INDEX = 1001
GBIX_HEADER_SIZE = 16
PVRT_HEADER_SIZE = 16
TOTAL_HEADER_SIZE = GBIX_HEADER_SIZE + PVRT_HEADER_SIZE

PIXEL_FORMAT_RGB565 = 0x01
DATA_FORMAT_SQUARE_TWIDDLED = 0x01

TOTAL_PVR_SIZE = TOTAL_HEADER_SIZE + TEXTURE_WIDTH * TEXTURE_HEIGHT * 2  # 131,104
TOTAL_ICON_PVR_SIZE = TOTAL_HEADER_SIZE + ICON_WIDTH * ICON_HEIGHT * 2  # 32,800

_GBIX_MAGIC = b"GBIX"
_PVRT_MAGIC = b"PVRT"
_SUPPORTED_SIZES = ((TEXTURE_WIDTH, TEXTURE_HEIGHT), (ICON_WIDTH, ICON_HEIGHT))

_RESAMPLE_FILTERS = {
    "lanczos": Image.LANCZOS,
    "bicubic": Image.BICUBIC,
    "bilinear": Image.BILINEAR,
    "nearest": Image.NEAREST,
}


# ---------------------------------------------------------------------------
# Twiddling
# ---------------------------------------------------------------------------

def part1by1(n: int) -> int:
    """Insert a 0 bit between each of the 16 low bits of n.

    ABCDEFGH -> 0A0B0C0D0E0F0G0H
    """
    n &= 0x0000FFFF
    n = (n | (n << 8)) & 0x00FF00FF
    n = (n | (n << 4)) & 0x0F0F0F0F
    n = (n | (n << 2)) & 0x33333333
    n = (n | (n << 1)) & 0x55555555
    return n


def morton_index(x: int, y: int) -> int:
    """Twiddled position of pixel (x, y) in a square texture."""
    return (part1by1(x) << 1) | part1by1(y)


@lru_cache(maxsize=8)
def _twiddle_table(width: int, height: int) -> Tuple[int, ...]:
    """Morton index for every linear (row-major) pixel position."""
    return tuple(morton_index(x, y) for y in range(height) for x in range(width))


def _check_square(width: int, height: int) -> None:
    if width != height or width <= 0 or width & (width - 1):
        raise ValueError(
            f"Twiddled textures must be square with a power-of-two side, got {width}x{height}"
        )


def twiddle(linear: Sequence[int], width: int, height: int) -> List[int]:
    """Reorder row-major pixels into twiddled order."""
    _check_square(width, height)
    if len(linear) != width * height:
        raise ValueError(f"Expected {width * height} pixels, got {len(linear)}")
    twiddled = [0] * (width * height)
    for i, index in enumerate(_twiddle_table(width, height)):
        twiddled[index] = linear[i]
    return twiddled


def untwiddle(twiddled: Sequence[int], width: int, height: int) -> List[int]:
    """Reorder twiddled pixels back into row-major order."""
    _check_square(width, height)
    if len(twiddled) != width * height:
        raise ValueError(f"Expected {width * height} pixels, got {len(twiddled)}")
    return [twiddled[index] for index in _twiddle_table(width, height)]


# ---------------------------------------------------------------------------
# Colour conversion
# ---------------------------------------------------------------------------

def rgb_to_rgb565(r: int, g: int, b: int) -> int:
    """Convert 8-bit RGB to RGB565 (RRRRRGGG GGGBBBBB), truncating low bits."""
    return ((r >> 3) << 11) | ((g >> 2) << 5) | (b >> 3)


def rgb565_to_rgb(value: int) -> Tuple[int, int, int]:
    """Expand RGB565 to 8-bit RGB, replicating high bits into the low ones."""
    r = ((value >> 11) & 0x1F) << 3
    g = ((value >> 5) & 0x3F) << 2
    b = (value & 0x1F) << 3
    return r | (r >> 5), g | (g >> 6), b | (b >> 5)


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------

def read_texture(data: Optional[bytes]) -> Optional[Texture]:
    """Validate PVR headers and return the texture's fields, or None."""
    if not data or len(data) < TOTAL_HEADER_SIZE:
        return None
    if data[0:4] != _GBIX_MAGIC or data[16:20] != _PVRT_MAGIC:
        return None

    global_index = struct.unpack_from("<I", data, 8)[0]
    pixel_format, data_format = data[24], data[25]
    width, height = struct.unpack_from("<HH", data, 28)

    if pixel_format != PIXEL_FORMAT_RGB565 or data_format != DATA_FORMAT_SQUARE_TWIDDLED:
        return None
    if (width, height) not in _SUPPORTED_SIZES:
        return None
    if len(data) < TOTAL_HEADER_SIZE + width * height * 2:
        return None

    return Texture(width=width, height=height, global_index=global_index, data=bytes(data))


def build_pvr(twiddled: Sequence[int], width: int, height: int) -> bytes:
    """Wrap twiddled RGB565 pixels in GBIX + PVRT headers."""
    pixel_data_size = width * height * 2
    gbix = _GBIX_MAGIC + struct.pack("<III", 8, GLOBAL_INDEX, 0)
    # data size counts the 8 bytes of format/size fields that follow it
    pvrt = _PVRT_MAGIC + struct.pack(
        "<IBBHHH",
        pixel_data_size + 8,
        PIXEL_FORMAT_RGB565,
        DATA_FORMAT_SQUARE_TWIDDLED,
        0,
        width,
        height,
    )
    return gbix + pvrt + struct.pack(f"<{width * height}H", *twiddled)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode_pvr(data: Optional[bytes]) -> Optional[Tuple[bytes, int, int]]:
    """
    Decode a BOX.DAT or ICON.DAT payload.

    Returns:
        (BGRA32 pixel bytes in row-major order, width, height), or None if
        the payload is not a 128x128 / 256x256 RGB565 twiddled PVR.
    """
    texture = read_texture(data)
    if texture is None:
        return None

    width, height = texture.width, texture.height
    count = width * height
    twiddled = struct.unpack_from(f"<{count}H", texture.data, TOTAL_HEADER_SIZE)
    linear = untwiddle(twiddled, width, height)

    pixels = bytearray(count * 4)
    for i, value in enumerate(linear):
        r, g, b = rgb565_to_rgb(value)
        offset = i * 4
        pixels[offset] = b
        pixels[offset + 1] = g
        pixels[offset + 2] = r
        pixels[offset + 3] = 255

    return bytes(pixels), width, height


def decode_to_image(data: Optional[bytes]) -> Optional[Image.Image]:
    """Decode a payload into an RGBA Pillow image, or None."""
    decoded = decode_pvr(data)
    if decoded is None:
        return None
    pixels, width, height = decoded
    return Image.frombytes("RGBA", (width, height), pixels, "raw", "BGRA")


def save_as_png(data: Optional[bytes], output_path: str) -> bool:
    """Decode a payload and write it as PNG. Returns False if it can't be decoded."""
    image = decode_to_image(data)
    if image is None:
        return False
    image.save(output_path, format="PNG")
    return True


def to_png_bytes(data: Optional[bytes]) -> Optional[bytes]:
    """Decode a payload and return PNG file bytes, or None."""
    image = decode_to_image(data)
    if image is None:
        return None
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

class PvrEncoder:
    """Converts ordinary images to openMenu PVR payloads."""

    def __init__(self, resample_filter: str = "bicubic"):
        if resample_filter not in _RESAMPLE_FILTERS:
            raise ValueError(
                f"Unsupported resample filter: {resample_filter!r}. "
                f"Use one of {', '.join(_RESAMPLE_FILTERS)}."
            )
        self.resample_filter = resample_filter

    def encode_image(
        self,
        image: Image.Image,
        width: int = TEXTURE_WIDTH,
        height: int = TEXTURE_HEIGHT,
    ) -> bytes:
        """
        Resize (ignoring aspect ratio) and encode to RGB565 twiddled PVR.

        Raises:
            ValueError: If width x height is not 256x256 or 128x128.
        """
        if (width, height) not in _SUPPORTED_SIZES:
            raise ValueError(
                f"openMenu textures must be 256x256 or 128x128, got {width}x{height}"
            )

        img = image.convert("RGBA")
        if img.size != (width, height):
            img = img.resize((width, height), _RESAMPLE_FILTERS[self.resample_filter])

        rgb = img.convert("RGB").tobytes()
        linear = [
            rgb_to_rgb565(r, g, b) for r, g, b in zip(rgb[0::3], rgb[1::3], rgb[2::3])
        ]
        return build_pvr(twiddle(linear, width, height), width, height)

    def encode_file(
        self,
        image_path: str,
        width: int = TEXTURE_WIDTH,
        height: int = TEXTURE_HEIGHT,
    ) -> bytes:
        """Encode an image file (PNG, JPEG, GIF, WebP, BMP, TIFF, TGA...)."""
        with Image.open(image_path) as img:
            return self.encode_image(img, width, height)

    def encode_icon_file(self, image_path: str) -> bytes:
        """Encode an image file at ICON.DAT size."""
        return self.encode_file(image_path, ICON_WIDTH, ICON_HEIGHT)

    def encode_stream(
        self,
        stream: BinaryIO,
        width: int = TEXTURE_WIDTH,
        height: int = TEXTURE_HEIGHT,
    ) -> bytes:
        """Encode an image read from a binary file object."""
        with Image.open(stream) as img:
            return self.encode_image(img, width, height)

    def downscale_box_to_icon(self, box_data: Optional[bytes]) -> Optional[bytes]:
        """
        Turn a 256x256 BOX.DAT payload into a 128x128 ICON.DAT payload.

        Returns None unless the input decodes as exactly 256x256.
        """
        texture = read_texture(box_data)
        if texture is None or (texture.width, texture.height) != (
            TEXTURE_WIDTH,
            TEXTURE_HEIGHT,
        ):
            return None
        image = decode_to_image(box_data)
        return self.encode_image(image, ICON_WIDTH, ICON_HEIGHT)
