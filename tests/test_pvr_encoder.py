"""Tests for the PVR texture encoder/decoder used by BOX.DAT and ICON.DAT."""

import io
import os
import struct
import sys
import tempfile

from PIL import Image

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from services.openmenu_dat.pvr_encoder import (
    PvrEncoder,
    TOTAL_PVR_SIZE,
    TOTAL_ICON_PVR_SIZE,
    build_pvr,
    decode_pvr,
    decode_to_image,
    morton_index,
    part1by1,
    read_texture,
    rgb565_to_rgb,
    rgb_to_rgb565,
    save_as_png,
    to_png_bytes,
    twiddle,
    untwiddle,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _gradient(width=300, height=200):
    """Non-square RGB test image with distinct colours per pixel."""
    img = Image.new("RGB", (width, height))
    img.putdata([
        ((x * 7) % 256, (y * 5) % 256, (x + y) % 256)
        for y in range(height)
        for x in range(width)
    ])
    return img


# ---------------------------------------------------------------------------
# Twiddling
# ---------------------------------------------------------------------------

def test_part1by1_masks():
    """Bit spreading uses the 0x00FF00FF / 0x0F0F0F0F / 0x33333333 / 0x55555555 ladder."""
    assert part1by1(0) == 0
    assert part1by1(1) == 0b1
    assert part1by1(0b11) == 0b101
    assert part1by1(0xFF) == 0x5555
    assert part1by1(0xFFFF) == 0x55555555
    print("  PASS: test_part1by1_masks")


def test_morton_index_layout():
    # x lands on odd bits, y on even bits
    assert morton_index(0, 0) == 0
    assert morton_index(0, 1) == 1
    assert morton_index(1, 0) == 2
    assert morton_index(1, 1) == 3
    assert morton_index(2, 0) == 8
    assert morton_index(0, 2) == 4
    assert morton_index(255, 255) == 256 * 256 - 1
    print("  PASS: test_morton_index_layout")


def test_morton_index_bijection():
    for size in (8, 128, 256):
        seen = {morton_index(x, y) for y in range(size) for x in range(size)}
        assert seen == set(range(size * size)), f"Not a bijection at {size}x{size}"
    print("  PASS: test_morton_index_bijection")


def test_twiddle_roundtrip():
    size = 128
    pixels = list(range(size * size))
    twiddled = twiddle(pixels, size, size)
    assert twiddled != pixels
    assert untwiddle(twiddled, size, size) == pixels
    # Pixel (x=1, y=0) is the third word in twiddled order
    assert twiddled[2] == 1
    assert twiddled[1] == size  # (x=0, y=1)
    print("  PASS: test_twiddle_roundtrip")


def test_twiddle_rejects_bad_shapes():
    for width, height in ((128, 64), (100, 100)):
        try:
            twiddle([0] * (width * height), width, height)
            assert False, f"Expected ValueError for {width}x{height}"
        except ValueError:
            pass
    try:
        twiddle([0] * 10, 8, 8)
        assert False, "Expected ValueError for wrong pixel count"
    except ValueError:
        pass
    print("  PASS: test_twiddle_rejects_bad_shapes")


# ---------------------------------------------------------------------------
# Colour conversion
# ---------------------------------------------------------------------------

def test_rgb565_conversion():
    assert rgb_to_rgb565(255, 0, 0) == 0xF800
    assert rgb_to_rgb565(0, 255, 0) == 0x07E0
    assert rgb_to_rgb565(0, 0, 255) == 0x001F
    assert rgb_to_rgb565(255, 255, 255) == 0xFFFF
    # Low bits are truncated, not rounded
    assert rgb_to_rgb565(7, 3, 7) == 0

    assert rgb565_to_rgb(0xFFFF) == (255, 255, 255)
    assert rgb565_to_rgb(0x0000) == (0, 0, 0)
    assert rgb565_to_rgb(0xF800) == (255, 0, 0)
    assert rgb565_to_rgb(0x0841) == (8, 8, 8)
    assert rgb565_to_rgb(0x0020) == (0, 4, 0)
    print("  PASS: test_rgb565_conversion")


def test_rgb565_stable_under_reencode():
    for value in (0x0000, 0x1234, 0x8410, 0xABCD, 0xFFFF):
        assert rgb_to_rgb565(*rgb565_to_rgb(value)) == value
    print("  PASS: test_rgb565_stable_under_reencode")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def test_encode_box_header():
    data = PvrEncoder().encode_image(_gradient())
    assert len(data) == TOTAL_PVR_SIZE == 131104

    assert data[0:4] == b"GBIX"
    assert struct.unpack_from("<III", data, 4) == (8, 1001, 0)
    assert data[16:20] == b"PVRT"
    assert struct.unpack_from("<I", data, 20)[0] == 256 * 256 * 2 + 8
    assert data[24] == 0x01, "pixel format should be RGB565"
    assert data[25] == 0x01, "data format should be square twiddled"
    assert struct.unpack_from("<HHH", data, 26) == (0, 256, 256)
    print("  PASS: test_encode_box_header")


def test_encode_icon_size():
    data = PvrEncoder().encode_image(_gradient(), 128, 128)
    assert len(data) == TOTAL_ICON_PVR_SIZE == 32800
    assert struct.unpack_from("<HH", data, 28) == (128, 128)
    print("  PASS: test_encode_icon_size")


def test_encode_places_pixels_twiddled():
    img = Image.new("RGB", (128, 128), (0, 0, 0))
    img.putpixel((1, 0), (255, 255, 255))
    img.putpixel((0, 3), (255, 0, 0))
    data = PvrEncoder().encode_image(img, 128, 128)
    words = struct.unpack_from(f"<{128 * 128}H", data, 32)
    assert words[2] == 0xFFFF
    assert words[morton_index(0, 3)] == 0xF800
    assert sum(1 for w in words if w) == 2
    print("  PASS: test_encode_places_pixels_twiddled")


def test_encode_is_deterministic():
    encoder = PvrEncoder()
    img = _gradient()
    assert encoder.encode_image(img) == encoder.encode_image(img.copy())
    print("  PASS: test_encode_is_deterministic")


def test_encode_rejects_unsupported_size():
    # Square powers of two are still not textures openMenu can show
    for width, height in ((200, 200), (64, 64), (512, 512), (1, 1), (256, 128)):
        try:
            PvrEncoder().encode_image(_gradient(), width, height)
            assert False, f"Expected ValueError for {width}x{height}"
        except ValueError:
            pass
    try:
        PvrEncoder("sharpest")
        assert False, "Expected ValueError for unknown filter"
    except ValueError:
        pass
    print("  PASS: test_encode_rejects_unsupported_size")


def test_encode_file_and_stream():
    encoder = PvrEncoder()
    img = _gradient(64, 64)
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "cover.png")
        img.save(path)
        from_file = encoder.encode_file(path)
        icon = encoder.encode_icon_file(path)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    from_stream = encoder.encode_stream(buffer)

    assert from_file == from_stream
    assert len(icon) == TOTAL_ICON_PVR_SIZE
    print("  PASS: test_encode_file_and_stream")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def test_decode_solid_colour():
    img = Image.new("RGB", (256, 256), (255, 0, 0))
    decoded = decode_pvr(PvrEncoder().encode_image(img))
    assert decoded is not None
    pixels, width, height = decoded
    assert (width, height) == (256, 256)
    assert len(pixels) == 256 * 256 * 4
    # BGRA
    assert pixels[0:4] == bytes((0, 0, 255, 255))
    assert pixels[-4:] == bytes((0, 0, 255, 255))
    print("  PASS: test_decode_solid_colour")


def test_decode_restores_positions():
    img = Image.new("RGB", (128, 128), (0, 0, 0))
    img.putpixel((5, 9), (0, 255, 0))
    decoded_img = decode_to_image(PvrEncoder().encode_image(img, 128, 128))
    assert decoded_img.mode == "RGBA"
    assert decoded_img.getpixel((5, 9)) == (0, 255, 0, 255)
    assert decoded_img.getpixel((9, 5)) == (0, 0, 0, 255)
    print("  PASS: test_decode_restores_positions")


def test_decode_encode_idempotent():
    encoder = PvrEncoder()
    first = encoder.encode_image(_gradient())
    second = encoder.encode_image(decode_to_image(first))
    third = encoder.encode_image(decode_to_image(second))
    assert first == second == third
    print("  PASS: test_decode_encode_idempotent")


def test_decode_rejects_malformed():
    good = PvrEncoder().encode_image(_gradient(), 128, 128)

    assert decode_pvr(None) is None
    assert decode_pvr(b"") is None
    assert decode_pvr(good[:31]) is None
    assert decode_pvr(b"XBIX" + good[4:]) is None
    assert decode_pvr(good[:16] + b"PVRX" + good[20:]) is None

    bad_format = bytearray(good)
    bad_format[24] = 0x02
    assert decode_pvr(bytes(bad_format)) is None

    bad_layout = bytearray(good)
    bad_layout[25] = 0x03
    assert decode_pvr(bytes(bad_layout)) is None

    # Truncated pixel data
    assert decode_pvr(good[:-2]) is None

    # Valid header but unsupported dimensions
    small = build_pvr(twiddle([0] * 64 * 64, 64, 64), 64, 64)
    assert read_texture(small) is None
    assert decode_pvr(small) is None
    print("  PASS: test_decode_rejects_malformed")


def test_read_texture_fields():
    data = PvrEncoder().encode_image(_gradient())
    texture = read_texture(data)
    assert texture.width == 256 and texture.height == 256
    assert texture.global_index == 1001
    assert len(texture.pixel_data) == 256 * 256 * 2
    print("  PASS: test_read_texture_fields")


def test_png_export():
    data = PvrEncoder().encode_image(_gradient(), 128, 128)
    png = to_png_bytes(data)
    assert png is not None and png[:8] == b"\x89PNG\r\n\x1a\n"
    assert to_png_bytes(b"garbage") is None

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "icon.png")
        assert save_as_png(data, path)
        with Image.open(path) as img:
            assert img.size == (128, 128)
        assert not save_as_png(b"garbage", os.path.join(tmp, "bad.png"))
        assert not os.path.exists(os.path.join(tmp, "bad.png"))
    print("  PASS: test_png_export")


# ---------------------------------------------------------------------------
# Downscale
# ---------------------------------------------------------------------------

def test_downscale_box_to_icon():
    encoder = PvrEncoder()
    box = encoder.encode_image(_gradient())
    icon = encoder.downscale_box_to_icon(box)
    assert icon is not None
    assert len(icon) == 32800
    assert struct.unpack_from("<HH", icon, 28) == (128, 128)
    assert icon == encoder.encode_image(decode_to_image(box), 128, 128)
    print("  PASS: test_downscale_box_to_icon")


def test_downscale_rejects_non_box():
    encoder = PvrEncoder()
    icon = encoder.encode_image(_gradient(), 128, 128)
    assert encoder.downscale_box_to_icon(icon) is None
    assert encoder.downscale_box_to_icon(b"\x00" * 131104) is None
    assert encoder.downscale_box_to_icon(None) is None
    print("  PASS: test_downscale_rejects_non_box")


if __name__ == "__main__":
    tests = [
        test_part1by1_masks,
        test_morton_index_layout,
        test_morton_index_bijection,
        test_twiddle_roundtrip,
        test_twiddle_rejects_bad_shapes,
        test_rgb565_conversion,
        test_rgb565_stable_under_reencode,
        test_encode_box_header,
        test_encode_icon_size,
        test_encode_places_pixels_twiddled,
        test_encode_is_deterministic,
        test_encode_rejects_unsupported_size,
        test_encode_file_and_stream,
        test_decode_solid_colour,
        test_decode_restores_positions,
        test_decode_encode_idempotent,
        test_decode_rejects_malformed,
        test_read_texture_fields,
        test_png_export,
        test_downscale_box_to_icon,
        test_downscale_rejects_non_box,
    ]
    failed = 0
    for test in tests:
        try:
            test()
        except Exception as e:
            failed += 1
            print(f"  FAIL: {test.__name__}: {e}")
    print(f"\nResults: {len(tests) - failed} passed, {failed} failed")
    sys.exit(1 if failed else 0)
