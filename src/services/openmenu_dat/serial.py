"""Disc serial normalization and openMenu serial translation tables.

Two translations exist:

1. Serial fixes: a handful of discs ship with an incorrect or duplicated
   product number. openMenu corrects them by (product, release date), so
   the corrected serial is what the UI shows, what OPENMENU.INI gets and
   what artwork lookups start from.
2. Artwork remaps: regional variants that share artwork with another
   release. Only BOX.DAT / ICON.DAT lookups use this mapping.
"""

from typing import Dict, Optional, Tuple

# Maximum length of an index name in a DAT file
SERIAL_KEY_LENGTH = 10

# (product, release date YYYYMMDD) -> corrected product
_SERIAL_FIXES: Dict[Tuple[str, str], str] = {
    ("T15117N", "20010423"): "T15112D05",  # Alone in the Dark (PAL)
    ("MK51035", "20000120"): "MK5103550",  # Crazy Taxi (PAL)
    ("T17714D50", "20001116"): "T17719N",  # Donald Duck: Goin' Quackers (USA)
    ("MK51114", "20010920"): "MK5111450",  # Floigan Bros (PAL)
    ("T36802N", "19991220"): "T36803D05",  # Legacy of Kain (PAL)
    ("MK51178", "20011129"): "MK5117850",  # NBA 2K2 (PAL)
    ("T9706D50", "19991201"): "T9705D50",  # NBA Showtime (PAL)
    ("T9504M", "20000407"): "T9504N",  # Nightmare Creatures II (USA)
    ("T7005D", "20000711"): "T7003D",  # Plasma Sword (PAL)
    ("MK51052", "20010306"): "MK5105250",  # Skies of Arcadia (PAL)
    ("T13008N", "20010402"): "T13011D50",  # Spider-Man (PAL)
    ("T0000M", "19990813"): "T13701N",  # TNN Motorsports (USA)
    ("T0006M", "20030609"): "T0010M",  # Maximum Speed (Atomiswave)
}

# (product, lowercase name fragment) -> corrected product
_SERIAL_NAME_FIXES: Dict[Tuple[str, str], str] = {
    ("T0009M", "orth"): "T0026M",  # Fist of the North Star (Atomiswave)
}

_ARTWORK_REMAP: Dict[str, str] = {
    "T13001D05": "T13001D",  # Blue Stinger
    "T8111D58": "T8111D50",  # ECW Hardcore Revolution
    "T45001D09": "T45001D05",  # Rainbow Six
    "T45001D18": "T45001D05",  # Rainbow Six
    "T45002D09": "T45002D05",  # Rainbow Six: Rogue Spear
    "T36815D06": "T36804D05",  # Tomb Raider Chronicles
    "T36815D13": "T36804D05",  # Tomb Raider Chronicles
    "T36815D18": "T36804D05",  # Tomb Raider Chronicles
    "MK5109506": "MK5109505",  # UEFA Dream Soccer
    "MK5109509": "MK5109505",  # UEFA Dream Soccer
    "MK5109518": "MK5109505",  # UEFA Dream Soccer
    "T8103N18": "T8103N50",  # WWF Attitude
}


def normalize_serial(serial: Optional[str]) -> str:
    """
    Turn a raw serial into a DAT index key.

    Strips everything but ASCII letters and digits, uppercases and
    truncates to 10 characters. Empty or missing input gives "".
    """
    if not serial:
        return ""
    kept = "".join(c for c in serial if c.isascii() and c.isalnum())
    return kept[:SERIAL_KEY_LENGTH].upper()


def translate_serial(
    raw_product: Optional[str],
    release_date: Optional[str] = None,
    name: Optional[str] = None,
) -> Optional[str]:
    """
    Correct a disc's product number the way openMenu does.

    Args:
        raw_product: Product number from IP.BIN (hyphen removed, trimmed)
        release_date: Release date from IP.BIN (YYYYMMDD), if known
        name: Software name from IP.BIN, if known

    Returns:
        The serial to use for display, OPENMENU.INI and as the base for
        artwork lookups. Unknown serials are returned unchanged.
    """
    if raw_product is None or not raw_product.strip():
        return raw_product

    fixed = _SERIAL_FIXES.get((raw_product, release_date or ""))
    if fixed is not None:
        return fixed

    lowered_name = (name or "").lower()
    for (product, fragment), fixed in _SERIAL_NAME_FIXES.items():
        if raw_product == product and fragment in lowered_name:
            return fixed

    return raw_product


def translate_for_artwork(serial: Optional[str]) -> Optional[str]:
    """
    Map a (already corrected) serial to the serial owning its artwork.

    Only meant for BOX.DAT / ICON.DAT access; never for display.
    """
    if serial is None or not serial.strip():
        return serial
    return _ARTWORK_REMAP.get(serial, serial)


def artwork_key(raw_product: Optional[str], release_date: Optional[str] = None,
                name: Optional[str] = None) -> str:
    """Full pipeline from an IP.BIN product number to a BOX.DAT key."""
    display = translate_serial(raw_product, release_date, name)
    return normalize_serial(translate_for_artwork(display))
