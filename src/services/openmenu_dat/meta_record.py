"""META.DAT record layout.

Each 384-byte record:
  +0x00  u8   number of players
  +0x01  u8   VMU blocks used by saves
  +0x02  u16  accessories bit field
  +0x04  u8   network flag
  +0x05  u16  genre bit field (bit n = openMenu genre n)
  +0x07  u8   spare
  +0x08  376B description, ASCII, NUL-terminated
"""

import struct
from dataclasses import dataclass
from enum import IntFlag
from typing import List

RECORD_SIZE = 0x180
DESCRIPTION_OFFSET = 8
DESCRIPTION_LENGTH = 376

_FIELDS = struct.Struct("<BBHBHB")


class Genre(IntFlag):
    """Genres openMenu can filter on, in its menu order."""

    ACTION = 1 << 0
    RACING = 1 << 1
    SIMULATION = 1 << 2
    SPORTS = 1 << 3
    LIGHTGUN = 1 << 4
    FIGHTING = 1 << 5
    SHOOTER = 1 << 6
    SURVIVAL = 1 << 7
    ADVENTURE = 1 << 8
    PLATFORMER = 1 << 9
    RPG = 1 << 10
    SHMUP = 1 << 11
    STRATEGY = 1 << 12
    PUZZLE = 1 << 13
    ARCADE = 1 << 14
    MUSIC = 1 << 15


GENRE_LABELS = {
    Genre.ACTION: "Action",
    Genre.RACING: "Racing",
    Genre.SIMULATION: "Simulation",
    Genre.SPORTS: "Sports",
    Genre.LIGHTGUN: "Lightgun",
    Genre.FIGHTING: "Fighting",
    Genre.SHOOTER: "Shooter",
    Genre.SURVIVAL: "Survival",
    Genre.ADVENTURE: "Adventure",
    Genre.PLATFORMER: "Platformer",
    Genre.RPG: "RPG",
    Genre.SHMUP: "Shmup",
    Genre.STRATEGY: "Strategy",
    Genre.PUZZLE: "Puzzle",
    Genre.ARCADE: "Arcade",
    Genre.MUSIC: "Music",
}


def genre_names(genre: int) -> List[str]:
    """Labels as shown by openMenu; "No genre" when no bit is set."""
    names = [label for flag, label in GENRE_LABELS.items() if genre & flag]
    return names or ["No genre"]


@dataclass
class MetadataRecord:
    """Structured view of one META.DAT record."""

    num_players: int = 0
    vmu_blocks: int = 0
    accessories: int = 0
    network: int = 0
    genre: int = 0
    spare: int = 0
    description: str = ""

    @classmethod
    def from_bytes(cls, raw: bytes) -> "MetadataRecord":
        if len(raw) != RECORD_SIZE:
            raise ValueError(f"Metadata record must be {RECORD_SIZE} bytes, got {len(raw)}")
        num_players, vmu_blocks, accessories, network, genre, spare = _FIELDS.unpack_from(raw, 0)
        text = raw[DESCRIPTION_OFFSET:].split(b"\x00", 1)[0]
        return cls(
            num_players=num_players,
            vmu_blocks=vmu_blocks,
            accessories=accessories,
            network=network,
            genre=genre,
            spare=spare,
            description=text.decode("ascii", errors="replace"),
        )

    def to_bytes(self) -> bytes:
        """Pack into a 384-byte record. Out-of-range fields raise struct.error."""
        text = self.description.encode("ascii", errors="replace")
        # Keep room for the terminator
        text = text[: DESCRIPTION_LENGTH - 1]
        fields = _FIELDS.pack(
            self.num_players,
            self.vmu_blocks,
            self.accessories,
            self.network,
            self.genre,
            self.spare,
        )
        return fields + text.ljust(DESCRIPTION_LENGTH, b"\x00")

    @property
    def genres(self) -> List[str]:
        return genre_names(self.genre)

    @property
    def has_network(self) -> bool:
        return self.network != 0
