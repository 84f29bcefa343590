import os
import stat
import sys
import tarfile
import zlib
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from enum import StrEnum
elif sys.version_info >= (3, 11):
    from enum import StrEnum
else:
    from backports.strenum import StrEnum


class MemberType(StrEnum):
    FILE = "file"
    DIR = "dir"
    OTHER = "other"


class CompressionLevel(IntEnum):
    """Compression levels understood by the gzip filter."""

    NO_COMPRESSION = 0
    BEST_SPEED = 1
    BEST_COMPRESSION = 9
    DEFAULT_COMPRESSION = -1
    # Not a real zlib level: selects the Z_HUFFMAN_ONLY strategy instead.
    HUFFMAN_ONLY = -2


LevelLike = Union[CompressionLevel, int]


def normalize_compression_level(level: LevelLike) -> CompressionLevel | int:
    """Validate ``level`` and return it as a ``CompressionLevel`` when possible.

    Any of the named levels is accepted, as well as plain integers in the
    0-9 range used by zlib.
    """
    if isinstance(level, bool) or not isinstance(level, int):
        raise TypeError(f"Compression level must be an int, got {type(level)}")
    try:
        return CompressionLevel(level)
    except ValueError:
        pass
    if zlib.Z_NO_COMPRESSION <= level <= zlib.Z_BEST_COMPRESSION:
        return level
    raise ValueError(f"Invalid compression level: {level}")


def member_type_from_mode(st_mode: int) -> MemberType:
    """Determines the MemberType from an lstat() mode."""
    if stat.S_ISDIR(st_mode):
        return MemberType.DIR
    elif stat.S_ISREG(st_mode):
        return MemberType.FILE
    return MemberType.OTHER


def member_type_from_tarinfo(tarinfo: tarfile.TarInfo) -> MemberType:
    if tarinfo.isdir():
        return MemberType.DIR
    # isreg() also covers AREGTYPE and CONTTYPE entries.
    elif tarinfo.isreg():
        return MemberType.FILE
    return MemberType.OTHER


@dataclass(frozen=True)
class ArchiveEntry:
    """A single directory or regular file stored in the archive."""

    name: str
    type: MemberType
    mode: int
    size: int = 0

    @property
    def is_file(self) -> bool:
        return self.type == MemberType.FILE

    @property
    def is_dir(self) -> bool:
        return self.type == MemberType.DIR

    @classmethod
    def from_tarinfo(cls, tarinfo: tarfile.TarInfo) -> "ArchiveEntry":
        member_type = member_type_from_tarinfo(tarinfo)
        return cls(
            name=tarinfo.name.rstrip("/"),
            type=member_type,
            mode=tarinfo.mode,
            size=tarinfo.size if member_type == MemberType.FILE else 0,
        )

    @classmethod
    def from_stat(cls, name: str, stat_result: os.stat_result) -> "ArchiveEntry":
        member_type = member_type_from_mode(stat_result.st_mode)
        return cls(
            name=name,
            type=member_type,
            mode=stat.S_IMODE(stat_result.st_mode),
            size=stat_result.st_size if member_type == MemberType.FILE else 0,
        )
