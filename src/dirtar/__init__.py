from dirtar.compression import GzipStreamWriter, open_gzip_stream
from dirtar.config import (
    TarOptions,
    default_options,
    get_default_options,
    set_default_options,
)
from dirtar.core import (
    archive,
    compress_and_archive,
    decompress_and_unarchive,
    list_entries,
    unarchive,
)
from dirtar.exceptions import (
    ArchiveCorruptedError,
    ArchiveEOFError,
    ArchiveError,
    ArchiveRootError,
    IllegalPathError,
)
from dirtar.ignore import GitIgnoreMatcher, IgnoreMatcher
from dirtar.reader import untar
from dirtar.types import ArchiveEntry, CompressionLevel, MemberType
from dirtar.writer import tar_directory

__all__ = [
    # Core
    "archive",
    "unarchive",
    "compress_and_archive",
    "decompress_and_unarchive",
    "list_entries",
    "tar_directory",
    "untar",
    "ArchiveEntry",
    # Enums
    "CompressionLevel",
    "MemberType",
    # Config
    "TarOptions",
    "default_options",
    "get_default_options",
    "set_default_options",
    # Ignore rules
    "IgnoreMatcher",
    "GitIgnoreMatcher",
    # Compression
    "GzipStreamWriter",
    "open_gzip_stream",
    # Exceptions
    "ArchiveError",
    "ArchiveRootError",
    "IllegalPathError",
    "ArchiveCorruptedError",
    "ArchiveEOFError",
]

__version__ = "0.1.0"
