from __future__ import annotations

import logging
import os
import shutil
import stat
import tarfile
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

from dirtar.exceptions import (
    ArchiveCorruptedError,
    ArchiveEOFError,
    ArchiveError,
    ArchiveRootError,
)
from dirtar.paths import check_resolved_target, extraction_target
from dirtar.types import ArchiveEntry, MemberType

logger = logging.getLogger(__name__)


def _translate_tar_exception(e: Exception) -> Optional[ArchiveError]:
    if isinstance(e, tarfile.ReadError):
        if "unexpected end of data" in str(e).lower():
            return ArchiveEOFError("TAR archive is truncated")
        return ArchiveCorruptedError(f"Error reading TAR archive: {e}")
    if isinstance(e, tarfile.HeaderError):
        return ArchiveCorruptedError(f"Invalid TAR header: {e}")
    return None


@contextmanager
def _translate_tar_errors() -> Iterator[None]:
    try:
        yield
    except tarfile.TarError as e:
        translated = _translate_tar_exception(e)
        if translated is None:
            raise
        logger.debug(f"Translated exception: {repr(e)} -> {repr(translated)}")
        raise translated from e


def _iter_tarinfos(tar: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
    while True:
        with _translate_tar_errors():
            tarinfo = tar.next()
        if tarinfo is None:
            return
        yield tarinfo


@contextmanager
def _open_tar_stream(source: BinaryIO) -> Iterator[tarfile.TarFile]:
    # Streaming mode: entries are read strictly in order and the source never
    # needs to be seekable.
    with _translate_tar_errors():
        tar = tarfile.open(fileobj=source, mode="r|", errorlevel=2)
    with tar:
        yield tar


def iter_entries(source: BinaryIO) -> Iterator[ArchiveEntry]:
    """Yield an :class:`ArchiveEntry` for every entry in the tar stream ``source``.

    Nothing is written to disk. Entry kinds other than directories and regular
    files are reported with ``MemberType.OTHER``.
    """
    with _open_tar_stream(source) as tar:
        for tarinfo in _iter_tarinfos(tar):
            yield ArchiveEntry.from_tarinfo(tarinfo)


def _open_for_write(path: str, mode: int) -> BinaryIO:
    def _opener(p: str, flags: int) -> int:
        return os.open(p, flags, mode)

    # "wb" opens with O_WRONLY | O_CREAT | O_TRUNC.
    return open(path, "wb", opener=_opener)


def check_destination_dir(destination: str | os.PathLike) -> str:
    """Return the absolute form of ``destination``, which must be an existing directory."""
    destination = os.fspath(destination)
    try:
        destination_stat = os.stat(destination)
    except OSError as e:
        raise ArchiveRootError(f"Unable to extract to {destination}: {e}") from e
    if not stat.S_ISDIR(destination_stat.st_mode):
        raise ArchiveRootError(f"Can only extract into a directory: {destination}")
    return os.path.abspath(destination)


class TreeReader:
    """Recreates the entries of a tar stream below one destination directory."""

    def __init__(self, abs_destination: str):
        self.abs_destination = abs_destination
        self.real_destination = os.path.realpath(abs_destination)
        self.entry_count = 0

    def get_target_path(self, entry: ArchiveEntry) -> str:
        target = extraction_target(self.abs_destination, entry.name)
        check_resolved_target(self.real_destination, target)
        return target

    def create_directory(self, entry: ArchiveEntry, path: str) -> None:
        if os.path.exists(path):
            logger.debug(f"Directory {path} already exists")
            return
        os.makedirs(path, entry.mode)

    def create_regular_file(
        self, entry: ArchiveEntry, stream: BinaryIO, path: str
    ) -> None:
        # Parents normally come first in the archive, but not necessarily.
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with _open_for_write(path, entry.mode) as dst:
            shutil.copyfileobj(stream, dst)

    def extract(self, tar: tarfile.TarFile, tarinfo: tarfile.TarInfo) -> None:
        entry = ArchiveEntry.from_tarinfo(tarinfo)
        path = self.get_target_path(entry)
        logger.debug(f"Extracting {entry.type.value} {entry.name} to {path}")

        if entry.is_dir:
            self.create_directory(entry, path)
        elif entry.is_file:
            with _translate_tar_errors():
                stream = tar.extractfile(tarinfo)
            assert stream is not None
            with stream, _translate_tar_errors():
                self.create_regular_file(entry, stream, path)
        else:
            logger.info(f"Skipping unsupported entry {tarinfo.name} (type {tarinfo.type!r})")
            return

        self.entry_count += 1


def untar(destination: str | os.PathLike, source: BinaryIO) -> int:
    """
    Recreate the directories and regular files stored in the tar stream ``source``
    below ``destination``.

    Entries are applied one by one as they are read. Existing directories are left
    as they are; existing files are overwritten. Other entry kinds, such as
    symlinks, are skipped.

    Args:
        destination: An existing directory.
        source: A readable binary stream positioned at the start of the archive.
            It does not need to be seekable, and it is not closed.

    Returns:
        The number of directories and files extracted.

    Raises:
        ArchiveRootError: If ``destination`` does not exist or is not a directory.
        IllegalPathError: If an entry would be written outside ``destination``.
            Entries before it have already been extracted.
        ArchiveCorruptedError: If ``source`` is not a valid tar stream.
        ArchiveEOFError: If ``source`` ends in the middle of an entry.
        OSError: On any filesystem error.
    """
    abs_destination = check_destination_dir(destination)
    reader = TreeReader(abs_destination)

    with _open_tar_stream(source) as tar:
        for tarinfo in _iter_tarinfos(tar):
            reader.extract(tar, tarinfo)

    logger.debug(f"Extracted {reader.entry_count} entries to {abs_destination}")
    return reader.entry_count
