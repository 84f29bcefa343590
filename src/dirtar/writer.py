from __future__ import annotations

import logging
import os
import stat
import tarfile
from typing import BinaryIO

from dirtar.config import TarOptions, get_default_options
from dirtar.exceptions import ArchiveRootError
from dirtar.ignore import IgnoreMatcher, build_ignore_matcher
from dirtar.paths import archive_name
from dirtar.types import ArchiveEntry, MemberType, member_type_from_mode

# Attempt to import pwd and grp for Unix-specific user/group name resolution
try:
    import pwd
except ImportError:
    pwd = None  # type: ignore[assignment]

try:
    import grp
except ImportError:
    grp = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def _owner_names(stat_result: os.stat_result) -> tuple[str, str]:
    user_name = ""
    if pwd:
        try:
            user_name = pwd.getpwuid(stat_result.st_uid).pw_name
        except KeyError:  # UID not found
            pass

    group_name = ""
    if grp:
        try:
            group_name = grp.getgrgid(stat_result.st_gid).gr_name
        except KeyError:  # GID not found
            pass

    return user_name, group_name


def _make_tarinfo(entry: ArchiveEntry, stat_result: os.stat_result) -> tarfile.TarInfo:
    # TarFile.gettarinfo() would turn repeated inodes into hardlink entries, which
    # the reader does not restore, so the header is built by hand.
    tarinfo = tarfile.TarInfo(entry.name)
    tarinfo.type = tarfile.DIRTYPE if entry.is_dir else tarfile.REGTYPE
    tarinfo.mode = entry.mode
    tarinfo.size = entry.size
    tarinfo.mtime = int(stat_result.st_mtime)
    tarinfo.uid = stat_result.st_uid
    tarinfo.gid = stat_result.st_gid
    tarinfo.uname, tarinfo.gname = _owner_names(stat_result)
    return tarinfo


class TreeWriter:
    """Writes the contents of one directory tree to an open tar stream."""

    def __init__(
        self,
        tar: tarfile.TarFile,
        abs_source: str,
        matcher: IgnoreMatcher | None = None,
        sort_entries: bool = False,
    ):
        self.tar = tar
        self.abs_source = abs_source
        self.matcher = matcher
        self.sort_entries = sort_entries
        self.entry_count = 0

    def _list_dir(self, abs_dir: str) -> list[os.DirEntry]:
        with os.scandir(abs_dir) as it:
            entries = list(it)
        if self.sort_entries:
            entries.sort(key=lambda e: e.name)
        return entries

    def _is_ignored(self, entry: ArchiveEntry) -> bool:
        if self.matcher is None:
            return False
        # Directory-only patterns such as "build/" need the trailing slash.
        match_name = entry.name + "/" if entry.is_dir else entry.name
        return self.matcher.matches(match_name)

    def add_file(self, abs_path: str, tarinfo: tarfile.TarInfo) -> None:
        with open(abs_path, "rb") as f:
            self.tar.addfile(tarinfo, f)

    def add_entry(self, dir_entry: os.DirEntry) -> ArchiveEntry | None:
        """Write the header (and contents) for ``dir_entry``, unless it is skipped."""
        abs_path = dir_entry.path
        stat_result = dir_entry.stat(follow_symlinks=False)
        if member_type_from_mode(stat_result.st_mode) == MemberType.OTHER:
            logger.info(f"Skipping {abs_path}: not a regular file or directory")
            return None

        entry = ArchiveEntry.from_stat(
            archive_name(self.abs_source, abs_path), stat_result
        )
        if self._is_ignored(entry):
            logger.info(f"Skipping ignored {entry.type.value} {entry.name}")
            return None

        tarinfo = _make_tarinfo(entry, stat_result)
        logger.debug(f"Adding {entry.type.value} {entry.name} ({entry.size} bytes)")
        if entry.is_dir:
            self.tar.addfile(tarinfo)
        else:
            self.add_file(abs_path, tarinfo)
        self.entry_count += 1
        return entry

    def walk(self, abs_dir: str) -> None:
        """Add everything below ``abs_dir``, depth-first, parents before children."""
        # One pending listing per directory level being visited, innermost last.
        pending = [iter(self._list_dir(abs_dir))]
        while pending:
            dir_entry = next(pending[-1], None)
            if dir_entry is None:
                pending.pop()
                continue

            entry = self.add_entry(dir_entry)
            if entry is not None and entry.is_dir:
                pending.append(iter(self._list_dir(dir_entry.path)))


def check_source_dir(source: str | os.PathLike) -> str:
    """Return the absolute, normalized form of ``source``, which must be a directory."""
    source = os.path.normpath(os.fspath(source))
    try:
        source_stat = os.stat(source)
    except OSError as e:
        raise ArchiveRootError(f"Unable to archive {source}: {e}") from e
    if not stat.S_ISDIR(source_stat.st_mode):
        raise ArchiveRootError(f"Can only archive a directory: {source}")
    return os.path.abspath(source)


def tar_directory(
    source: str | os.PathLike,
    sink: BinaryIO,
    options: TarOptions | None = None,
    *,
    matcher: IgnoreMatcher | None = None,
) -> int:
    """
    Write every directory and regular file below ``source`` to ``sink`` as a tar stream.

    The root itself gets no entry; entry names are relative to it and use forward
    slashes. Symbolic links are not followed, and anything that is neither a regular
    file nor a directory is skipped. Empty directories are kept.

    Args:
        source: The directory to archive.
        sink: A writable binary stream. It is not closed.
        options: Ignore rules and ordering. If None, the current default options
            are used.
        matcher: Use this matcher instead of the rules built from ``options``.

    Returns:
        The number of entries written.

    Raises:
        ArchiveRootError: If ``source`` does not exist or is not a directory.
            Nothing is written to ``sink`` in that case.
        IllegalPathError: If a path found while walking lies outside ``source``.
        FileNotFoundError: If ``honor_gitignore`` is set and there is no
            .gitignore at the root.
        OSError: On any read or write error. Output already written to ``sink``
            stays there, without an end-of-archive marker.
    """
    if options is None:
        options = get_default_options()

    abs_source = check_source_dir(source)
    if matcher is None:
        matcher = build_ignore_matcher(options, abs_source)
    logger.debug(f"Archiving {abs_source} with ignore rules {matcher}")

    # The context manager only writes the end-of-archive marker if no exception
    # was raised.
    with tarfile.open(fileobj=sink, mode="w|") as tar:
        writer = TreeWriter(tar, abs_source, matcher, sort_entries=options.sort_entries)
        writer.walk(abs_source)

    logger.debug(f"Archived {writer.entry_count} entries from {abs_source}")
    return writer.entry_count
