"""Core functionality for archiving and extracting directory trees."""

from __future__ import annotations

import os
from typing import Any

from dirtar.compression import gzip_compress, gzip_decompress
from dirtar.config import TarOptions, resolve_options
from dirtar.ignore import IgnoreMatcher, build_ignore_matcher
from dirtar.io_helpers import PathOrStream, is_path, open_binary
from dirtar.reader import check_destination_dir, iter_entries, untar
from dirtar.types import ArchiveEntry
from dirtar.writer import check_source_dir, tar_directory


def _prepare_path_sink(
    source: str | os.PathLike, sink: PathOrStream, options: TarOptions
) -> IgnoreMatcher | None:
    # The output file must not be created unless the source and its ignore rules
    # are usable.
    if not is_path(sink):
        return None
    abs_source = check_source_dir(source)
    return build_ignore_matcher(options, abs_source)


def archive(
    source: str | os.PathLike,
    sink: PathOrStream,
    options: TarOptions | None = None,
    **overrides: Any,
) -> int:
    """
    Write the directory tree at ``source`` to ``sink`` as an uncompressed tar stream.

    Args:
        source: The directory to archive. It must exist.
        sink: A writable binary stream, or a path to create. Streams are left open;
            a path is opened for the duration of the call only.
        options: A :class:`TarOptions`. If None, the current default options are
            used (see :func:`dirtar.config.default_options`).
        **overrides: Replace individual fields of the options, e.g.
            ``archive(src, f, honor_gitignore=True)``.

    Returns:
        The number of entries written.

    Raises:
        ArchiveRootError: If ``source`` is not an existing directory. If ``sink``
            is a path, it is not created in that case, nor when the .gitignore
            required by ``honor_gitignore`` is missing.
        IllegalPathError: If a path found while walking lies outside ``source``.
        OSError: On read or write errors, including a missing .gitignore when
            ``honor_gitignore`` is set.

    Example:
        ```python
        from dirtar import archive, TarOptions

        with open("project.tar", "wb") as f:
            archive("project/", f, TarOptions.git_repo())
        ```
    """
    options = resolve_options(options, **overrides)
    matcher = _prepare_path_sink(source, sink, options)
    with open_binary(sink, "wb") as stream:
        return tar_directory(source, stream, options, matcher=matcher)


def unarchive(destination: str | os.PathLike, source: PathOrStream) -> int:
    """
    Extract the uncompressed tar stream ``source`` below ``destination``.

    Args:
        destination: An existing directory.
        source: A readable binary stream, or the path of an archive file.

    Returns:
        The number of directories and files extracted.

    Raises:
        ArchiveRootError: If ``destination`` is not an existing directory.
        IllegalPathError: If an entry would be extracted outside ``destination``.
        ArchiveCorruptedError: If ``source`` is not a valid tar stream.
        ArchiveEOFError: If ``source`` is truncated.
    """
    check_destination_dir(destination)
    with open_binary(source, "rb") as stream:
        return untar(destination, stream)


def compress_and_archive(
    source: str | os.PathLike,
    sink: PathOrStream,
    options: TarOptions | None = None,
    **overrides: Any,
) -> int:
    """Like :func:`archive`, but gzip the tar stream at ``options.compression_level``."""
    options = resolve_options(options, **overrides)
    matcher = _prepare_path_sink(source, sink, options)
    with open_binary(sink, "wb") as stream:
        return gzip_compress(source, stream, options, matcher=matcher)


def decompress_and_unarchive(
    destination: str | os.PathLike, source: PathOrStream
) -> int:
    """Like :func:`unarchive`, for a gzip-compressed tar stream.

    Input that is not gzip raises :class:`ArchiveCorruptedError` before any
    entry is read.
    """
    with open_binary(source, "rb") as stream:
        return gzip_decompress(destination, stream)


def list_entries(source: PathOrStream) -> list[ArchiveEntry]:
    """Return the entries of the uncompressed tar stream ``source``, in order."""
    with open_binary(source, "rb") as stream:
        return list(iter_entries(stream))
