from __future__ import annotations

import gzip
import io
import logging
import os
import zlib
from typing import BinaryIO

from dirtar.config import TarOptions, get_default_options
from dirtar.exceptions import ArchiveCorruptedError, ArchiveEOFError, ArchiveError
from dirtar.ignore import IgnoreMatcher, build_ignore_matcher
from dirtar.io_helpers import ExceptionTranslatingIO
from dirtar.reader import untar
from dirtar.types import CompressionLevel, LevelLike, normalize_compression_level
from dirtar.writer import check_source_dir, tar_directory

logger = logging.getLogger(__name__)


def _zlib_parameters(level: LevelLike) -> tuple[int, int]:
    level = normalize_compression_level(level)
    if level == CompressionLevel.HUFFMAN_ONLY:
        return zlib.Z_DEFAULT_COMPRESSION, zlib.Z_HUFFMAN_ONLY
    return int(level), zlib.Z_DEFAULT_STRATEGY


class GzipStreamWriter(io.RawIOBase, BinaryIO):
    """
    A write-only stream that gzip-compresses everything written to it into ``sink``.

    Unlike :class:`gzip.GzipFile`, any :class:`CompressionLevel` can be used,
    including ``HUFFMAN_ONLY``. Closing the writer finishes the gzip member but
    leaves ``sink`` open. When used as a context manager and the block raises,
    the gzip trailer is not written.
    """

    def __init__(
        self,
        sink: BinaryIO,
        level: LevelLike = CompressionLevel.DEFAULT_COMPRESSION,
    ):
        super().__init__()
        self._sink = sink
        self._compressor = None
        zlib_level, strategy = _zlib_parameters(level)
        self.level = normalize_compression_level(level)
        # wbits=16+MAX_WBITS makes zlib emit a gzip header and trailer.
        self._compressor = zlib.compressobj(
            zlib_level, zlib.DEFLATED, 16 + zlib.MAX_WBITS, zlib.DEF_MEM_LEVEL, strategy
        )

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        assert self._compressor is not None
        data = self._compressor.compress(b)
        if data:
            self._sink.write(data)
        return len(b)

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._compressor is not None:
                self._sink.write(self._compressor.flush(zlib.Z_FINISH))
                self._compressor = None
                if hasattr(self._sink, "flush"):
                    self._sink.flush()
        finally:
            super().close()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            # Leave the output truncated rather than finishing it.
            self._compressor = None
        self.close()


def _translate_gzip_exception(e: Exception) -> ArchiveError | None:
    if isinstance(e, gzip.BadGzipFile):
        return ArchiveCorruptedError(f"Error reading GZIP stream: {repr(e)}")
    elif isinstance(e, zlib.error):
        return ArchiveCorruptedError(f"Error decompressing GZIP stream: {repr(e)}")
    elif isinstance(e, EOFError):
        return ArchiveEOFError(f"GZIP stream is truncated: {repr(e)}")
    return None


def open_gzip_stream(source: BinaryIO) -> BinaryIO:
    """Return a stream that decompresses the gzip data read from ``source``.

    The gzip header is read and checked immediately, so input that is not gzip
    raises :class:`ArchiveCorruptedError` here rather than on the first read.
    Closing the returned stream leaves ``source`` open.
    """

    def _open() -> gzip.GzipFile:
        gz = gzip.GzipFile(fileobj=source, mode="rb")
        gz.peek(1)
        return gz

    return ExceptionTranslatingIO(_open, _translate_gzip_exception)


def gzip_compress(
    source: str | os.PathLike,
    sink: BinaryIO,
    options: TarOptions | None = None,
    *,
    matcher: IgnoreMatcher | None = None,
) -> int:
    """Archive ``source`` like :func:`tar_directory` and gzip the result into ``sink``.

    The level is taken from ``options.compression_level``. Returns the number of
    entries written.
    """
    if options is None:
        options = get_default_options()

    # Fail before the gzip header is written.
    abs_source = check_source_dir(source)
    if matcher is None:
        matcher = build_ignore_matcher(options, abs_source)

    with GzipStreamWriter(sink, options.compression_level) as compressor:
        count = tar_directory(source, compressor, options, matcher=matcher)
    logger.debug(f"Compressed {count} entries at level {options.compression_level!r}")
    return count


def gzip_decompress(destination: str | os.PathLike, source: BinaryIO) -> int:
    """Decompress the gzip stream ``source`` and extract it like :func:`untar`."""
    with open_gzip_stream(source) as stream:
        return untar(destination, stream)
