"""Provides I/O helper classes, including exception translation."""

from __future__ import annotations

import io
import logging
import os
import zlib
from contextlib import contextmanager
from typing import IO, Any, BinaryIO, Callable, Iterator, Optional, Union, cast

from dirtar.exceptions import ArchiveError

logger = logging.getLogger(__name__)

# gzip.BadGzipFile is an OSError subclass.
_CAUGHT_EXCEPTIONS = (OSError, EOFError, zlib.error)

PathOrStream = Union[str, bytes, os.PathLike, BinaryIO]


class ExceptionTranslatingIO(io.RawIOBase, BinaryIO):
    """
    Wraps an I/O stream to translate specific exceptions from an underlying library
    into ArchiveError subclasses.

    Exceptions the translator does not recognize (for example a plain disk read
    error) are re-raised unchanged.
    """

    def __init__(
        self,
        inner: io.IOBase | IO[bytes] | Callable[[], io.IOBase | IO[bytes]],
        exception_translator: Callable[[Exception], Optional[ArchiveError]],
    ):
        """
        Initialize the ExceptionTranslatingIO wrapper.

        Args:
            inner: The underlying binary I/O stream, or a callable that returns
                one. Exceptions raised by the callable are translated too, which
                allows a format to be validated as soon as it is opened.
            exception_translator: A callable that takes an Exception raised by
                `inner` and returns an ArchiveError to raise instead, or None to
                re-raise the original exception.
        """
        super().__init__()
        self._translate = exception_translator
        self._inner: io.IOBase | IO[bytes] | None = None

        if callable(inner):
            try:
                self._inner = inner()
            except _CAUGHT_EXCEPTIONS as e:
                self._translate_exception(e)
        else:
            self._inner = inner

    def _translate_exception(self, e: Exception) -> None:
        translated = self._translate(e)
        if translated is not None:
            logger.debug(f"Translated exception: {repr(e)} -> {repr(translated)}")
            raise translated from e
        raise e

    def read(self, n: int = -1) -> bytes:
        assert self._inner is not None
        try:
            return self._inner.read(n)
        except _CAUGHT_EXCEPTIONS as e:
            self._translate_exception(e)
            return b""  # pragma: no cover - unreachable, _translate_exception always raises

    def readable(self) -> bool:
        assert self._inner is not None
        return self._inner.readable()

    def writable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def close(self) -> None:
        try:
            if self._inner is not None:
                self._inner.close()
        except _CAUGHT_EXCEPTIONS as e:
            self._translate_exception(cast(Exception, e))
        super().close()

    def __repr__(self) -> str:
        return f"ExceptionTranslatingIO({self._inner!r})"


def is_path(obj: Any) -> bool:
    return isinstance(obj, (str, bytes, os.PathLike))


@contextmanager
def open_binary(path_or_stream: PathOrStream, mode: str) -> Iterator[BinaryIO]:
    """Yield ``path_or_stream`` as a binary stream.

    Paths are opened with ``mode`` and closed on exit; streams are yielded as-is
    and left open, as they belong to the caller.
    """
    if is_path(path_or_stream):
        with open(cast(Any, path_or_stream), mode) as f:
            yield cast(BinaryIO, f)
        return

    if not callable(getattr(path_or_stream, "read" if "r" in mode else "write", None)):
        raise TypeError(f"Invalid path or stream type: {type(path_or_stream)}")
    yield cast(BinaryIO, path_or_stream)
