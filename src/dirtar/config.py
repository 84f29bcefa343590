from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any

from dirtar.types import CompressionLevel, LevelLike, normalize_compression_level


@dataclass(frozen=True)
class TarOptions:
    """Options for :func:`dirtar.archive` and :func:`dirtar.compress_and_archive`."""

    # Load the .gitignore at the root of the tree and skip the paths it matches.
    # Only that one file is read; nested .gitignore files are archived as data.
    honor_gitignore: bool = False

    # Never archive .git directories, at any depth.
    ignore_dot_git: bool = False

    # Forwarded to the gzip filter; the tar writer itself ignores it.
    compression_level: LevelLike = CompressionLevel.DEFAULT_COMPRESSION

    # Sort each directory listing by name, so the same tree always produces
    # the same sequence of entries.
    sort_entries: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "compression_level",
            normalize_compression_level(self.compression_level),
        )

    @classmethod
    def git_repo(cls, **kwargs: Any) -> TarOptions:
        """Shorthand for ``honor_gitignore=True, ignore_dot_git=True``."""
        return cls(honor_gitignore=True, ignore_dot_git=True, **kwargs)

    def replace(self, **kwargs: Any) -> TarOptions:
        return replace(self, **kwargs)


_default_options_var: contextvars.ContextVar[TarOptions] = contextvars.ContextVar(
    "dirtar_default_options", default=TarOptions()
)


def get_default_options() -> TarOptions:
    """Return the current default options."""
    return _default_options_var.get()


def set_default_options(options: TarOptions) -> None:
    """Set the default options used when a call passes none."""
    _default_options_var.set(options)


@contextmanager
def default_options(options: TarOptions | None = None, **kwargs: Any):
    """Temporarily use ``options`` as the default options."""
    if options is None:
        options = get_default_options()

    if kwargs:
        options = replace(options, **kwargs)

    token = _default_options_var.set(options)
    try:
        yield options
    finally:
        _default_options_var.reset(token)


def resolve_options(options: TarOptions | None, **overrides: Any) -> TarOptions:
    """Return ``options`` (or the current default) with ``overrides`` applied."""
    if options is None:
        options = get_default_options()
    if overrides:
        options = replace(options, **overrides)
    return options
