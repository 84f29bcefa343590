"""Ignore rules applied while archiving a tree.

The writer only depends on :class:`IgnoreMatcher`; pattern parsing and
negation precedence are delegated to :mod:`pathspec`.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Iterable, Protocol

import pathspec

if TYPE_CHECKING:
    from dirtar.config import TarOptions

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".gitignore"
VCS_DIR_NAME = ".git"

# Implicit rules added on top of the pattern file.
DOT_GIT_RULE = f"**/{VCS_DIR_NAME}"
IGNORE_FILE_RULE = f"/{IGNORE_FILE_NAME}"


class IgnoreMatcher(Protocol):
    def matches(self, relative_path: str) -> bool:
        """Return True if ``relative_path`` should be left out of the archive.

        Paths use forward slashes; directories are passed with a trailing ``/``.
        """
        ...


class GitIgnoreMatcher:
    """Matches paths against gitignore-style patterns."""

    def __init__(self, lines: Iterable[str]):
        self.lines = list(lines)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.lines)

    @classmethod
    def from_file(cls, path: str, *extra_lines: str) -> GitIgnoreMatcher:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
        logger.debug(f"Loaded {len(lines)} ignore patterns from {path}")
        return cls([*lines, *extra_lines])

    def matches(self, relative_path: str) -> bool:
        return self._spec.match_file(relative_path)

    def __repr__(self) -> str:
        return f"GitIgnoreMatcher({self.lines!r})"


def build_ignore_matcher(options: TarOptions, abs_source: str) -> IgnoreMatcher | None:
    """Compile the ignore rules for one archiving run, or None if there are none.

    Raises:
        FileNotFoundError: if ``honor_gitignore`` is set and the root has no
            pattern file.
    """
    if options.honor_gitignore:
        ignore_file = os.path.join(abs_source, IGNORE_FILE_NAME)
        extra = [IGNORE_FILE_RULE]
        if options.ignore_dot_git:
            extra.append(DOT_GIT_RULE)
        return GitIgnoreMatcher.from_file(ignore_file, *extra)

    if options.ignore_dot_git:
        return GitIgnoreMatcher([DOT_GIT_RULE])

    return None
