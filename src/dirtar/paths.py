from __future__ import annotations

import os

from dirtar.exceptions import IllegalPathError


def is_within_root(root: str, path: str) -> bool:
    """Return True if the absolute ``path`` is ``root`` or lies beneath it.

    Both paths must already be absolute and normalized. Unlike a plain prefix
    test, ``/dest-evil`` is not considered to be inside ``/dest``.
    """
    try:
        return os.path.commonpath([root, path]) == root
    except ValueError:
        # Different drives on Windows.
        return False


def archive_name(abs_root: str, abs_path: str) -> str:
    """Return the archive name of ``abs_path``, relative to ``abs_root``."""
    if not is_within_root(abs_root, abs_path):
        raise IllegalPathError(f"Illegal file path: [{abs_path}]")
    try:
        rel_path = os.path.relpath(abs_path, abs_root)
    except ValueError as e:
        raise IllegalPathError(f"Illegal file path: [{abs_path}]") from e
    return rel_path.replace(os.sep, "/")


def extraction_target(abs_root: str, name: str) -> str:
    """Return where the entry called ``name`` is extracted to under ``abs_root``.

    Absolute names and ``..`` segments that lead outside the root raise
    :class:`IllegalPathError`.
    """
    target = os.path.normpath(os.path.join(abs_root, name))
    if not is_within_root(abs_root, target):
        raise IllegalPathError(f"Illegal file path: [{target}]")
    return target


def check_resolved_target(real_root: str, target: str) -> None:
    """Reject ``target`` if following existing symlinks leads outside ``real_root``.

    ``real_root`` must be the ``os.path.realpath()`` of the destination.
    """
    real_target = os.path.realpath(target)
    if not is_within_root(real_root, real_target):
        raise IllegalPathError(
            f"Illegal file path: [{target}] resolves to [{real_target}]"
        )
