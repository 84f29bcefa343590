from __future__ import annotations

import hashlib
import io
import os
import stat
import tarfile
from typing import Iterable

from dirtar.types import MemberType
from tests.dirtar.sample_trees import FileInfo, SampleTree


def write_files_to_dir(dir: str | os.PathLike, files: list[FileInfo]) -> None:
    """Write the provided FileInfo objects to ``dir``."""
    # Directories last, so their permissions don't prevent creating their contents.
    order = [MemberType.FILE, MemberType.DIR]
    for file in sorted(files, key=lambda x: order.index(x.type)):
        full_path = os.path.join(dir, file.name)
        if file.type == MemberType.DIR:
            os.makedirs(full_path, exist_ok=True)
        else:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(file.contents or b"")

        if file.permissions is not None:
            os.chmod(full_path, file.permissions)


def create_tree(root: str | os.PathLike, sample: SampleTree) -> str:
    """Create ``sample`` below ``root`` and return its path."""
    path = os.path.join(root, sample.name)
    os.makedirs(path)
    write_files_to_dir(path, sample.files)
    if sample.gitignore is not None:
        with open(os.path.join(path, ".gitignore"), "w", encoding="utf-8") as f:
            f.write(sample.gitignore)
    return path


def hash_file_content(path: str | os.PathLike) -> str:
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(65536), b""):
            sha256.update(block)
    return sha256.hexdigest()


def snapshot_tree(
    root: str | os.PathLike, ignored: Iterable[str] = ()
) -> dict[str, tuple[MemberType, int, str | None]]:
    """Map every directory and regular file below ``root`` to (type, mode, sha256).

    Symlinks and other special files are left out, as is everything in ``ignored``.
    """
    root = os.fspath(root)
    ignored = set(ignored)
    result: dict[str, tuple[MemberType, int, str | None]] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = os.path.join(dirpath, name)
            rel_path = os.path.relpath(path, root).replace(os.sep, "/")
            if rel_path in ignored:
                continue
            st = os.lstat(path)
            mode = stat.S_IMODE(st.st_mode)
            if stat.S_ISDIR(st.st_mode):
                result[rel_path] = (MemberType.DIR, mode, None)
            elif stat.S_ISREG(st.st_mode):
                result[rel_path] = (MemberType.FILE, mode, hash_file_content(path))
    return result


def assert_trees_equal(
    source: str | os.PathLike,
    extracted: str | os.PathLike,
    num_entries: int | None = None,
    ignored: Iterable[str] = (),
) -> None:
    expected = snapshot_tree(source, ignored)
    actual = snapshot_tree(extracted)
    assert actual == expected
    if num_entries is not None:
        assert len(actual) == num_entries


def make_tar(*members: tuple[tarfile.TarInfo, bytes | None]) -> bytes:
    """Build an uncompressed tar archive from (header, payload) pairs."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.PAX_FORMAT) as tf:
        for tarinfo, data in members:
            if data is None:
                tf.addfile(tarinfo)
            else:
                tarinfo.size = len(data)
                tf.addfile(tarinfo, io.BytesIO(data))
    return buf.getvalue()


def file_member(name: str, data: bytes, mode: int = 0o644) -> tuple[tarfile.TarInfo, bytes]:
    tarinfo = tarfile.TarInfo(name)
    tarinfo.type = tarfile.REGTYPE
    tarinfo.mode = mode
    return tarinfo, data


def dir_member(name: str, mode: int = 0o755) -> tuple[tarfile.TarInfo, None]:
    tarinfo = tarfile.TarInfo(name)
    tarinfo.type = tarfile.DIRTYPE
    tarinfo.mode = mode
    return tarinfo, None


def link_member(
    name: str, target: str, type: bytes = tarfile.SYMTYPE
) -> tuple[tarfile.TarInfo, None]:
    tarinfo = tarfile.TarInfo(name)
    tarinfo.type = type
    tarinfo.linkname = target
    return tarinfo, None
