import io
import os
import sys
from pathlib import Path

import pytest

from dirtar import IllegalPathError, unarchive
from dirtar.paths import archive_name, extraction_target, is_within_root
from tests.dirtar.testing_utils import dir_member, file_member, make_tar


@pytest.fixture
def dest(tmp_path: Path) -> Path:
    dest = tmp_path / "dest"
    dest.mkdir()
    return dest


@pytest.mark.parametrize(
    "name",
    [
        "../evil.txt",
        "a/../../evil.txt",
        "./../evil.txt",
        "../dest-evil/evil.txt",
    ],
)
def test_parent_segments_rejected(tmp_path: Path, dest: Path, name: str):
    """An entry whose name leads outside the destination aborts the extraction."""
    # Make the sibling directory exist so a prefix-only check would let it through.
    (tmp_path / "dest-evil").mkdir()
    data = make_tar(file_member(name, b"evil"))

    with pytest.raises(IllegalPathError, match="Illegal file path"):
        unarchive(dest, io.BytesIO(data))

    assert not (tmp_path / "evil.txt").exists()
    assert not (tmp_path / "dest-evil" / "evil.txt").exists()
    assert os.listdir(dest) == []


def test_absolute_name_rejected(tmp_path: Path, dest: Path):
    target = tmp_path / "absolute_evil.txt"
    data = make_tar(file_member(str(target), b"evil"))

    with pytest.raises(IllegalPathError):
        unarchive(dest, io.BytesIO(data))
    assert not target.exists()


def test_directory_entry_outside_rejected(tmp_path: Path, dest: Path):
    data = make_tar(dir_member("../evil_dir"))

    with pytest.raises(IllegalPathError):
        unarchive(dest, io.BytesIO(data))
    assert not (tmp_path / "evil_dir").exists()


def test_entries_before_bad_entry_are_kept(tmp_path: Path, dest: Path):
    data = make_tar(
        file_member("ok.txt", b"fine"),
        file_member("../evil.txt", b"evil"),
        file_member("never.txt", b"not reached"),
    )

    with pytest.raises(IllegalPathError):
        unarchive(dest, io.BytesIO(data))

    assert (dest / "ok.txt").read_bytes() == b"fine"
    assert not (dest / "never.txt").exists()
    assert not (tmp_path / "evil.txt").exists()


def test_dotdot_inside_destination_allowed(dest: Path):
    data = make_tar(file_member("a/../b.txt", b"fine"))
    unarchive(dest, io.BytesIO(data))
    assert (dest / "b.txt").read_bytes() == b"fine"


@pytest.mark.skipif(sys.platform == "win32", reason="Symlinks need special privileges on Windows")
def test_existing_symlink_to_outside_rejected(tmp_path: Path, dest: Path):
    outside = tmp_path / "outside"
    outside.mkdir()
    os.symlink(outside, dest / "link", target_is_directory=True)
    data = make_tar(file_member("link/evil.txt", b"evil"))

    with pytest.raises(IllegalPathError, match="resolves to"):
        unarchive(dest, io.BytesIO(data))
    assert not (outside / "evil.txt").exists()


@pytest.mark.skipif(sys.platform == "win32", reason="Symlinks need special privileges on Windows")
def test_destination_behind_symlink(tmp_path: Path):
    real_dest = tmp_path / "real_dest"
    real_dest.mkdir()
    link = tmp_path / "dest_link"
    os.symlink(real_dest, link, target_is_directory=True)

    unarchive(link, io.BytesIO(make_tar(file_member("f.txt", b"data"))))
    assert (real_dest / "f.txt").read_bytes() == b"data"


class TestPathHelpers:
    def test_is_within_root(self, tmp_path: Path):
        root = str(tmp_path / "root")
        assert is_within_root(root, root)
        assert is_within_root(root, os.path.join(root, "a", "b"))
        assert not is_within_root(root, str(tmp_path / "root-sibling"))
        assert not is_within_root(root, str(tmp_path))

    def test_extraction_target(self, tmp_path: Path):
        root = str(tmp_path)
        assert extraction_target(root, "a/b.txt") == os.path.join(root, "a", "b.txt")
        assert extraction_target(root, "a/./c/../b.txt") == os.path.join(root, "a", "b.txt")
        with pytest.raises(IllegalPathError):
            extraction_target(root, "../x")

    def test_archive_name(self, tmp_path: Path):
        root = str(tmp_path)
        assert archive_name(root, os.path.join(root, "a", "b.txt")) == "a/b.txt"
        with pytest.raises(IllegalPathError):
            archive_name(root, os.path.dirname(root))
