import logging
import os
import pathlib

import pytest

from tests.dirtar.sample_trees import SampleTree
from tests.dirtar.testing_utils import create_tree

logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def fixed_umask():
    """Extracted permissions go through the umask; pin it so modes compare equal."""
    old = os.umask(0o022)
    try:
        yield
    finally:
        os.umask(old)


@pytest.fixture
def sample_tree_path(
    sample_tree: SampleTree, tmp_path_factory: pytest.TempPathFactory
) -> str:
    """Return the path of a freshly created copy of ``sample_tree``."""
    root = tmp_path_factory.mktemp("source")
    path = create_tree(root, sample_tree)
    logger.info(f"Created sample tree {sample_tree.name} at {path}")
    return path


@pytest.fixture
def dest_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    dest = tmp_path / "dest"
    dest.mkdir()
    return dest
