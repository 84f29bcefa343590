import logging
import sys

import pytest

logger = logging.getLogger(__name__)


def pytest_configure(config):
    # pytest's tmp_path cleanup (shutil.rmtree) recurses once per directory level;
    # test_very_deep_tree builds a tree deeper than the default recursion limit.
    sys.setrecursionlimit(max(sys.getrecursionlimit(), 10000))


@pytest.fixture(autouse=True, scope="session")
def print_dependency_versions_on_failure():
    yield
    from importlib.metadata import PackageNotFoundError, version

    versions = {}
    for package in ["pathspec", "pytest"]:
        try:
            versions[package] = version(package)
        except PackageNotFoundError:
            versions[package] = "not installed"
    logger.warning(
        "\n"
        + "=" * 30
        + " Dependency Versions "
        + "=" * 30
        + "\n"
        + "\n".join(f"{k}: {v}" for k, v in versions.items())
        + "\n"
        + "=" * 80
    )
