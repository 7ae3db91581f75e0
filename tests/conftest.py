"""
Shared pytest fixtures for content-history tests.
"""

import shutil
from pathlib import Path

import pytest

from tests.fixtures import GitRepositoryBuilder, InMemoryRepository


def pytest_collection_modifyitems(config, items):
    """Skip tests marked ``requires_git`` when no git binary is installed."""
    if shutil.which("git"):
        return
    skip_git = pytest.mark.skip(reason="git executable not available")
    for item in items:
        if "requires_git" in item.keywords:
            item.add_marker(skip_git)


@pytest.fixture
def memory_repo() -> InMemoryRepository:
    """Empty in-memory commit graph."""
    return InMemoryRepository()


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepositoryBuilder:
    """Freshly initialized work-tree repository on branch ``main``."""
    return GitRepositoryBuilder(tmp_path / "repo").init()
