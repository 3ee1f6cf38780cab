import os

import pytest

# Default to the memory backend so importing the app never touches the filesystem
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from src.tasktracker.db import SQLiteRepository  # noqa: E402
from src.tasktracker.repositories import InMemoryRepository  # noqa: E402


@pytest.fixture
def memory_repo():
    return InMemoryRepository()


@pytest.fixture
def sqlite_repo(tmp_path):
    return SQLiteRepository(str(tmp_path / "tasks.db"))


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    """Every Repository implementation, for contract tests."""
    if request.param == "sqlite":
        return SQLiteRepository(str(tmp_path / "tasks.db"))
    return InMemoryRepository()
