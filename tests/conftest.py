"""Shared test fixtures."""

import pytest

from persistkit.db.sqlite_backend import SQLiteBackend


@pytest.fixture
def store():
    """In-memory store, closed after the test."""
    backend = SQLiteBackend()
    backend.open(":memory:")
    assert backend.is_open, backend.last_error
    yield backend
    backend.close()


@pytest.fixture
def people(store):
    """Store with a ``people`` table holding three rows; Linus has no age."""
    assert store.execute_update(
        "CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT, age INTEGER, photo BLOB)"
    )
    for name, age in [("Ada", 36), ("Grace", 85), ("Linus", None)]:
        assert store.execute_update("INSERT INTO people (name, age) VALUES (?, ?)", [name, age])
    return store


class MemoryStore:
    """Lifecycle-only store provider for protocol tests."""

    def __init__(self):
        self.opened: str | None = None

    def open(self, name_or_path: str, create_if_needed: bool = True) -> None:
        self.opened = name_or_path

    def close(self) -> None:
        self.opened = None
