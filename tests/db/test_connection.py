"""Tests for store creation from configuration."""

from persistkit.db.connection import open_store
from persistkit.models.error import ErrorKind


def test_open_in_memory_store():
    store = open_store(":memory:")
    try:
        assert store.is_open
        assert store.execute_update("CREATE TABLE t (a)")
    finally:
        store.close()


def test_creates_parent_directories(tmp_path):
    path = tmp_path / "nested" / "dir" / "store.db"
    store = open_store(path)
    try:
        assert store.is_open
    finally:
        store.close()
    assert path.exists()


def test_default_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env" / "store.db"
    monkeypatch.setenv("PERSISTKIT_DB_PATH", str(path))
    store = open_store()
    store.close()
    assert path.exists()


def test_missing_store_without_create(tmp_path):
    path = tmp_path / "absent" / "store.db"
    store = open_store(path, create_if_needed=False)
    assert not store.is_open
    assert store.last_error is not None
    assert store.last_error.kind is ErrorKind.OPEN
    assert not path.parent.exists()
