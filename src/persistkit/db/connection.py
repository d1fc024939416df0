"""Store creation from configuration."""

import logging
from pathlib import Path

from persistkit.config import get_db_path
from persistkit.db.sqlite_backend import MEMORY_STORE, SQLiteBackend

logger = logging.getLogger(__name__)


def open_store(
    db_path: Path | str | None = None, *, create_if_needed: bool = True
) -> SQLiteBackend:
    """Create and open a SQLite store.

    Falls back to PERSISTKIT_DB_PATH when no path is given. For an in-memory
    store, pass ":memory:". The store is returned even if opening failed;
    check ``is_open`` or ``last_error``.
    """
    db_path = str(db_path or get_db_path())

    if db_path != MEMORY_STORE and create_if_needed:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    store = SQLiteBackend()
    store.open(db_path, create_if_needed=create_if_needed)
    if not store.is_open:
        logger.error("Could not open store at %s: %s", db_path, store.last_error)
    return store
