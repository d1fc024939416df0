"""Pluggable persistence providers with a SQLite implementation."""

from persistkit.db import RelationalStoreProvider, SQLiteBackend, StoreProvider, open_store
from persistkit.models import ErrorKind, ErrorRecord, Value, ValueKind

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "ErrorRecord",
    "RelationalStoreProvider",
    "SQLiteBackend",
    "StoreProvider",
    "Value",
    "ValueKind",
    "open_store",
]
