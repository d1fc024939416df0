"""Store provider contracts and the SQLite implementation."""

from persistkit.db.backend import (
    MappingRow,
    RelationalStoreProvider,
    RowCallback,
    SequenceRow,
    StoreProvider,
)
from persistkit.db.connection import open_store
from persistkit.db.sqlite_backend import SQLiteBackend
from persistkit.db.statement import Statement, StepResult

__all__ = [
    "MappingRow",
    "RelationalStoreProvider",
    "RowCallback",
    "SQLiteBackend",
    "SequenceRow",
    "Statement",
    "StepResult",
    "StoreProvider",
    "open_store",
]
