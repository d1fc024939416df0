"""Store provider protocols: the contract every persistence backend satisfies.

Application code programs against these protocols. A backend implements
only the capabilities it has: anything that persists data provides the
``StoreProvider`` lifecycle, and relational engines additionally provide
``RelationalStoreProvider``. Backends that subclass ``StoreProvider`` and need
no lifecycle inherit its no-op ``open``/``close``.

Usage is always balanced::

    store.open("app.db", create_if_needed=True)
    ...  # one or more queries, updates or transactions
    store.close()
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from persistkit.models.error import ErrorRecord
from persistkit.models.value import SQLValue

SequenceRow = list[SQLValue]
MappingRow = dict[str, SQLValue]
RowCallback = Callable[[int, MappingRow], None]
Params = Sequence[object]


@runtime_checkable
class StoreProvider(Protocol):
    """Minimal lifecycle of a persistence backend."""

    def open(self, name_or_path: str, create_if_needed: bool = True) -> None:
        """Open (or create) the backing store and get ready to serve calls.

        Calls must be balanced with ``close()``; opening twice without
        closing is the caller's mistake. The default does nothing.
        """
        return None

    def close(self) -> None:
        """Release the backing store. The default does nothing."""
        return None


@runtime_checkable
class RelationalStoreProvider(StoreProvider, Protocol):
    """Store provider backed by a relational engine.

    SQL is passed as raw text with positional ``?`` placeholders; the i-th
    element of ``params`` binds to placeholder i + 1. Failures are reported
    by return value, with details in ``last_error`` until the next call.
    """

    @property
    def last_error(self) -> ErrorRecord | None:
        """The most recent failure, or None."""
        ...

    def execute_query(self, sql: str, params: Params = ()) -> bool:
        """Prepare and bind a data-retrieval statement.

        On success, iterate rows with ``next_row_as_sequence`` or
        ``next_row_as_mapping`` until they return None.
        """
        ...

    def execute_update(self, sql: str, params: Params = ()) -> bool:
        """Run a data-modification statement to completion."""
        ...

    def next_row_as_sequence(self) -> SequenceRow | None:
        """Next row of the current result set, columns in SELECT order."""
        ...

    def next_row_as_mapping(self) -> MappingRow | None:
        """Next row of the current result set, keyed by column name."""
        ...

    def get_result_set(self, sql: str, params: Params = ()) -> list[SequenceRow] | None:
        """Run a query and return every row, or None if it could not run."""
        ...

    def execute_transaction(
        self,
        script: str,
        param_sets: Sequence[Params | None] | None = None,
        on_row: RowCallback | None = None,
    ) -> bool:
        """Run a newline-separated script statement by statement.

        ``param_sets[i]`` binds to statement i. For each row produced by a
        SELECT statement, ``on_row(i, row)`` is called.
        """
        ...

    def column_count(self) -> int:
        """Number of columns of the most recently executed query."""
        ...

    def column_names(self) -> list[str]:
        """Column names of the most recently executed query."""
        ...

    def last_insert_rowid(self) -> int:
        """Rowid of the most recent successful INSERT on this store."""
        ...
