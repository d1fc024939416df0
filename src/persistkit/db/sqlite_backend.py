"""SQLite implementation of the RelationalStoreProvider protocol.

Drives the engine one prepared statement at a time: every query or update
prepares, binds and runs a ``Statement``; queries then expose the rows
through a cursor that is advanced by the ``next_row_*`` methods. Only one
statement is live at a time, so starting a new one silently discards what
is left of the previous result set.

Failures never raise out of this class. Each operation returns False (or
None) and leaves an ``ErrorRecord`` in ``last_error`` until the next call
overwrites it.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from types import TracebackType

from persistkit.config import foreign_keys_enabled, get_busy_timeout
from persistkit.db.backend import (
    MappingRow,
    Params,
    RelationalStoreProvider,
    RowCallback,
    SequenceRow,
)
from persistkit.db.statement import Statement, StepResult
from persistkit.models.error import (
    SQLITE_ERROR,
    SQLITE_MISMATCH,
    SQLITE_MISUSE,
    SQLITE_RANGE,
    ErrorKind,
    ErrorRecord,
)
from persistkit.models.value import Value, ValueKind

logger = logging.getLogger(__name__)

MEMORY_STORE = ":memory:"
SAVEPOINT_NAME = "persistkit_transaction"

# Sequence rows show NULL columns as this placeholder; mapping rows omit them.
NULL_PLACEHOLDER = ""


def _native_code(exc: BaseException, default: int = SQLITE_ERROR) -> int:
    """SQLite result code carried by an engine exception, if any."""
    code = getattr(exc, "sqlite_errorcode", None)
    return code if isinstance(code, int) else default


def _decode_text(raw: bytes) -> str:
    return raw.decode("utf-8", "replace")


def _split_script(script: str) -> list[str]:
    """One statement per non-blank line, surrounding whitespace removed."""
    return [line.strip() for line in script.split("\n") if line.strip()]


def _is_select(sql: str) -> bool:
    # Literal prefix check; a statement starting with WITH counts as an update.
    return sql.startswith("SELECT")


class SQLiteBackend(RelationalStoreProvider):
    """Relational store backed by an embedded SQLite database.

    Single-threaded: the connection keeps sqlite3's same-thread check, and
    callers sharing one instance across threads must lock around it.
    """

    def __init__(self) -> None:
        """Create a closed store. Call ``open()`` before anything else."""
        self._conn: sqlite3.Connection | None = None
        self._statement: Statement | None = None
        self._column_count = 0
        self._column_names: list[str] = []
        self._error: ErrorRecord | None = None

    def __enter__(self) -> SQLiteBackend:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Error record --

    @property
    def last_error(self) -> ErrorRecord | None:
        """The most recent failure, or None."""
        return self._error

    def _fail(
        self, kind: ErrorKind, code: int, message: str, sql: str | None = None
    ) -> None:
        self._error = ErrorRecord(kind=kind, code=code, message=message, sql=sql)
        logger.warning("%s", self._error)

    # -- Lifecycle --

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """True when the engine is not in autocommit mode."""
        return self._conn is not None and self._conn.in_transaction

    def open(self, name_or_path: str, create_if_needed: bool = True) -> None:
        """Open the database at ``name_or_path`` (or ``":memory:"``).

        With ``create_if_needed=False`` a missing file is an open error
        rather than being created. Check ``is_open`` or ``last_error``
        afterwards.
        """
        if self._conn is not None:
            logger.warning("open() called on an open store; closing the previous handle")
            self.close()
        self._error = None

        conn: sqlite3.Connection | None = None
        try:
            target, uri = self._open_target(str(name_or_path), create_if_needed)
            conn = sqlite3.connect(
                target, timeout=get_busy_timeout(), isolation_level=None, uri=uri
            )
            # Malformed UTF-8 in a TEXT column is repaired, not a step failure.
            conn.text_factory = _decode_text
            if foreign_keys_enabled():
                conn.execute("PRAGMA foreign_keys=ON")
        except (sqlite3.Error, ValueError) as exc:
            # ValueError: a path with an embedded NUL. Never keep a half-open handle.
            if conn is not None:
                conn.close()
            self._fail(ErrorKind.OPEN, _native_code(exc), str(exc))
            return

        self._conn = conn
        logger.info("Opened store %s", name_or_path)

    @staticmethod
    def _open_target(name_or_path: str, create_if_needed: bool) -> tuple[str, bool]:
        if name_or_path in ("", MEMORY_STORE) or create_if_needed:
            return name_or_path or MEMORY_STORE, False
        return f"{Path(name_or_path).resolve().as_uri()}?mode=rw", True

    def close(self) -> None:
        """Finalize any live statement and release the database handle."""
        self._clear_state()
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            conn.close()
        except sqlite3.Error as exc:
            self._fail(ErrorKind.CLOSE, _native_code(exc), str(exc))
            return
        logger.info("Closed store")

    def _clear_state(self) -> None:
        """Finalize the live statement and forget its column metadata."""
        self._column_count = 0
        self._column_names = []
        if self._statement is not None:
            self._statement.finalize()
            self._statement = None

    # -- Statement lifecycle --

    def _prepare_and_bind(self, sql: str, params: Params) -> Statement | None:
        """Steps shared by queries and updates: prepare, check count, bind.

        Returns the statement on success. On a bind failure the statement is
        left live; it is reclaimed by the next prepare or by ``close()``.
        """
        params = params or ()
        self._error = None
        if self._statement is not None:
            # Reclaim a result set that was not iterated to the end.
            self._clear_state()

        if self._conn is None:
            self._fail(ErrorKind.PREPARE, SQLITE_MISUSE, "store is not open", sql)
            return None

        try:
            statement = Statement.prepare(self._conn, sql)
        except sqlite3.Error as exc:
            self._fail(ErrorKind.PREPARE, _native_code(exc), str(exc), sql)
            return None
        self._statement = statement

        if statement.parameter_count != len(params):
            self._fail(
                ErrorKind.BIND,
                SQLITE_RANGE,
                f"statement expects {statement.parameter_count} parameter(s),"
                f" {len(params)} supplied",
                sql,
            )
            return None

        for index, param in enumerate(params, start=1):
            try:
                statement.bind(index, Value.coerce(param))
            except (TypeError, ValueError) as exc:
                self._fail(
                    ErrorKind.BIND,
                    SQLITE_MISMATCH,
                    f"cannot bind parameter {index}: {exc}",
                    sql,
                )
                return None
        return statement

    def execute_query(self, sql: str, params: Params = ()) -> bool:
        """Prepare, bind and start a data-retrieval statement.

        On success the rows are read with ``next_row_as_sequence`` or
        ``next_row_as_mapping``; ``column_count`` and ``column_names``
        describe them.

        The engine takes the first step here, so text that is not a SELECT
        (an INSERT, say) has already taken effect when this returns, whether
        or not the rows are ever read.
        """
        statement = self._prepare_and_bind(sql, params)
        if statement is None:
            return False

        try:
            statement.execute()
        except sqlite3.Error as exc:
            self._clear_state()
            self._fail(ErrorKind.PREPARE, _native_code(exc), str(exc), sql)
            return False

        self._column_count = statement.column_count
        self._column_names = [statement.column_name(i) for i in range(self._column_count)]
        return True

    def execute_update(self, sql: str, params: Params = ()) -> bool:
        """Run a data-modification statement to completion.

        In autocommit mode a failed statement is rolled back by the engine
        and any failure, bind failures included, is tagged as a prepare
        error. Inside an explicit transaction the whole transaction is rolled
        back here and the error is tagged as a transaction error. The native
        code is kept either way.
        """
        statement = self._prepare_and_bind(sql, params)
        if statement is not None:
            try:
                result = statement.step()
            except sqlite3.Error as exc:
                self._fail(ErrorKind.PREPARE, _native_code(exc), str(exc), sql)
            else:
                if result is StepResult.DONE:
                    self._clear_state()
                    return True
                self._fail(
                    ErrorKind.PREPARE,
                    SQLITE_MISUSE,
                    "statement returned rows; use execute_query",
                    sql,
                )
            self._clear_state()

        kind = ErrorKind.PREPARE
        if self.in_transaction:
            self._rollback()
            kind = ErrorKind.TRANSACTION
        if self._error is not None and self._error.kind is not kind:
            self._error = self._error.model_copy(update={"kind": kind})
        return False

    def _rollback(self) -> None:
        assert self._conn is not None
        logger.warning("Rolling back the open transaction")
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            logger.warning("Rollback failed: %s", exc)

    # -- Row retrieval --

    def _advance(self) -> bool:
        """Step the live statement; True when a row is available.

        Any other outcome finalizes the statement. A clean end of results
        clears ``last_error``; an engine failure records a step error.
        """
        statement = self._statement
        if statement is None:
            return False
        try:
            result = statement.step()
        except sqlite3.Error as exc:
            self._clear_state()
            self._fail(ErrorKind.STEP, _native_code(exc), str(exc), statement.sql)
            return False
        if result is StepResult.ROW:
            return True
        self._clear_state()
        self._error = None
        return False

    def next_row_as_sequence(self) -> SequenceRow | None:
        """Next row as a list, NULL columns shown as an empty string."""
        if not self._advance():
            return None
        assert self._statement is not None
        row: SequenceRow = []
        for i in range(self._column_count):
            if self._statement.column_type(i) is ValueKind.NULL:
                row.append(NULL_PLACEHOLDER)
            else:
                row.append(self._statement.column_value(i))
        return row

    def next_row_as_mapping(self) -> MappingRow | None:
        """Next row as a dict keyed by column name, NULL columns left out."""
        if not self._advance():
            return None
        assert self._statement is not None
        row: MappingRow = {}
        for i in range(self._column_count):
            if self._statement.column_type(i) is ValueKind.NULL:
                continue
            row[self._column_names[i]] = self._statement.column_value(i)
        return row

    def get_result_set(self, sql: str, params: Params = ()) -> list[SequenceRow] | None:
        """Run a query and collect all of its rows.

        Returns None only when the query could not be executed; a query
        that matches nothing returns an empty list.
        """
        if not self.execute_query(sql, params):
            return None
        rows: list[SequenceRow] = []
        while (row := self.next_row_as_sequence()) is not None:
            rows.append(row)
        return rows

    # -- Transactions --

    def execute_transaction(
        self,
        script: str,
        param_sets: Sequence[Params | None] | None = None,
        on_row: RowCallback | None = None,
    ) -> bool:
        """Run each line of ``script`` as one statement, stopping at the first failure.

        Lines starting with ``SELECT`` run as queries, everything else as
        updates. When a transaction is already open, the script runs inside
        a savepoint and a failure rolls the whole transaction back; in
        autocommit mode each statement commits on its own.
        """
        plan: list[tuple[int | None, str]] = list(enumerate(_split_script(script)))
        explicit = self.in_transaction
        if explicit:
            plan.insert(0, (None, f"SAVEPOINT {SAVEPOINT_NAME}"))
            plan.append((None, f"RELEASE {SAVEPOINT_NAME}"))
        logger.debug("Running transaction of %d statement(s), explicit=%s", len(plan), explicit)

        for index, sql in plan:
            params: Params = ()
            if index is not None and param_sets is not None and index < len(param_sets):
                params = param_sets[index] or ()

            if _is_select(sql):
                ok = self.execute_query(sql, params)
                if ok and on_row is not None and index is not None:
                    while (row := self.next_row_as_mapping()) is not None:
                        on_row(index, row)
                    ok = self._error is None
            else:
                ok = self.execute_update(sql, params)

            if not ok:
                logger.warning("Transaction stopped at statement %s: %s", index, sql)
                if self.in_transaction:
                    self._rollback()
                return False
        return True

    # -- Metadata --

    def column_count(self) -> int:
        """Column count of the current query; 0 once its rows are exhausted."""
        return self._column_count

    def column_names(self) -> list[str]:
        """Column names of the current query; empty once its rows are exhausted."""
        return list(self._column_names)

    def last_insert_rowid(self) -> int:
        """Rowid of the most recent successful INSERT, 0 if none or not open."""
        if self._conn is None:
            return 0
        return self._conn.execute("SELECT last_insert_rowid()").fetchone()[0]
