"""Prepared-statement primitives over the sqlite3 module.

The sqlite3 module fuses prepare, bind and the first step into
``Cursor.execute``. ``Statement`` pulls them apart again so the adapter can
drive the engine the way the C API does:

* ``prepare`` compiles the SQL (through ``EXPLAIN``, which compiles without
  running) and counts its placeholders,
* ``bind`` fills 1-based parameter slots,
* ``execute`` runs the statement up to its first result,
* ``step`` hands out one row per call until ``DONE``,
* ``finalize`` releases the cursor.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import closing
from enum import IntEnum

from persistkit.models.value import SQLValue, Value, ValueKind, kind_of

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(
    r"""
    '(?:[^']|'')*'                              # string literal
    | "(?:[^"]|"")*"                            # quoted identifier
    | `(?:[^`]|``)*`                            # backtick identifier
    | \[[^\]]*\]                                # bracket identifier
    | --[^\n]*                                  # line comment
    | /\*.*?(?:\*/|\Z)                          # block comment
    | \?(?P<number>\d*)                         # positional placeholder
    | (?<![\w$])[:@$](?P<name>[\w$]+)           # named placeholder
    """,
    re.VERBOSE | re.DOTALL,
)

_EXPLAIN_RE = re.compile(r"\s*EXPLAIN\b", re.IGNORECASE)


class StepResult(IntEnum):
    """Outcome of advancing a statement, using SQLite's result codes."""

    ROW = 100
    DONE = 101


def count_placeholders(sql: str) -> int:
    """Return the number of parameter slots in ``sql``.

    Follows ``sqlite3_bind_parameter_count``: ``?NNN`` takes index NNN, a
    bare ``?`` takes one more than the largest index so far, and the count
    is the largest index. Markers inside literals, quoted identifiers and
    comments are ignored. Named markers are rejected since parameters bind
    by position only.
    """
    count = 0
    for match in _TOKEN_RE.finditer(sql):
        name = match.group("name")
        if name is not None:
            raise sqlite3.ProgrammingError(
                f"named placeholder {match.group(0)!r} is not supported; use ? markers"
            )
        number = match.group("number")
        if number is None:
            continue
        count = max(count, int(number)) if number else count + 1
    return count


class Statement:
    """A compiled SQL statement owned by one connection."""

    def __init__(self, conn: sqlite3.Connection, sql: str, parameter_count: int) -> None:
        """Use :meth:`prepare` rather than calling this directly."""
        self.sql = sql
        self.parameter_count = parameter_count
        self._conn = conn
        self._bindings: list[SQLValue] = [None] * parameter_count
        self._cursor: sqlite3.Cursor | None = None
        self._row: tuple[SQLValue, ...] | None = None
        self._finalized = False

    @classmethod
    def prepare(cls, conn: sqlite3.Connection, sql: str) -> Statement:
        """Compile ``sql`` without running it. Raises sqlite3.Error on failure."""
        parameter_count = count_placeholders(sql)
        probe = sql if _EXPLAIN_RE.match(sql) else f"EXPLAIN {sql}"
        with closing(conn.execute(probe, [None] * parameter_count)):
            pass
        logger.debug("Prepared statement with %d parameter(s): %s", parameter_count, sql)
        return cls(conn, sql, parameter_count)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def started(self) -> bool:
        """True once the statement has run up to its first result."""
        return self._cursor is not None

    def bind(self, index: int, value: Value) -> None:
        """Bind ``value`` to the 1-based placeholder ``index``."""
        if self.started or self._finalized:
            raise sqlite3.ProgrammingError("cannot bind to a statement that has already run")
        if not 1 <= index <= self.parameter_count:
            raise IndexError(f"parameter index {index} out of range 1..{self.parameter_count}")
        self._bindings[index - 1] = value.to_sqlite()

    def execute(self) -> None:
        """Run the statement up to its first result.

        The sqlite3 module steps once inside ``execute``; a first row, if
        any, stays buffered in the cursor until :meth:`step` collects it.
        """
        if self._finalized:
            raise sqlite3.ProgrammingError("cannot execute a finalized statement")
        if self._cursor is None:
            self._cursor = self._conn.execute(self.sql, self._bindings)

    def step(self) -> StepResult:
        """Advance to the next row. Raises sqlite3.Error if the engine fails."""
        self.execute()
        assert self._cursor is not None
        self._row = self._cursor.fetchone()
        return StepResult.DONE if self._row is None else StepResult.ROW

    @property
    def column_count(self) -> int:
        if self._cursor is None or self._cursor.description is None:
            return 0
        return len(self._cursor.description)

    def column_name(self, index: int) -> str:
        assert self._cursor is not None and self._cursor.description is not None
        return self._cursor.description[index][0]

    def column_value(self, index: int) -> SQLValue:
        """Value of column ``index`` in the current row."""
        if self._row is None:
            raise sqlite3.ProgrammingError("no current row")
        return self._row[index]

    def column_type(self, index: int) -> ValueKind:
        return kind_of(self.column_value(index))

    def finalize(self) -> None:
        """Release the statement. Calling it again is harmless."""
        if self._finalized:
            return
        self._finalized = True
        self._row = None
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None
        logger.debug("Finalized statement: %s", self.sql)
