"""Tests for the prepared-statement primitives."""

import sqlite3

import pytest

from persistkit.db.statement import Statement, StepResult, count_placeholders
from persistkit.models.value import Value, ValueKind


class TestCountPlaceholders:
    """Placeholder counting mirrors sqlite3_bind_parameter_count."""

    def test_no_placeholders(self):
        assert count_placeholders("SELECT 1") == 0

    def test_anonymous_placeholders(self):
        assert count_placeholders("INSERT INTO t (a, b, c) VALUES (?, ?, ?)") == 3

    def test_numbered_placeholder_sets_count(self):
        assert count_placeholders("SELECT ?3") == 3

    def test_anonymous_after_numbered(self):
        assert count_placeholders("SELECT ?2, ?") == 3

    def test_repeated_numbered_placeholder(self):
        assert count_placeholders("SELECT ?1, ?1") == 1

    def test_ignores_string_literals(self):
        assert count_placeholders("SELECT '?', 'it''s ?' FROM t WHERE x = ?") == 1

    def test_ignores_quoted_identifiers(self):
        assert count_placeholders('SELECT "a?b", [c?], `d?` FROM t') == 0

    def test_ignores_comments(self):
        sql = "SELECT ? -- why?\n/* and ?\n ? */ FROM t"
        assert count_placeholders(sql) == 1

    def test_json_path_in_literal_is_not_named(self):
        assert count_placeholders("SELECT json_extract(p, '$.source') FROM t") == 0

    def test_dollar_inside_identifier_is_not_named(self):
        assert count_placeholders("SELECT a$b FROM t") == 0

    @pytest.mark.parametrize("marker", [":name", "@name", "$name", ":1", "@1", "$1"])
    def test_named_placeholders_rejected(self, marker):
        with pytest.raises(sqlite3.ProgrammingError, match="named placeholder"):
            count_placeholders(f"SELECT * FROM t WHERE a = {marker}")

    def test_empty_sql(self):
        assert count_placeholders("") == 0


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:", isolation_level=None)
    connection.execute("CREATE TABLE t (a TEXT, b INTEGER)")
    connection.execute("INSERT INTO t VALUES ('x', 1), ('y', NULL)")
    yield connection
    connection.close()


class TestPrepare:
    def test_prepare_counts_parameters(self, conn):
        statement = Statement.prepare(conn, "SELECT a FROM t WHERE b = ? AND a = ?")
        assert statement.parameter_count == 2
        assert not statement.started

    def test_prepare_does_not_run_statement(self, conn):
        Statement.prepare(conn, "DELETE FROM t")
        assert conn.execute("SELECT count(*) FROM t").fetchone()[0] == 2

    def test_syntax_error(self, conn):
        with pytest.raises(sqlite3.OperationalError):
            Statement.prepare(conn, "SELEC a FROM t")

    def test_unknown_table(self, conn):
        with pytest.raises(sqlite3.OperationalError, match="no such table"):
            Statement.prepare(conn, "SELECT * FROM missing")

    def test_incomplete_statement(self, conn):
        with pytest.raises(sqlite3.OperationalError):
            Statement.prepare(conn, "INSERT INTO t (a) VALUES (")

    def test_explain_statement_is_prepared_as_is(self, conn):
        statement = Statement.prepare(conn, "EXPLAIN QUERY PLAN SELECT a FROM t")
        assert statement.parameter_count == 0


class TestLifecycle:
    def test_rows_then_done(self, conn):
        statement = Statement.prepare(conn, "SELECT a, b FROM t ORDER BY a")
        statement.execute()
        assert statement.column_count == 2
        assert [statement.column_name(i) for i in range(2)] == ["a", "b"]

        assert statement.step() is StepResult.ROW
        assert statement.column_value(0) == "x"
        assert statement.column_type(1) is ValueKind.INTEGER
        assert statement.step() is StepResult.ROW
        assert statement.column_type(1) is ValueKind.NULL
        assert statement.step() is StepResult.DONE

    def test_step_runs_update(self, conn):
        statement = Statement.prepare(conn, "INSERT INTO t VALUES (?, ?)")
        statement.bind(1, Value.text("z"))
        statement.bind(2, Value.integer(3))
        assert statement.step() is StepResult.DONE
        assert statement.column_count == 0
        assert conn.execute("SELECT b FROM t WHERE a = 'z'").fetchone() == (3,)

    def test_bind_index_out_of_range(self, conn):
        statement = Statement.prepare(conn, "SELECT ?")
        with pytest.raises(IndexError):
            statement.bind(2, Value.null())

    def test_bind_after_execute_rejected(self, conn):
        statement = Statement.prepare(conn, "SELECT ?")
        statement.bind(1, Value.integer(1))
        statement.execute()
        with pytest.raises(sqlite3.ProgrammingError):
            statement.bind(1, Value.integer(2))

    def test_finalize_is_idempotent(self, conn):
        statement = Statement.prepare(conn, "SELECT a FROM t")
        statement.execute()
        statement.finalize()
        statement.finalize()
        assert statement.finalized
        with pytest.raises(sqlite3.ProgrammingError):
            statement.execute()

    def test_column_value_without_row(self, conn):
        statement = Statement.prepare(conn, "SELECT a FROM t")
        with pytest.raises(sqlite3.ProgrammingError):
            statement.column_value(0)
