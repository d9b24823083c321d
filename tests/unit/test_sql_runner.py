"""Unit tests for query execution and field normalization against DuckDB."""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from tablequery.errors import SQLExecutionError
from tablequery.services.data_manager import DataSession
from tablequery.services.sql_runner import normalize_value, run_sql


class TestNormalizeValue:
    def test_wide_integer_becomes_float(self) -> None:
        value = normalize_value(2**60, "BIGINT")
        assert isinstance(value, float)
        assert value == float(2**60)

    def test_hugeint_becomes_float(self) -> None:
        assert normalize_value(12, "HUGEINT") == 12.0

    def test_narrow_integer_unchanged(self) -> None:
        value = normalize_value(7, "INTEGER")
        assert value == 7 and isinstance(value, int)

    def test_float_rounded(self) -> None:
        assert normalize_value(3.14159, "DOUBLE") == 3.14

    def test_decimal_becomes_float(self) -> None:
        assert normalize_value(Decimal("7.5"), "DECIMAL(18,3)") == 7.5

    def test_nan_becomes_none(self) -> None:
        assert normalize_value(math.nan, "DOUBLE") is None

    def test_other_types_pass_through(self) -> None:
        assert normalize_value("Sales", "VARCHAR") == "Sales"
        assert normalize_value(True, "BOOLEAN") is True
        assert normalize_value(None, "BIGINT") is None


class TestRunSql:
    def test_count_is_single_row_float(self, employees_session: DataSession) -> None:
        result = run_sql(employees_session.duckdb_conn, "SELECT COUNT(*) AS n FROM dataset;")

        assert result.shape == "single"
        assert result.columns == ["n"]
        assert result.rows == [{"n": 3.0}]
        assert isinstance(result.rows[0]["n"], float)

    def test_average_rounded(self, employees_session: DataSession) -> None:
        result = run_sql(employees_session.duckdb_conn, 'SELECT AVG("Salary") AS avg_salary FROM dataset;')
        assert result.rows[0]["avg_salary"] == 63666.96

    def test_multi_row_table(self, employees_session: DataSession) -> None:
        sql = 'SELECT "Department", SUM("Absences") AS total FROM dataset GROUP BY 1 ORDER BY 2 DESC;'
        result = run_sql(employees_session.duckdb_conn, sql)

        assert result.shape == "table"
        assert result.rows == [
            {"Department": "Sales", "total": 8.0},
            {"Department": "Engineering", "total": 1.0},
        ]

    def test_zero_rows_is_not_an_error(self, employees_session: DataSession) -> None:
        result = run_sql(employees_session.duckdb_conn, 'SELECT * FROM dataset WHERE "Absences" > 100;')

        assert result.is_empty
        assert result.shape == "empty"
        assert result.rows == []
        assert "Employee Name" in result.columns

    def test_bad_column_raises_with_message(self, employees_session: DataSession) -> None:
        sql = 'SELECT "Absenses" FROM dataset;'
        with pytest.raises(SQLExecutionError) as excinfo:
            run_sql(employees_session.duckdb_conn, sql)

        assert "Absenses" in excinfo.value.message
        assert excinfo.value.sql == sql
        assert excinfo.value.kind == "sql_execution_error"

    def test_rows_truncated(self, employees_session: DataSession) -> None:
        result = run_sql(employees_session.duckdb_conn, "SELECT * FROM dataset;", max_rows=2)

        assert len(result.rows) == 2
        assert result.row_count == 3
        assert result.truncated is True


class TestReadOnlyGuard:
    @pytest.mark.parametrize(
        "sql",
        [
            "DROP TABLE dataset;",
            'ALTER TABLE dataset RENAME COLUMN "Department" TO dept;',
            "CREATE TABLE copy AS SELECT * FROM dataset;",
            'SELECT * FROM dataset; DELETE FROM dataset;',
            'WITH d AS (DELETE FROM dataset RETURNING *) SELECT * FROM d;',
            ";",
        ],
    )
    def test_rejected_before_execution(self, employees_session: DataSession, sql: str) -> None:
        with pytest.raises(SQLExecutionError) as excinfo:
            run_sql(employees_session.duckdb_conn, sql)
        assert excinfo.value.sql == sql

        count = run_sql(employees_session.duckdb_conn, "SELECT COUNT(*) AS n FROM dataset;")
        assert count.rows == [{"n": 3.0}]
        columns = run_sql(employees_session.duckdb_conn, "SELECT * FROM dataset LIMIT 0;").columns
        assert columns == ["Employee Name", "Department", "Absences", "Salary"]

    def test_with_query_allowed(self, employees_session: DataSession) -> None:
        sql = 'WITH s AS (SELECT * FROM dataset WHERE "Department" = \'Sales\') SELECT COUNT(*) AS n FROM s;'
        assert run_sql(employees_session.duckdb_conn, sql).rows == [{"n": 2.0}]

    def test_keywords_inside_quotes_allowed(self, employees_session: DataSession) -> None:
        sql = 'SELECT \'drop; update\' AS "delete", COUNT(*) AS n FROM dataset;'
        result = run_sql(employees_session.duckdb_conn, sql)
        assert result.rows == [{"delete": "drop; update", "n": 3.0}]
