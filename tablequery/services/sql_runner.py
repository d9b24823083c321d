from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

import duckdb

from tablequery.errors import SQLExecutionError
from tablequery.services.sql_sanitizer import mask_quoted

# DuckDB integer types returned as arbitrary-size Python ints
WIDE_INTEGER_TYPES = {"BIGINT", "HUGEINT", "UBIGINT", "UHUGEINT"}
FLOAT_DECIMALS = 2

READ_ONLY_START_RE = re.compile(r"^\s*(?:SELECT|WITH)\b", re.IGNORECASE)
FORBIDDEN = (
    "drop", "delete", "update", "insert", "alter", "create", "truncate", "merge",
    "copy", "attach", "detach", "pragma", "call", "install", "load", "export",
    "import", "checkpoint", "vacuum",
)
FORBIDDEN_RE = re.compile(r"\b(" + "|".join(FORBIDDEN) + r")\b", re.IGNORECASE)


@dataclass
class QueryResult:
    columns: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    truncated: bool = False

    @property
    def shape(self) -> str:
        """``empty``, ``single`` (one row, shown as a metric) or ``table``."""
        if self.row_count == 0:
            return "empty"
        if self.row_count == 1:
            return "single"
        return "table"

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0


def normalize_value(value: Any, column_type: str) -> Any:
    """Normalize one field for display.

    Wide integers and decimals become floats. This is lossy on purpose:
    integers above 2**53 lose precision. Floats are rounded to two decimals
    and NaN becomes None. Everything else passes through unchanged.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int) and column_type in WIDE_INTEGER_TYPES:
        return float(value)
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float):
        if math.isnan(value):
            return None
        return round(value, FLOAT_DECIMALS)
    return value


def ensure_read_only(sql: str) -> None:
    """Reject anything but a single SELECT/WITH query.

    Keywords inside string literals and quoted identifiers are ignored.
    """
    masked = mask_quoted(sql).strip()
    if not READ_ONLY_START_RE.match(masked):
        raise SQLExecutionError("Only SELECT queries can be run.", sql=sql)
    if ";" in masked.rstrip(";").rstrip():
        raise SQLExecutionError("Only a single statement can be run.", sql=sql)
    match = FORBIDDEN_RE.search(masked)
    if match is not None:
        raise SQLExecutionError(f"Forbidden keyword in query: {match.group(1).upper()}", sql=sql)


def run_sql(conn: duckdb.DuckDBPyConnection, sql: str, max_rows: int | None = None) -> QueryResult:
    """Execute a statement once against DuckDB and return normalized rows.

    Raises SQLExecutionError when the statement is not a read-only query,
    fails in DuckDB, or does not produce a result set.
    """
    ensure_read_only(sql)
    try:
        relation = conn.sql(sql)
        if relation is None:
            raise SQLExecutionError("Statement did not return any rows to display.", sql=sql)
        columns = list(relation.columns)
        types = [str(t).upper() for t in relation.types]
        raw_rows = relation.fetchall()
    except duckdb.Error as exc:
        raise SQLExecutionError(str(exc), sql=sql) from exc

    total = len(raw_rows)
    if max_rows is not None and total > max_rows:
        raw_rows = raw_rows[:max_rows]

    rows = [
        {col: normalize_value(value, col_type) for col, col_type, value in zip(columns, types, raw)}
        for raw in raw_rows
    ]
    return QueryResult(
        columns=columns,
        rows=rows,
        row_count=total,
        truncated=len(rows) < total,
    )
