from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from tablequery.config import settings
from tablequery.errors import PipelineError
from tablequery.services.data_manager import DataManager, DataSession, data_manager
from tablequery.services.llm_client import LLMClient, llm_client
from tablequery.services.prompt_builder import build_messages
from tablequery.services.sql_runner import QueryResult, run_sql
from tablequery.services.sql_sanitizer import sanitize_sql
from tablequery.utils.logger import logger

# Messages starting with this prefix are run as SQL without asking the model
DIRECT_SQL_PREFIX = "CHART:"


class TurnState(str, Enum):
    IDLE = "idle"
    PROMPTING = "prompting"
    AWAITING_MODEL = "awaiting_model"
    SANITIZING = "sanitizing"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TurnStatus(str, Enum):
    SUCCEEDED = "succeeded"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class TurnOutcome:
    status: TurnStatus
    answer: str
    sql: Optional[str] = None
    result: Optional[QueryResult] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = None
        if self.result is not None:
            result = {
                "columns": self.result.columns,
                "rows": self.result.rows,
                "row_count": self.result.row_count,
                "shape": self.result.shape,
                "truncated": self.result.truncated,
            }
        error = None
        if self.error_kind is not None:
            error = {"kind": self.error_kind, "message": self.error_message}
        return {
            "status": self.status.value,
            "answer": self.answer,
            "sql": self.sql if settings.enable_sql_output else None,
            "result": result,
            "error": error,
        }


def describe_result(result: QueryResult) -> str:
    """Build a small textual answer for a result."""
    if result.is_empty:
        return "Query returned no data."
    if result.row_count == 1 and len(result.columns) == 1:
        column = result.columns[0]
        return f"{column} = {result.rows[0][column]}"
    return f"Query returned {result.row_count} rows and {len(result.columns)} columns."


class QueryEngine:
    """Runs one question through prompt, model, sanitizer and executor.

    A turn either succeeds (possibly with zero rows) and is recorded in the
    session history, or fails and leaves the history untouched. Callers get a
    TurnOutcome in both cases; only concurrency and unknown sessions raise.
    """

    def __init__(self, manager: Optional[DataManager] = None, client: Optional[LLMClient] = None) -> None:
        self.manager = manager or data_manager
        self.client = client or llm_client

    def answer(self, session_id: str, question: str) -> TurnOutcome:
        session: DataSession = self.manager.get_session(session_id)
        self.manager.maybe_cleanup()

        with session.exclusive():
            return self._run_turn(session, question.strip())

    def _transition(self, session: DataSession, state: TurnState) -> None:
        logger.debug("Session %s turn -> %s", session.session_id, state.value)

    def _run_turn(self, session: DataSession, question: str) -> TurnOutcome:
        sql: Optional[str] = None
        direct = question.upper().startswith(DIRECT_SQL_PREFIX)
        try:
            if direct:
                self._transition(session, TurnState.SANITIZING)
                sql = sanitize_sql(question[len(DIRECT_SQL_PREFIX):])
            else:
                self._transition(session, TurnState.PROMPTING)
                snapshot = session.schema.current()
                messages = build_messages(question, snapshot, session.history.recent_context())

                self._transition(session, TurnState.AWAITING_MODEL)
                raw_text = self.client.generate_sql_text(messages)

                self._transition(session, TurnState.SANITIZING)
                sql = sanitize_sql(raw_text)
            logger.debug("Session %s sanitized SQL: %s", session.session_id, sql)

            self._transition(session, TurnState.EXECUTING)
            result = run_sql(session.duckdb_conn, sql, max_rows=settings.max_result_rows)
        except PipelineError as exc:
            self._transition(session, TurnState.FAILED)
            self._transition(session, TurnState.IDLE)
            logger.info("Session %s turn failed (%s): %s", session.session_id, exc.kind, exc.message)
            return TurnOutcome(
                status=TurnStatus.FAILED,
                answer=exc.message,
                sql=sql,
                error_kind=exc.kind,
                error_message=exc.message,
            )

        self._transition(session, TurnState.SUCCEEDED)
        if not direct:
            session.history.record(question, sql)
        self._transition(session, TurnState.IDLE)
        return TurnOutcome(
            status=TurnStatus.EMPTY if result.is_empty else TurnStatus.SUCCEEDED,
            answer=describe_result(result),
            sql=sql,
            result=result,
        )


query_engine = QueryEngine()
