"""Error kinds raised by the question-to-SQL pipeline.

Every pipeline failure is a ``PipelineError`` carrying a short ``kind`` string
so the query engine can report it as a turn outcome. A zero-row result is not
an error; it is reported as a distinct success status by the engine.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    kind = "pipeline_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoDatasetLoaded(PipelineError):
    """Generation was attempted before any dataset was loaded."""

    kind = "no_dataset_loaded"

    def __init__(self, message: str = "No dataset loaded. Upload a CSV file first.") -> None:
        super().__init__(message)


class ModelUnavailable(PipelineError):
    """The model endpoint could not be reached or answered with an HTTP error."""

    kind = "model_unavailable"


class ModelResponseMalformed(PipelineError):
    """The model endpoint answered, but without ``message.content`` text."""

    kind = "model_response_malformed"


class SQLExecutionError(PipelineError):
    """DuckDB rejected the statement. Holds the database message and the SQL."""

    kind = "sql_execution_error"

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(message)
        self.sql = sql


class TurnInProgress(RuntimeError):
    """A turn or dataset reload is already running for this session."""
