from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    session_id: str = Field(..., description="ID of the data session returned by /api/upload")
    message: str = Field(..., min_length=1, description="User question in natural language, or CHART:<sql>")


class ResultPayload(BaseModel):
    columns: List[str]
    rows: List[Dict[str, Any]]
    row_count: int
    shape: Literal["empty", "single", "table"]
    truncated: bool = False


class ErrorPayload(BaseModel):
    kind: str
    message: str


class ChatResponse(BaseModel):
    status: Literal["succeeded", "empty", "failed"]
    answer: str
    sql: Optional[str] = None
    result: Optional[ResultPayload] = None
    error: Optional[ErrorPayload] = None


class ColumnInfo(BaseModel):
    name: str
    type: str


class SchemaResponse(BaseModel):
    session_id: str
    table: str
    file_name: Optional[str] = None
    columns: List[ColumnInfo]


class HistoryTurn(BaseModel):
    question: str
    sql: str


class HistoryResponse(BaseModel):
    session_id: str
    turns: List[HistoryTurn]
