from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles

from tablequery.config import settings
from tablequery.errors import NoDatasetLoaded, TurnInProgress
from tablequery.models.chat import (
    ChatRequest,
    ChatResponse,
    ColumnInfo,
    HistoryResponse,
    HistoryTurn,
    SchemaResponse,
)
from tablequery.services.data_manager import data_manager
from tablequery.services.llm_client import llm_client
from tablequery.services.query_engine import query_engine
from tablequery.utils.logger import logger

app = FastAPI(default_response_class=ORJSONResponse)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/healthz")
async def healthz() -> Dict[str, Any]:
    reachable = await asyncio.to_thread(llm_client.is_available)
    return {"status": "ok", "model": llm_client.model, "model_reachable": reachable}


@app.post("/api/upload")
async def upload_table(
    file: UploadFile = File(...),
    session_id: Optional[str] = Form(None),
) -> Dict[str, Any]:
    try:
        return await data_manager.create_session_from_upload(file, session_id=session_id)
    except KeyError as ke:
        raise HTTPException(status_code=404, detail=str(ke)) from ke
    except TurnInProgress as tp:
        raise HTTPException(status_code=409, detail=str(tp)) from tp
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve)) from ve
    except Exception as exc:  # noqa: BLE001
        logger.exception("Upload failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/api/chat", response_model=ChatResponse)
async def chat(req: ChatRequest) -> ChatResponse:
    try:
        outcome = await asyncio.to_thread(query_engine.answer, req.session_id, req.message)
        return ChatResponse(**outcome.to_dict())
    except KeyError as ke:
        raise HTTPException(status_code=404, detail=str(ke)) from ke
    except TurnInProgress as tp:
        raise HTTPException(status_code=409, detail=str(tp)) from tp
    except Exception as exc:  # noqa: BLE001
        logger.exception("Chat failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.get("/api/sessions/{session_id}/schema", response_model=SchemaResponse)
async def get_schema(session_id: str) -> SchemaResponse:
    try:
        session = data_manager.get_session(session_id)
        snapshot = session.schema.current()
    except KeyError as ke:
        raise HTTPException(status_code=404, detail=str(ke)) from ke
    except NoDatasetLoaded as nd:
        raise HTTPException(status_code=409, detail=nd.message) from nd
    return SchemaResponse(
        session_id=session_id,
        table=snapshot.table_name,
        file_name=session.file_name,
        columns=[ColumnInfo(name=name, type=col_type) for name, col_type in snapshot.columns],
    )


@app.get("/api/sessions/{session_id}/history", response_model=HistoryResponse)
async def get_history(session_id: str) -> HistoryResponse:
    try:
        session = data_manager.get_session(session_id)
    except KeyError as ke:
        raise HTTPException(status_code=404, detail=str(ke)) from ke
    return HistoryResponse(
        session_id=session_id,
        turns=[HistoryTurn(question=t.question, sql=t.sql) for t in session.history.turns()],
    )


# Serve frontend
root_dir = Path(__file__).resolve().parents[1]
frontend_dir = root_dir / "frontend"
if frontend_dir.exists():
    app.mount("/", StaticFiles(directory=str(frontend_dir), html=True), name="frontend")
