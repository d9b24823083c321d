from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock, RLock
from typing import Dict, Iterator, Optional

import duckdb
import pandas as pd
from fastapi import UploadFile

from tablequery.config import TABLE_NAME, settings
from tablequery.errors import TurnInProgress
from tablequery.services.history import ConversationHistory
from tablequery.services.schema_registry import SchemaRegistry, SchemaSnapshot
from tablequery.utils.dataframe_utils import preview_dataframe, read_dataframe_from_bytes
from tablequery.utils.logger import logger


@dataclass
class DataSession:
    session_id: str
    duckdb_conn: duckdb.DuckDBPyConnection
    table_name: str = TABLE_NAME
    schema: SchemaRegistry = field(default_factory=SchemaRegistry)
    history: ConversationHistory = field(default_factory=ConversationHistory)
    file_name: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    last_used_at: float = field(default_factory=lambda: time.time())
    _busy: Lock = field(default_factory=Lock, repr=False)

    def touch(self) -> None:
        self.last_used_at = time.time()

    @contextmanager
    def exclusive(self) -> Iterator["DataSession"]:
        """Hold the session for one turn or reload; refuse if already held."""
        if not self._busy.acquire(blocking=False):
            raise TurnInProgress("A question is already being answered for this session")
        try:
            yield self
        finally:
            self._busy.release()


class DataManager:
    """In-memory session store for uploaded data and attached DuckDB connections."""

    def __init__(self) -> None:
        self._sessions: Dict[str, DataSession] = {}
        self._lock = RLock()

    def _make_session_id(self) -> str:
        return uuid.uuid4().hex

    def create_session(self) -> DataSession:
        session = DataSession(session_id=self._make_session_id(), duckdb_conn=duckdb.connect())
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def load_dataset(self, session: DataSession, file_bytes: bytes, filename: str) -> Dict:
        """Replace the session's table with the uploaded file.

        The schema snapshot is rebuilt from DuckDB and the conversation history
        is cleared, so follow-up context never refers to the previous dataset.
        """
        size_mb = len(file_bytes) / (1024 * 1024)
        if size_mb > settings.max_file_size_mb:
            raise ValueError(
                f"File too large: {size_mb:.1f}MB > {settings.max_file_size_mb}MB"
            )

        df: pd.DataFrame = read_dataframe_from_bytes(file_bytes, filename)
        if df.empty:
            raise ValueError("Uploaded table has no rows")

        if len(df) > settings.max_rows:
            logger.info(
                "Truncating rows from %s to MAX_ROWS=%s for performance",
                len(df),
                settings.max_rows,
            )
            df = df.head(settings.max_rows).copy()

        with session.exclusive():
            conn = session.duckdb_conn
            table = session.table_name
            conn.execute(f'DROP TABLE IF EXISTS "{table}"')
            conn.register("df_view", df)
            try:
                conn.execute(f'CREATE TABLE "{table}" AS SELECT * FROM df_view')
            finally:
                conn.unregister("df_view")
            described = conn.execute(f'DESCRIBE "{table}"').fetchall()
            snapshot: SchemaSnapshot = session.schema.load(
                [(row[0], row[1]) for row in described], table_name=table
            )
            session.history.clear()
            session.file_name = filename
            session.touch()

        logger.info(
            "Session %s switched to %s (%d rows, %d columns)",
            session.session_id,
            filename,
            len(df),
            len(snapshot.columns),
        )
        return {
            "session_id": session.session_id,
            "table": snapshot.table_name,
            "file_name": filename,
            "schema": snapshot.to_dicts(),
            "preview": preview_dataframe(df, settings.preview_rows),
        }

    async def create_session_from_upload(self, file: UploadFile, session_id: Optional[str] = None) -> Dict:
        file_bytes = await file.read()
        if session_id:
            session = self.get_session(session_id)
        else:
            session = self.create_session()
        try:
            # Heavy IO/CPU in thread
            return await asyncio.to_thread(
                self.load_dataset, session, file_bytes, file.filename or ""
            )
        except Exception:
            if not session_id:
                self.drop_session(session.session_id)
            raise

    def drop_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.duckdb_conn.close()

    def get_session(self, session_id: str) -> DataSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if not session:
            raise KeyError("Session not found or expired")
        session.touch()
        return session

    def maybe_cleanup(self) -> None:
        ttl_seconds = settings.session_ttl_minutes * 60
        now = time.time()
        to_delete: list[str] = []
        with self._lock:
            for sid, sess in self._sessions.items():
                if now - sess.last_used_at > ttl_seconds:
                    to_delete.append(sid)
            for sid in to_delete:
                try:
                    self._sessions[sid].duckdb_conn.close()
                except duckdb.Error as exc:
                    logger.warning("Failed to close connection for session %s: %s", sid, exc)
                del self._sessions[sid]
        if to_delete:
            logger.info("Cleaned up %d expired sessions", len(to_delete))


data_manager = DataManager()
