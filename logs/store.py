"""
logs/store.py -- SQLAlchemy Core persistence layer for log records (Session Store).

Pattern: Repository + Data Mapper (same as pastes/store.py).
LogStore is the repository; _row_to_log is the mapper. Route and service code
never touches SQL directly.

Failure semantics:
  Every public method returns a core.models.Result. A SQLAlchemyError is
  logged with its traceback and reported as Result(False, "Log store error").
  Nothing is retried and nothing is raised past this boundary -- the caller
  decides what a failed store call means for its request.

  get_log() on an unknown id is NOT a failure: it returns Result(True, ...,
  None). Callers treat the missing record as "session expired".

Concurrency:
  Each call is one short connection. There is no cross-call transaction, so
  two requests updating the same session race and the last write wins.

Layer rule: no imports from api/ or pastes/. auth.crypto is the only auth/ import.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy import BigInteger, Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.crypto import random_object_hash
from core.models import Result
from logs.models import LogRecord, SessionRecord

logger = logging.getLogger("entry.logs")

_STORE_ERROR = "Log store error"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_logs = Table(
    "logs",
    _metadata,
    Column("id", String(256), primary_key=True),
    Column("type", String(255), nullable=False, index=True),
    Column("content", Text, nullable=False),
    Column("timestamp", BigInteger, nullable=False),  # unix ms
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by session updates."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class LogStore:
    """Repository for LogRecord entities.

    Usage:
        logs = LogStore("sqlite:///data/log.sqlite")
        result = logs.create_log("session", SessionRecord("Mozilla/5.0").to_content())
        session_id = result.record.id
        logs.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Generic log operations
    # ------------------------------------------------------------------

    def create_log(self, log_type: str, content: str) -> Result:
        """Append a new log record with a random id. Returns the record."""
        record = LogRecord(id=random_object_hash(), type=log_type, content=content, timestamp=_now_ms())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _logs.insert().values(
                        id=record.id,
                        type=record.type,
                        content=record.content,
                        timestamp=record.timestamp,
                    )
                )
                conn.commit()
        except SQLAlchemyError:
            logger.exception("create_log failed (type=%s)", log_type)
            return Result(False, _STORE_ERROR)
        return Result(True, "Log created", record)

    def get_log(self, log_id: str) -> Result:
        """Look up a log by id. A missing record is a successful Result with record=None."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_logs.select().where(_logs.c.id == log_id)).fetchone()
        except SQLAlchemyError:
            logger.exception("get_log failed")
            return Result(False, _STORE_ERROR)
        if row is None:
            return Result(True, "Log does not exist", None)
        return Result(True, log_id, _row_to_log(row))

    def update_log(self, log_id: str, content: str) -> Result:
        """Replace the content of an existing log. Fails if the id is unknown."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_logs.update().where(_logs.c.id == log_id).values(content=content))
                conn.commit()
        except SQLAlchemyError:
            logger.exception("update_log failed")
            return Result(False, _STORE_ERROR)
        if result.rowcount == 0:
            return Result(False, "Log does not exist")
        return Result(True, "Log updated")

    def delete_log(self, log_id: str) -> Result:
        """Delete a log. Returns the deleted record on success."""
        found = self.get_log(log_id)
        if not found.ok or found.record is None:
            return Result(False, found.message if not found.ok else "Log does not exist")
        try:
            with self.engine.connect() as conn:
                conn.execute(_logs.delete().where(_logs.c.id == log_id))
                conn.commit()
        except SQLAlchemyError:
            logger.exception("delete_log failed")
            return Result(False, _STORE_ERROR)
        return Result(True, "Log deleted", found.record)

    def query_logs(
        self,
        log_type: Optional[str] = None,
        content: Optional[str] = None,
        content_prefix: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Result:
        """Return logs matching every given filter, oldest first.

        content_prefix is matched literally (LIKE wildcards are escaped), so a
        CustomURL containing "_" cannot widen the match.
        """
        stmt = _logs.select()
        for clause in _filters(log_type, content, content_prefix):
            stmt = stmt.where(clause)
        stmt = stmt.order_by(_logs.c.timestamp)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError:
            logger.exception("query_logs failed")
            return Result(False, _STORE_ERROR, [])
        return Result(True, "Logs queried", [_row_to_log(r) for r in rows])

    def count_logs(
        self,
        log_type: Optional[str] = None,
        content: Optional[str] = None,
        content_prefix: Optional[str] = None,
    ) -> int:
        """Return the number of matching logs, or 0 if the store is unavailable."""
        stmt = select(func.count()).select_from(_logs)
        for clause in _filters(log_type, content, content_prefix):
            stmt = stmt.where(clause)
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).scalar() or 0
        except SQLAlchemyError:
            logger.exception("count_logs failed")
            return 0

    def clear(self) -> Result:
        """Delete every log record. Used by LOG_CLEAR_ON_START."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_logs.delete())
                conn.commit()
        except SQLAlchemyError:
            logger.exception("clear failed")
            return Result(False, _STORE_ERROR)
        return Result(True, f"Deleted {result.rowcount} logs")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: SessionRecord) -> Result:
        return self.create_log("session", session.to_content())

    def get_session(self, session_id: str) -> Result:
        """Return Result(True, ..., SessionRecord | None) for a session id."""
        found = self.get_log(session_id)
        if not found.ok:
            return found
        if found.record is None or found.record.type != "session":
            return Result(True, "Session does not exist", None)
        return Result(True, session_id, SessionRecord.from_content(found.record.content))

    def save_session(self, session_id: str, session: SessionRecord) -> Result:
        return self.update_log(session_id, session.to_content())

    def sessions_associated_with(self, custom_url: str) -> list[LogRecord]:
        """Return every session log currently associated with custom_url."""
        found = self.query_logs(log_type="session")
        return [
            log for log in found.record if SessionRecord.from_content(log.content).associated == custom_url
        ]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Helpers / row mapper
# ---------------------------------------------------------------------------


def _filters(log_type: Optional[str], content: Optional[str], content_prefix: Optional[str]) -> list:
    clauses = []
    if log_type is not None:
        clauses.append(_logs.c.type == log_type)
    if content is not None:
        clauses.append(_logs.c.content == content)
    if content_prefix is not None:
        clauses.append(_logs.c.content.startswith(content_prefix, autoescape=True))
    return clauses


def _row_to_log(row) -> LogRecord:
    return LogRecord(id=row.id, type=row.type, content=row.content, timestamp=row.timestamp)
