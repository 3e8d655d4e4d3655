"""
store/database.py -- SQLAlchemy-backed data-access primitives.

Every higher-level flow is a sequence of calls to three primitives:

    fetch_one(query, params)  -> Row | None
    fetch_many(query, params) -> list[Row]
    execute(query, params)    -> ExecResult(generated_id, rows_affected)

`query` may be SQL text with named bind parameters (":email") or a SQLAlchemy
Core statement built from store/schema.py. Each call is its own transaction
(engine.begin()); there are no cross-call transactions, so check-then-act
sequences in the services rely on the schema constraints for correctness.

Error translation happens here and nowhere else:
  UNIQUE violation      -> DuplicateKey
  FOREIGN KEY violation -> NotFound
  CHECK / NOT NULL      -> InvalidInput
  anything else         -> Internal (logged with full detail)

Security:
  All values travel as bound parameters. No f-strings in SQL.

Usage:
    db = Database("sqlite:///edutech.sqlite", timeout=30)
    db.create_schema()
    row = db.fetch_one("SELECT * FROM users WHERE email = :email", {"email": "a@b.c"})
    db.close()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import Pool
from sqlalchemy.sql import Executable

from core.errors import DuplicateKey, Internal, InvalidInput, NotFound
from store.schema import metadata

logger = logging.getLogger("edutech.store")

# SQLSTATE classes for non-SQLite backends (PostgreSQL and friends).
_SQLSTATE_UNIQUE = "23505"
_SQLSTATE_FOREIGN_KEY = "23503"
_SQLSTATE_CHECK = "23514"
_SQLSTATE_NOT_NULL = "23502"


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a mutating statement."""

    generated_id: int | None
    rows_affected: int


# ---------------------------------------------------------------------------
# SQLite connection pragmas
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign keys and WAL journal mode on every new SQLite connection.

    foreign_keys is off by default in SQLite and is per-connection, so the
    ON DELETE CASCADE rules in the schema only fire when this runs. WAL lets
    readers proceed while a writer holds the lock.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _translate_integrity_error(exc: IntegrityError) -> Exception:
    state = _sqlstate(exc)
    message = str(exc.orig).upper()
    if state == _SQLSTATE_UNIQUE or "UNIQUE CONSTRAINT" in message:
        return DuplicateKey()
    if state == _SQLSTATE_FOREIGN_KEY or "FOREIGN KEY CONSTRAINT" in message:
        return NotFound("Referenced record not found.")
    if state in (_SQLSTATE_CHECK, _SQLSTATE_NOT_NULL) or "CHECK CONSTRAINT" in message or "NOT NULL" in message:
        return InvalidInput("Value violates a data constraint.")
    logger.error("Unclassified integrity error: %s", exc.orig)
    return Internal()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    """Current UTC time as ISO 8601 -- the format of every timestamp column."""
    return datetime.now(timezone.utc).isoformat()


def _statement(query: str | Executable) -> Executable:
    return text(query) if isinstance(query, str) else query


def _is_text_insert(query: str | Executable) -> bool:
    return isinstance(query, str) and query.lstrip().upper().startswith("INSERT")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class Database:
    """Generic SQL execution interface over a SQLAlchemy engine.

    timeout bounds how long a call waits for a connection or a write lock
    (sqlite3 `timeout`, pool_timeout elsewhere). There is no per-statement
    cancellation. poolclass overrides the dialect default (tests pass
    StaticPool for shared in-memory SQLite).
    """

    def __init__(self, url: str, timeout: float = 30.0, poolclass: type[Pool] | None = None) -> None:
        self.url = url
        engine_options: dict[str, Any] = {} if poolclass is None else {"poolclass": poolclass}
        if url.startswith("sqlite"):
            self.engine: Engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": timeout},
                **engine_options,
            )
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        else:
            self.engine = create_engine(url, pool_pre_ping=True, pool_timeout=timeout, **engine_options)

    def create_schema(self) -> None:
        """Create all tables if absent. Idempotent -- safe on every startup."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Schema creation failed")
            raise Internal() from exc

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def fetch_one(self, query: str | Executable, params: Mapping[str, Any] | None = None) -> Row | None:
        """Return the first row of the result, or None when there is none."""
        try:
            with self.engine.begin() as conn:
                return conn.execute(_statement(query), dict(params or {})).fetchone()
        except IntegrityError as exc:
            raise _translate_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            logger.exception("fetch_one failed")
            raise Internal() from exc

    def fetch_many(self, query: str | Executable, params: Mapping[str, Any] | None = None) -> list[Row]:
        """Return every row of the result (possibly empty)."""
        try:
            with self.engine.begin() as conn:
                return list(conn.execute(_statement(query), dict(params or {})).fetchall())
        except IntegrityError as exc:
            raise _translate_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            logger.exception("fetch_many failed")
            raise Internal() from exc

    def execute(self, query: str | Executable, params: Mapping[str, Any] | None = None) -> ExecResult:
        """Run a mutating statement in its own transaction.

        generated_id is the new primary key for INSERTs and None otherwise.
        rows_affected is the driver rowcount (matched rows for UPDATE on
        SQLite, so re-applying the same value still reports 1).
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_statement(query), dict(params or {}))
                generated_id = None
                if result.is_insert:
                    pk = result.inserted_primary_key
                    generated_id = pk[0] if pk else None
                elif _is_text_insert(query):
                    generated_id = result.lastrowid
                return ExecResult(generated_id=generated_id, rows_affected=result.rowcount)
        except IntegrityError as exc:
            raise _translate_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            logger.exception("execute failed")
            raise Internal() from exc

    # ------------------------------------------------------------------
    # Health / lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by GET /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self.engine.dispose()
