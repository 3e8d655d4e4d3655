"""
audit/log.py -- Append-only audit trail of security-relevant events.

Writes are best-effort: record() runs synchronously so the entry exists
before the HTTP response goes out, but a failed write is logged at ERROR and
reported as False. It never raises into the flow that triggered it, because
the primary operation has already committed and must not be reported as
failed just because its audit entry could not be stored.

Entries are never updated or deleted by this module. They disappear only
through the ON DELETE CASCADE from users.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from core.errors import AppError
from store.database import Database, now_iso
from store.mappers import row_to_log_entry
from store.models import AuditLogEntry, EventType
from store.schema import user_logs

logger = logging.getLogger("edutech.audit")


class AuditLog:
    """Writer and reader for user_logs.

    Usage:
        audit = AuditLog(db)
        audit.record(user.id, EventType.LOGIN, user.email, user.full_name, "User logged in")
        entries = audit.for_user(user.id)
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def record(
        self,
        user_id: int,
        event_type: EventType | str,
        email: str | None,
        full_name: str | None,
        action: str,
    ) -> bool:
        """Append one entry. Returns True if written, False if the write failed (and was logged)."""
        log_type = event_type.value if isinstance(event_type, EventType) else str(event_type)
        try:
            self.db.execute(
                user_logs.insert().values(
                    user_id=user_id,
                    log_type=log_type,
                    email=email,
                    full_name=full_name,
                    action=action,
                    logged_at=now_iso(),
                )
            )
        except AppError as exc:
            logger.error(
                "Audit write failed: type=%s user_id=%s action=%r error=%s",
                log_type,
                user_id,
                action,
                exc.__cause__ or exc,
            )
            return False
        return True

    def for_user(self, user_id: int) -> list[AuditLogEntry]:
        """Return every entry for user_id, newest first."""
        rows = self.db.fetch_many(
            select(user_logs)
            .where(user_logs.c.user_id == user_id)
            .order_by(user_logs.c.logged_at.desc(), user_logs.c.id.desc())
        )
        return [row_to_log_entry(r) for r in rows]
