"""
services/accounts.py -- Registration, login, token verification and user administration.

Every public method is one flow: guards first, then a sequence of
independent atomic store calls, then the audit entry. Failures are raised
as core.errors types; nothing here knows about HTTP.

Security:
  [C1] login() always spends one bcrypt compare, against the dummy hash when
       the email is unknown, so response time does not reveal which emails
       are registered. Unknown email and wrong password raise the same
       InvalidCredentials.
  Registration's duplicate-email check is a fast path. Two concurrent
       registrations can both pass it; the UNIQUE(email) constraint rejects
       the second insert with DuplicateKey, which maps to the same Conflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select

from audit.log import AuditLog
from auth.access import require_admin, require_self_or_admin
from auth.models import Identity
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.tokens import TokenService
from core.errors import Conflict, DuplicateKey, InvalidCredentials, InvalidInput, NotFound
from store.database import Database, now_iso
from store.mappers import row_to_user
from store.models import AuditLogEntry, EventType, Role, User
from store.schema import users

logger = logging.getLogger("edutech.auth")

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class AuthResult:
    """Token plus the account it was issued for."""

    token: str
    user: User


class AccountService:
    def __init__(self, db: Database, hasher: PasswordHasher, tokens: TokenService, audit: AuditLog) -> None:
        self.db = db
        self.hasher = hasher
        self.tokens = tokens
        self.audit = audit

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_by_email(self, email: str) -> User | None:
        row = self.db.fetch_one(select(users).where(users.c.email == email))
        return row_to_user(row) if row is not None else None

    def _get_by_id(self, user_id: int) -> User | None:
        row = self.db.fetch_one(select(users).where(users.c.id == user_id))
        return row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Public flows
    # ------------------------------------------------------------------

    def register(self, email: str | None, password: str | None, full_name: str | None = None) -> AuthResult:
        """Create a `user`-role account and return a token for it."""
        if not email or not password:
            raise InvalidInput("Email and password are required", field="email" if not email else "password")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes", field="password")
        full_name = full_name or ""

        if self.db.fetch_one(select(users.c.id).where(users.c.email == email)) is not None:
            raise Conflict("User already exists with this email")

        password_hash = self.hasher.hash(password)
        now = now_iso()
        try:
            result = self.db.execute(
                users.insert().values(
                    email=email,
                    password_hash=password_hash,
                    full_name=full_name,
                    role=Role.user.value,
                    created_at=now,
                    updated_at=now,
                )
            )
        except DuplicateKey as exc:
            raise Conflict("User already exists with this email") from exc

        user = User(
            id=result.generated_id,
            email=email,
            password_hash=password_hash,
            full_name=full_name,
            role=Role.user.value,
            created_at=now,
            updated_at=now,
        )
        self.audit.record(user.id, EventType.REGISTRATION, email, full_name, "New user registration")
        logger.info("User registered (id=%s)", user.id)
        return AuthResult(token=self.tokens.issue(user.id, user.email, user.role), user=user)

    def authenticate(self, email: str, password: str) -> User:
        """Return the account for email/password or raise InvalidCredentials [C1]."""
        user = self._get_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return early before running bcrypt
            self.hasher.verify_dummy(password)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials()
        return user

    def login(self, email: str | None, password: str | None) -> AuthResult:
        if not email or not password:
            raise InvalidInput("Email and password are required", field="email" if not email else "password")
        user = self.authenticate(email, password)
        token = self.tokens.issue(user.id, user.email, user.role)
        self.audit.record(user.id, EventType.LOGIN, user.email, user.full_name, "User logged in")
        return AuthResult(token=token, user=user)

    def verify_token(self, token: str | None) -> User:
        """Return the account a token names. The account must still exist."""
        if not token:
            raise InvalidInput("Token is required", field="token")
        claims = self.tokens.verify(token)
        user = self._get_by_id(claims.user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list_users(self, identity: Identity | None) -> list[User]:
        require_admin(identity)
        rows = self.db.fetch_many(select(users).order_by(users.c.created_at.desc(), users.c.id.desc()))
        return [row_to_user(r) for r in rows]

    def get_user(self, identity: Identity | None, user_id: int) -> User:
        require_self_or_admin(identity, user_id)
        user = self._get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def delete_user(self, identity: Identity | None, user_id: int) -> User:
        """Delete a non-admin account other than the caller's. Returns the deleted user.

        Enrollments and audit entries of the deleted user go with it (FK
        cascade). The USER_DELETED entry is attributed to the acting admin so
        it survives that cascade.
        """
        admin = require_admin(identity)
        if admin.id == user_id:
            raise InvalidInput("Cannot delete your own account", field="user_id")
        target = self._get_by_id(user_id)
        if target is None:
            raise NotFound("User not found")
        if target.is_admin:
            raise InvalidInput("Cannot delete admin accounts", field="user_id")

        result = self.db.execute(users.delete().where(users.c.id == user_id))
        if result.rows_affected == 0:
            # Removed by a concurrent request between the fetch and the delete.
            raise NotFound("User not found")

        self.audit.record(
            admin.id,
            EventType.USER_DELETED,
            target.email,
            target.full_name,
            f"User deleted by admin: {admin.email}",
        )
        logger.info("User %s deleted by admin %s", user_id, admin.id)
        return target

    def get_user_logs(self, identity: Identity | None, user_id: int) -> list[AuditLogEntry]:
        require_admin(identity)
        return self.audit.for_user(user_id)
