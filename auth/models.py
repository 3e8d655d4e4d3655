"""
auth/models.py -- Identity types produced by the Token Service.

Pattern: Data class (pure data container, zero logic beyond a role check).
Account records themselves live in store/models.py; these types describe
who is making a request, as proven by a token.

Layer rule: no imports from api/, services/, or audit/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from store.models import Role


@dataclass(frozen=True)
class Identity:
    """The (user id, email, role) triple resolved from a valid token.

    Built from token claims only -- no store lookup -- so an identity can
    outlive the account it names until the token expires.
    """

    id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value


@dataclass(frozen=True)
class TokenClaims:
    """Decoded and verified claims of an access token."""

    user_id: int
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime

    def identity(self) -> Identity:
        return Identity(id=self.user_id, email=self.email, role=self.role)
