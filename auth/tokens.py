"""
auth/tokens.py -- Signed, time-limited access tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide secret
       and carry the subject id, email, role, issue time and expiry. verify()
       raises InvalidToken on any failure -- the API layer turns that into 401.

  Secret and lifetime are constructor arguments. api/main.py builds one
       TokenService from Settings at startup; tests build their own with
       throwaway secrets. Nothing here reads configuration on its own.

  No revocation list. A token stays valid until `exp`, even after the
       account it names has been deleted. Expiry is the only way a token
       ends; keep lifetimes short if that matters.

Layer rule: no imports from api/, services/, store/, or audit/ (except the
Role enum for claim validation). Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import parse_duration
from core.errors import InvalidToken
from store.models import Role

logger = logging.getLogger("edutech.auth")

_ALGORITHM = "HS256"

_VALID_ROLES = {r.value for r in Role}

_DECODE_OPTIONS = {
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
}


class TokenService:
    """Issues and verifies HS256 JWT access tokens.

    Usage:
        tokens = TokenService(secret_key=settings.secret_key, lifetime="7d")
        token = tokens.issue(user_id=1, email="a@example.com", role="user")
        claims = tokens.verify(token)     # raises InvalidToken on failure
    """

    def __init__(self, secret_key: str, lifetime: str | int = "7d", algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret key.")
        self._secret_key = secret_key
        self.lifetime = parse_duration(lifetime)
        self.algorithm = algorithm

    def issue(self, user_id: int, email: str, role: str) -> str:
        """Encode a signed JWT for the given identity, expiring after the configured lifetime."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a JWT.

        Raises InvalidToken when the signature does not match, the token has
        expired, the payload is malformed, or the header names an algorithm
        other than the configured one.
        """
        if not isinstance(token, str) or not token:
            raise InvalidToken()
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm], options=_DECODE_OPTIONS)
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
            raise InvalidToken() from exc
        return _claims_from_payload(payload)


def _claims_from_payload(payload: dict) -> TokenClaims:
    sub = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    if not isinstance(sub, str) or not sub.isdigit():
        raise InvalidToken()
    if not isinstance(email, str) or not email:
        raise InvalidToken()
    if role not in _VALID_ROLES:
        raise InvalidToken()
    try:
        issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise InvalidToken() from exc
    return TokenClaims(
        user_id=int(sub),
        email=email,
        role=role,
        issued_at=issued_at,
        expires_at=expires_at,
    )
