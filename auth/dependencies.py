"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Tokens arrive in the Authorization: Bearer <token> header and are verified
with the TokenService stored on app.state at startup.

get_identity() is the soft variant: no header -> None; a header with a bad
token -> InvalidToken (401). A client that sends a token expects it to be
honoured, so a broken one is reported rather than silently ignored.
current_identity() wraps it and raises Unauthenticated when nothing was sent.

The identity is built from token claims alone. There is no
store lookup here, so a deleted account's token keeps working until expiry.

Layer rule: no imports from api/ or services/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.access import require_authenticated
from auth.models import Identity
from auth.tokens import TokenService
from core.errors import InvalidToken


def bearer_token(request: Request) -> str | None:
    """Return the raw token from the Authorization header, or None if absent."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidToken()
    return token.strip()


def get_identity(request: Request) -> Identity | None:
    """Resolve the caller's identity from the bearer token, if one was sent."""
    token = bearer_token(request)
    if token is None:
        return None
    tokens: TokenService = request.app.state.tokens
    return tokens.verify(token).identity()


def current_identity(request: Request) -> Identity:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(current_identity)): ...
    """
    return require_authenticated(get_identity(request))
