"""
core/errors.py -- Typed failure taxonomy shared by every layer.

Flows raise these; api/main.py renders them into the standard error envelope.
Each class carries its HTTP status and machine-readable code so the mapping
lives in exactly one place.

  InvalidInput        400  malformed/missing fields, out-of-range values
  Unauthenticated     401  no identity resolved
  InvalidToken        401  bad signature, expired, malformed, wrong algorithm
  InvalidCredentials  401  login failed (never says which part was wrong)
  Forbidden           403  identity resolved but lacks privilege
  NotFound            404  referenced entity absent
  Conflict            409  uniqueness violation detected by a flow
  DuplicateKey        409  uniqueness violation raised by the store
  Internal            500  store/hash/token infrastructure failure

Layer rule: no imports outside the standard library.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for every failure a flow reports to its caller.

    message overrides the class default. field names the request field at
    fault (InvalidInput only, but accepted everywhere for uniformity).
    """

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)


class InvalidInput(AppError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input."


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required."


class InvalidToken(Unauthenticated):
    code = "invalid_token"
    default_message = "Invalid or expired token."


class InvalidCredentials(Unauthenticated):
    code = "invalid_credentials"
    default_message = "Invalid email or password."


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class DuplicateKey(Conflict):
    code = "duplicate_key"
    default_message = "A record with the same unique key already exists."


class Internal(AppError):
    """Infrastructure failure. The message is never shown to clients."""
