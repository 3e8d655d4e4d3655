"""
auth/access.py -- Access control guards.

Pure decision functions: they look only at the resolved identity (and, for
ownership checks, the owner id the caller already has), never at the store.
Every flow calls its guard first so an authorization failure leaves no
partial side effects.

    require_authenticated(identity)            -> Unauthenticated if None
    require_admin(identity)                    -> Forbidden unless admin
    require_self_or_admin(identity, owner_id)  -> Forbidden unless owner or admin

Each guard returns the identity so calls compose:
    admin = require_admin(identity)
"""

from __future__ import annotations

from auth.models import Identity
from core.errors import Forbidden, Unauthenticated


def require_authenticated(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


def require_admin(identity: Identity | None) -> Identity:
    identity = require_authenticated(identity)
    if not identity.is_admin:
        raise Forbidden("Admin access required.")
    return identity


def require_self_or_admin(identity: Identity | None, owner_id: int) -> Identity:
    identity = require_authenticated(identity)
    if identity.id != owner_id and not identity.is_admin:
        raise Forbidden()
    return identity
