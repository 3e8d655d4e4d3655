"""
tests/test_access.py -- Unit tests for the guards in auth/access.py.
"""

from __future__ import annotations

import pytest

from auth.access import require_admin, require_authenticated, require_self_or_admin
from auth.models import Identity
from core.errors import Forbidden, Unauthenticated

USER = Identity(id=2, email="alice@example.com", role="user")
ADMIN = Identity(id=1, email="admin@example.com", role="admin")


def test_require_authenticated() -> None:
    assert require_authenticated(USER) is USER
    with pytest.raises(Unauthenticated):
        require_authenticated(None)


def test_require_admin() -> None:
    assert require_admin(ADMIN) is ADMIN
    with pytest.raises(Forbidden):
        require_admin(USER)
    with pytest.raises(Unauthenticated):
        require_admin(None)


def test_require_self_or_admin() -> None:
    assert require_self_or_admin(USER, owner_id=2) is USER
    assert require_self_or_admin(ADMIN, owner_id=2) is ADMIN
    with pytest.raises(Forbidden):
        require_self_or_admin(USER, owner_id=3)
    with pytest.raises(Unauthenticated):
        require_self_or_admin(None, owner_id=2)
