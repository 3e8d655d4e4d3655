"""
tests/test_accounts.py -- Unit tests for services/accounts.py.

Covers:
  - register(): field rules, duplicate email (pre-check and store race), audit entry
  - login(): success, identical failure for wrong password and unknown email,
    dummy-hash compare on unknown email
  - verify_token(): empty, bad, and deleted-subject tokens
  - user administration guards: list / get / delete / logs
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from auth.models import Identity
from auth.tokens import TokenService
from core.errors import Conflict, Forbidden, InvalidCredentials, InvalidInput, InvalidToken, NotFound, Unauthenticated
from services.accounts import AccountService
from store.schema import users

from conftest import ADMIN_EMAIL


def _user_count(accounts: AccountService, email: str) -> int:
    return accounts.db.fetch_one(select(func.count()).select_from(users).where(users.c.email == email))[0]


def _forbid_store(monkeypatch: pytest.MonkeyPatch, accounts: AccountService) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("store must not be touched before the guard passes")

    for name in ("fetch_one", "fetch_many", "execute"):
        monkeypatch.setattr(accounts.db, name, fail)


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_success_returns_token_and_user(self, accounts: AccountService, tokens: TokenService) -> None:
        result = accounts.register("alice@example.com", "secret1", "Alice")

        assert result.user.email == "alice@example.com"
        assert result.user.full_name == "Alice"
        assert result.user.role == "user"
        claims = tokens.verify(result.token)
        assert (claims.user_id, claims.email, claims.role) == (result.user.id, "alice@example.com", "user")

    def test_password_is_stored_hashed(self, accounts: AccountService) -> None:
        result = accounts.register("alice@example.com", "secret1")
        assert result.user.password_hash != "secret1"
        assert accounts.hasher.verify("secret1", result.user.password_hash)

    def test_full_name_defaults_to_empty(self, accounts: AccountService) -> None:
        assert accounts.register("alice@example.com", "secret1").user.full_name == ""

    def test_records_registration(self, accounts: AccountService) -> None:
        user = accounts.register("alice@example.com", "secret1", "Alice").user
        [entry] = accounts.audit.for_user(user.id)
        assert entry.log_type == "REGISTRATION"
        assert entry.action == "New user registration"

    @pytest.mark.parametrize(
        ("email", "password", "field"),
        [
            (None, "secret1", "email"),
            ("", "secret1", "email"),
            ("alice@example.com", None, "password"),
            ("alice@example.com", "", "password"),
            ("alice@example.com", "12345", "password"),
            ("alice@example.com", "x" * 73, "password"),
        ],
    )
    def test_invalid_fields(self, accounts: AccountService, email, password, field) -> None:
        with pytest.raises(InvalidInput) as excinfo:
            accounts.register(email, password)
        assert excinfo.value.field == field

    def test_six_character_password_accepted(self, accounts: AccountService) -> None:
        accounts.register("alice@example.com", "123456")

    def test_duplicate_email_conflicts(self, accounts: AccountService) -> None:
        accounts.register("alice@example.com", "secret1")
        with pytest.raises(Conflict):
            accounts.register("alice@example.com", "another1")
        assert _user_count(accounts, "alice@example.com") == 1

    def test_duplicate_past_the_pre_check_conflicts(
        self, accounts: AccountService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        accounts.register("alice@example.com", "secret1")
        # Simulate a concurrent registration that slipped past the lookup.
        monkeypatch.setattr(accounts.db, "fetch_one", lambda *args, **kwargs: None)

        with pytest.raises(Conflict):
            accounts.register("alice@example.com", "secret1")

        monkeypatch.undo()
        assert _user_count(accounts, "alice@example.com") == 1


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_success_issues_token_and_records_login(self, accounts: AccountService, tokens: TokenService) -> None:
        user = accounts.register("alice@example.com", "secret1", "Alice").user

        result = accounts.login("alice@example.com", "secret1")

        assert result.user.id == user.id
        assert tokens.verify(result.token).user_id == user.id
        assert accounts.audit.for_user(user.id)[0].log_type == "LOGIN"

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, accounts: AccountService) -> None:
        accounts.register("alice@example.com", "secret1")

        with pytest.raises(InvalidCredentials) as wrong:
            accounts.login("alice@example.com", "wrong-password")
        with pytest.raises(InvalidCredentials) as unknown:
            accounts.login("nobody@example.com", "secret1")

        assert type(wrong.value) is type(unknown.value)
        assert wrong.value.message == unknown.value.message
        assert wrong.value.field == unknown.value.field is None

    def test_unknown_email_runs_dummy_compare(self, accounts: AccountService, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(accounts.hasher, "verify_dummy", lambda plaintext: calls.append(plaintext))

        with pytest.raises(InvalidCredentials):
            accounts.login("nobody@example.com", "secret1")

        assert calls == ["secret1"]

    def test_failed_login_records_nothing(self, accounts: AccountService) -> None:
        user = accounts.register("alice@example.com", "secret1").user
        with pytest.raises(InvalidCredentials):
            accounts.login("alice@example.com", "wrong-password")
        assert [e.log_type for e in accounts.audit.for_user(user.id)] == ["REGISTRATION"]

    def test_email_is_case_sensitive(self, accounts: AccountService) -> None:
        accounts.register("alice@example.com", "secret1")
        with pytest.raises(InvalidCredentials):
            accounts.login("Alice@example.com", "secret1")

    @pytest.mark.parametrize(("email", "password"), [(None, "secret1"), ("alice@example.com", None), ("", "")])
    def test_missing_fields(self, accounts: AccountService, email, password) -> None:
        with pytest.raises(InvalidInput):
            accounts.login(email, password)

    def test_seeded_admin_can_log_in(self, accounts: AccountService) -> None:
        result = accounts.login(ADMIN_EMAIL, "password123")
        assert result.user.role == "admin"


# ---------------------------------------------------------------------------
# verify_token
# ---------------------------------------------------------------------------


class TestVerifyToken:
    def test_returns_user(self, accounts: AccountService) -> None:
        registered = accounts.register("alice@example.com", "secret1", "Alice")
        user = accounts.verify_token(registered.token)
        assert user.id == registered.user.id
        assert user.full_name == "Alice"

    @pytest.mark.parametrize("token", [None, ""])
    def test_empty_token(self, accounts: AccountService, token) -> None:
        with pytest.raises(InvalidInput):
            accounts.verify_token(token)

    def test_garbage_token(self, accounts: AccountService) -> None:
        with pytest.raises(InvalidToken):
            accounts.verify_token("not-a-token")

    def test_deleted_user_token_still_verifies_but_user_is_gone(
        self, accounts: AccountService, tokens: TokenService, admin: Identity
    ) -> None:
        registered = accounts.register("bob@example.com", "secret1")
        accounts.delete_user(admin, registered.user.id)

        # No revocation: the signature and expiry still check out.
        assert tokens.verify(registered.token).user_id == registered.user.id
        with pytest.raises(NotFound):
            accounts.verify_token(registered.token)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


class TestListAndGetUsers:
    def test_admin_lists_users_newest_first(self, accounts: AccountService, admin: Identity) -> None:
        accounts.register("alice@example.com", "secret1")
        accounts.register("bob@example.com", "secret1")

        emails = [u.email for u in accounts.list_users(admin)]

        assert emails == ["bob@example.com", "alice@example.com", ADMIN_EMAIL]

    def test_non_admin_cannot_list_and_store_is_untouched(
        self, accounts: AccountService, make_user, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        alice = make_user("alice@example.com")
        _forbid_store(monkeypatch, accounts)
        with pytest.raises(Forbidden):
            accounts.list_users(alice)

    def test_anonymous_cannot_list(self, accounts: AccountService) -> None:
        with pytest.raises(Unauthenticated):
            accounts.list_users(None)

    def test_user_reads_own_record(self, accounts: AccountService, make_user) -> None:
        alice = make_user("alice@example.com")
        assert accounts.get_user(alice, alice.id).email == "alice@example.com"

    def test_user_cannot_read_other_record(self, accounts: AccountService, make_user) -> None:
        alice = make_user("alice@example.com")
        bob = make_user("bob@example.com")
        with pytest.raises(Forbidden):
            accounts.get_user(alice, bob.id)

    def test_admin_reads_any_record(self, accounts: AccountService, admin: Identity, make_user) -> None:
        bob = make_user("bob@example.com")
        assert accounts.get_user(admin, bob.id).email == "bob@example.com"

    def test_missing_user(self, accounts: AccountService, admin: Identity) -> None:
        with pytest.raises(NotFound):
            accounts.get_user(admin, 999)


class TestDeleteUser:
    def test_admin_deletes_user_with_cascade(self, accounts: AccountService, admin: Identity) -> None:
        bob = accounts.register("bob@example.com", "secret1", "Bob").user

        deleted = accounts.delete_user(admin, bob.id)

        assert deleted.email == "bob@example.com"
        assert _user_count(accounts, "bob@example.com") == 0
        assert accounts.audit.for_user(bob.id) == []

    def test_deletion_is_audited_against_the_admin(self, accounts: AccountService, admin: Identity) -> None:
        bob = accounts.register("bob@example.com", "secret1", "Bob").user

        accounts.delete_user(admin, bob.id)

        entry = accounts.audit.for_user(admin.id)[0]
        assert entry.log_type == "USER_DELETED"
        assert entry.email == "bob@example.com"
        assert entry.full_name == "Bob"
        assert entry.action == f"User deleted by admin: {ADMIN_EMAIL}"

    def test_admin_cannot_delete_self(self, accounts: AccountService, admin: Identity) -> None:
        with pytest.raises(InvalidInput):
            accounts.delete_user(admin, admin.id)
        assert _user_count(accounts, ADMIN_EMAIL) == 1

    def test_admin_cannot_delete_other_admin(self, accounts: AccountService, admin: Identity, make_user) -> None:
        other = make_user("owner@example.com", role="admin")
        with pytest.raises(InvalidInput):
            accounts.delete_user(admin, other.id)
        assert _user_count(accounts, "owner@example.com") == 1

    def test_missing_user(self, accounts: AccountService, admin: Identity) -> None:
        with pytest.raises(NotFound):
            accounts.delete_user(admin, 999)

    def test_non_admin_cannot_delete_and_store_is_untouched(
        self, accounts: AccountService, make_user, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        alice = make_user("alice@example.com")
        bob = make_user("bob@example.com")
        _forbid_store(monkeypatch, accounts)
        with pytest.raises(Forbidden):
            accounts.delete_user(alice, bob.id)


class TestUserLogs:
    def test_admin_reads_logs_newest_first(self, accounts: AccountService, admin: Identity) -> None:
        alice = accounts.register("alice@example.com", "secret1").user
        accounts.login("alice@example.com", "secret1")

        types = [e.log_type for e in accounts.get_user_logs(admin, alice.id)]

        assert types == ["LOGIN", "REGISTRATION"]

    def test_non_admin_cannot_read_logs(self, accounts: AccountService, make_user) -> None:
        alice = make_user("alice@example.com")
        with pytest.raises(Forbidden):
            accounts.get_user_logs(alice, alice.id)
