"""
tests/conftest.py -- Shared test fixtures for EduTech unit and integration tests.

This module provides:
  - db / hasher / tokens / audit: isolated collaborators for unit tests
  - accounts / courses / enrollments: services wired to those collaborators
  - seeded: the db after initialize_store() (default admin + sample courses)
  - api_client: TestClient with an admin JWT for HTTP integration tests

Design: unit tests use plain sqlite:///:memory: -- SQLAlchemy gives each
thread one connection, and unit tests stay on one thread. The HTTP client
runs sync route handlers in a thread pool, so api_client uses a named
shared-memory URI (file:name?mode=memory&cache=shared&uri=true) with an
explicit StaticPool, so SQLAlchemy does not fall back to SingletonThreadPool
for the mode=memory URL.

Environment must be set before any api/ import: DEBUG lets get_settings()
auto-generate SECRET_KEY, and RATE_LIMIT_ENABLED=false keeps the shared
limiter from throttling the test client.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/ or core/ import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from api.main import app, attach_services
from audit.log import AuditLog
from auth.models import Identity
from auth.passwords import PasswordHasher
from auth.tokens import TokenService
from core.config import Settings
from services.accounts import AccountService
from services.courses import CourseService
from services.enrollments import EnrollmentService
from store.database import Database, now_iso
from store.schema import users
from store.seed import initialize_store

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "password123"


def shared_memory_url(name: str) -> str:
    """Named in-memory SQLite URL visible to every connection of one process."""
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def make_settings(**overrides) -> Settings:
    """Settings for tests, independent of the process environment and any .env file."""
    values = {
        "secret_key": TEST_SECRET,
        "bcrypt_rounds": 4,
        "seed_admin_email": ADMIN_EMAIL,
        "seed_admin_password": ADMIN_PASSWORD,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def insert_user(db: Database, hasher: PasswordHasher, email: str, role: str = "user", password: str = "secret1") -> int:
    """Insert an account directly, bypassing registration. Returns its id."""
    now = now_iso()
    result = db.execute(
        users.insert().values(
            email=email,
            password_hash=hasher.hash(password),
            full_name=email.split("@")[0].title(),
            role=role,
            created_at=now,
            updated_at=now,
        )
    )
    return result.generated_id


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    # Cost 4 is the bcrypt minimum; production uses 12.
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, lifetime="15m")


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database("sqlite:///:memory:")
    database.create_schema()
    yield database
    database.close()


@pytest.fixture
def audit(db: Database) -> AuditLog:
    return AuditLog(db)


@pytest.fixture
def seeded(db: Database, hasher: PasswordHasher, audit: AuditLog) -> Database:
    initialize_store(db, hasher, audit, make_settings())
    return db


@pytest.fixture
def accounts(seeded: Database, hasher: PasswordHasher, tokens: TokenService, audit: AuditLog) -> AccountService:
    return AccountService(seeded, hasher, tokens, audit)


@pytest.fixture
def courses(seeded: Database, audit: AuditLog) -> CourseService:
    return CourseService(seeded, audit)


@pytest.fixture
def enrollments(seeded: Database, audit: AuditLog) -> EnrollmentService:
    return EnrollmentService(seeded, audit)


@pytest.fixture
def make_user(seeded: Database, hasher: PasswordHasher):
    """Factory: make_user(email, role="user") -> Identity for a directly inserted account."""

    def _make(email: str, role: str = "user") -> Identity:
        return Identity(id=insert_user(seeded, hasher, email, role=role), email=email, role=role)

    return _make


@pytest.fixture
def admin(accounts: AccountService) -> Identity:
    """Identity of the seeded default admin."""
    user = accounts.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
    return Identity(id=user.id, email=user.email, role=user.role)


# ---------------------------------------------------------------------------
# HTTP integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(db: Database, hasher: PasswordHasher, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test collaborators into app.state through the same
    attach_services() the production lifespan uses.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        attach_services(app, db, hasher, tokens)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request, hasher: PasswordHasher) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    Each test module gets its own named in-memory database, seeded with the
    default admin and the sample courses before the client starts.
    """
    name = request.module.__name__.replace(".", "_")
    db = Database(shared_memory_url(name), poolclass=StaticPool)
    tokens = TokenService(TEST_SECRET, lifetime="1h")
    initialize_store(db, hasher, AuditLog(db), make_settings())

    admin = AccountService(db, hasher, tokens, AuditLog(db)).authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
    token = tokens.issue(admin.id, admin.email, admin.role)

    app.router.lifespan_context = _patch_lifespan(db, hasher, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    db.close()
