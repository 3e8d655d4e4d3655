"""
api/main.py -- FastAPI application entry point for EduTech.

Install:   pip install -e ".[test]"
Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests       -- method, path, status, latency, client host
  2. SlowAPIMiddleware  -- enforces default and per-route rate limits from api.limiter

Lifespan builds the process-wide collaborators once (Database, PasswordHasher,
TokenService, AuditLog, services) from Settings, runs first-run seeding, and
disposes the engine on shutdown. Route handlers read them from app.state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.courses import router as courses_router
from api.routes.v1.enrollments import router as enrollments_router
from api.routes.v1.users import router as users_router
from audit.log import AuditLog
from auth.passwords import PasswordHasher
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import AppError, Internal
from services.accounts import AccountService
from services.courses import CourseService
from services.enrollments import EnrollmentService
from store.database import Database
from store.seed import initialize_store

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("edutech.api")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def attach_services(
    app: FastAPI,
    db: Database,
    hasher: PasswordHasher,
    tokens: TokenService,
) -> AuditLog:
    """Place the shared collaborators and the services built on them on app.state.

    Split out of lifespan so tests can wire isolated stores and secrets
    through the same path production uses.
    """
    audit = AuditLog(db)
    app.state.db = db
    app.state.hasher = hasher
    app.state.tokens = tokens
    app.state.audit = audit
    app.state.accounts = AccountService(db, hasher, tokens, audit)
    app.state.courses = CourseService(db, audit)
    app.state.enrollments = EnrollmentService(db, audit)
    return audit


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Settings are read exactly once here and passed down as plain
    constructor arguments.
    """
    settings = get_settings()
    logger.info("EduTech API starting up")
    db = Database(settings.database_url, timeout=settings.db_timeout_seconds)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(settings.secret_key, lifetime=settings.token_lifetime)
    audit = attach_services(app, db, hasher, tokens)
    initialize_store(db, hasher, audit, settings)
    logger.info("Store initialized (%s)", db.engine.url.render_as_string(hide_password=True))

    yield

    db.close()
    logger.info("EduTech API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="EduTech API",
    description="Accounts, course catalog, enrollments and audit logging for the EduTech platform.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured around call_next for the latency field.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(courses_router, prefix="/api/v1", tags=["Courses"])
app.include_router(enrollments_router, prefix="/api/v1", tags=["Enrollments"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a typed flow failure.

    Internal failures were already logged where they happened; the client
    only ever sees the generic message. For InvalidInput, detail names the
    offending field.
    """
    if isinstance(exc, Internal):
        logger.error("Internal error on %s %s: %r", request.method, request.url.path, exc.__cause__)
        return _error_response(500, Internal.code, Internal.default_message)
    response = _error_response(exc.status_code, exc.code, exc.message, exc.field)
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies, wrong field types and bad path params are InvalidInput (400)."""
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    return _error_response(400, "invalid_input", "Request validation failed.", ", ".join(f for f in fields if f) or None)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for framework HTTP exceptions (404 route, 405 method)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Exempt from rate limiting so
# monitoring is never throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
@limiter.exempt
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    db: Database = request.app.state.db
    database = "ok" if db.ping() else "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
