"""
api/routes/v1/auth.py -- Registration, login and token verification endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; 201 with token + user
  POST /api/v1/auth/login     -- password login; 200 with token + user
  POST /api/v1/auth/verify    -- resolve a token to its (still existing) user
  GET  /api/v1/auth/me        -- identity carried by the caller's own token

Security:
  [H2] register and login are rate-limited per IP (LOGIN_RATE_LIMIT).
  [C1] AccountService.login() provides timing equalization -- never inline
       the lookup + verify here.
  [M5] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import AuthResponse, LoginRequest, RegisterRequest, UserResponse, UserSummary, VerifyRequest
from auth.dependencies import current_identity
from auth.models import Identity
from services.accounts import AccountService

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/verify:   public -- the token travels in the body
# - GET  /api/v1/auth/me:       requires auth (current_identity)
router = APIRouter()


@limiter.limit(LOGIN_RATE_LIMIT)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, response: Response, body: RegisterRequest) -> AuthResponse:
    """Create a `user`-role account and log it in."""
    accounts: AccountService = request.app.state.accounts
    result = accounts.register(body.email, body.password, body.full_name)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return AuthResponse(
        message="User registered successfully",
        token=result.token,
        user=UserSummary.from_user(result.user),
    )


@limiter.limit(LOGIN_RATE_LIMIT)  # [H2]
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password.

    Wrong password and unknown email produce the same 401 body so the
    response does not reveal which emails are registered.
    """
    accounts: AccountService = request.app.state.accounts
    result = accounts.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return AuthResponse(
        message="Login successful",
        token=result.token,
        user=UserSummary.from_user(result.user),
    )


@router.post("/auth/verify", response_model=UserResponse)
def verify(request: Request, body: VerifyRequest) -> UserResponse:
    """Return the user a token belongs to; 401 for a bad token, 404 if the account is gone."""
    accounts: AccountService = request.app.state.accounts
    user = accounts.verify_token(body.token)
    return UserResponse(user=UserSummary.from_user(user))


@router.get("/auth/me")
def me(identity: Identity = Depends(current_identity)) -> dict:
    """Return the identity claims of the caller's token."""
    return {"id": identity.id, "email": identity.email, "role": identity.role}
