"""
api/routes/v1/users.py -- User administration endpoints.

Routes:
  GET    /api/v1/users            -- list all users (admin only)
  GET    /api/v1/users/{id}       -- one user (self or admin)
  DELETE /api/v1/users/{id}       -- delete a non-admin user (admin only)
  GET    /api/v1/users/{id}/logs  -- audit entries for a user (admin only)

The guards themselves live in AccountService so they run before any store
call no matter who invokes the flow; these handlers only resolve the
identity (401 when absent) and shape the response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import (
    AuditLogListResponse,
    AuditLogOut,
    MessageResponse,
    UserListResponse,
    UserResponse,
    UserSummary,
)
from auth.dependencies import current_identity
from auth.models import Identity
from services.accounts import AccountService

router = APIRouter()


@router.get("/users", response_model=UserListResponse)
def list_users(request: Request, identity: Identity = Depends(current_identity)) -> UserListResponse:
    accounts: AccountService = request.app.state.accounts
    users = accounts.list_users(identity)
    return UserListResponse(users=[UserSummary.from_user(u) for u in users], count=len(users))


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: int, identity: Identity = Depends(current_identity)) -> UserResponse:
    """Users may read their own record; admins may read any."""
    accounts: AccountService = request.app.state.accounts
    return UserResponse(user=UserSummary.from_user(accounts.get_user(identity, user_id)))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(request: Request, user_id: int, identity: Identity = Depends(current_identity)) -> MessageResponse:
    """Delete a user. Self-deletion and deleting admins are refused with 400."""
    accounts: AccountService = request.app.state.accounts
    accounts.delete_user(identity, user_id)
    return MessageResponse(message="User deleted successfully")


@router.get("/users/{user_id}/logs", response_model=AuditLogListResponse)
def get_user_logs(
    request: Request, user_id: int, identity: Identity = Depends(current_identity)
) -> AuditLogListResponse:
    accounts: AccountService = request.app.state.accounts
    entries = accounts.get_user_logs(identity, user_id)
    return AuditLogListResponse(logs=[AuditLogOut.from_entry(e) for e in entries])
