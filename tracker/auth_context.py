"""
tracker/auth_context.py

Authentication context for FastAPI dependency injection.

Contains:
- AuthContext: identity and role of the caller, re-read from the database
- require_auth_context: FastAPI dependency for auth enforcement
- require_admin: role gate for admin-only routes
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from tracker.config import IS_DEV
from tracker.db import get_db
from tracker.errors import ForbiddenError, InactiveUserError, InvalidTokenError
from tracker.models import UserRole
from tracker.security import verify_token
from tracker.users import get_user_by_id

# auto_error=False so a missing header reaches verify_token and gets its own message
security = HTTPBearer(auto_error=False)


class AuthContext(BaseModel):
    """
    Caller identity for protected endpoints.

    Role and active flag come from the users table on every request, not from
    the token, so a role change or deactivation applies immediately.
    Never trust created_by/user ids from request bodies or query params.
    """
    user_id: int
    username: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


def require_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    conn: sqlite3.Connection = Depends(get_db),
) -> AuthContext:
    """
    Process:
    1. Verify JWT signature and expiry (distinct errors for missing/invalid/expired)
    2. Fetch the user record (source of truth for role and active flag)
    3. Reject unknown or deactivated users

    Raises:
        TokenMissingError / InvalidTokenError / TokenExpiredError (401)
        InactiveUserError (401)
    """
    token = credentials.credentials if credentials else None
    claims = verify_token(token)

    user_row = get_user_by_id(conn, claims.user_id)
    if not user_row:
        print(f"[AUTH] Token for unknown user_id={claims.user_id}")
        raise InvalidTokenError()
    if not user_row["is_active"]:
        print(f"[AUTH] Inactive user attempted access: user_id={claims.user_id}")
        raise InactiveUserError()

    ctx = AuthContext(
        user_id=user_row["id"],
        username=user_row["username"],
        email=user_row["email"],
        role=user_row["role"] or UserRole.user.value,
    )

    if IS_DEV:
        print(f"[AUTH] Authenticated: user_id={ctx.user_id}, role={ctx.role}")

    return ctx


def require_admin(ctx: AuthContext = Depends(require_auth_context)) -> AuthContext:
    """Role gate, evaluated before any record is looked up."""
    if not ctx.is_admin:
        raise ForbiddenError()
    return ctx
