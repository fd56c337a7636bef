"""
tracker/routes_auth.py

Signup, login and "who am I" endpoints.

Security guarantees:
- passwords are only ever hashed and compared, never echoed or logged
- role on the token is informational; protected routes re-read it from the DB
"""

from __future__ import annotations

import sqlite3

from fastapi import APIRouter, Depends

from tracker.auth_context import AuthContext, require_auth_context
from tracker.db import get_db
from tracker.dependencies import validated_body
from tracker.schemas import LoginRequest, SignupRequest
from tracker.security import issue_token
from tracker.users import authenticate, get_user_by_id, signup, user_to_dict

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


@router.post("/signup", status_code=201)
def signup_user(
    data: dict = Depends(validated_body(SignupRequest)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """
    Register a new user (role defaults to "user").

    Raises:
        ValidationError(400): schema violations
        BusinessRuleError(400): duplicate username/email, admin signup disabled
    """
    user = signup(conn, data)
    return {
        "message": "User registered successfully",
        "token": issue_token(user["id"], user["role"]),
        "user": user_to_dict(user),
    }


@router.post("/login")
def login(
    data: dict = Depends(validated_body(LoginRequest)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    user = authenticate(conn, data["email"], data["password"])
    return {
        "message": "Login successful",
        "token": issue_token(user["id"], user["role"]),
        "user": user_to_dict(user),
    }


@router.get("/me")
def me(
    ctx: AuthContext = Depends(require_auth_context),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    return {"user": user_to_dict(get_user_by_id(conn, ctx.user_id))}
