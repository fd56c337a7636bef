"""
tracker/users.py

User records: signup, credential checks and lookups used by the auth layer
and by team-member resolution.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from tracker.config import ALLOW_ADMIN_SIGNUP, IS_DEV
from tracker.db import now_iso, placeholders
from tracker.errors import BusinessRuleError, InactiveUserError, InvalidCredentialsError
from tracker.models import UserRole
from tracker.security import hash_password, verify_password

USER_COLUMNS = "id, username, email, role, is_active, created_at, updated_at"


def user_to_dict(row) -> dict:
    """Public user shape; never includes the password hash."""
    return {
        "id": row["id"],
        "username": row["username"],
        "email": row["email"],
        "role": row["role"],
        "isActive": bool(row["is_active"]),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def get_user_by_id(conn: sqlite3.Connection, user_id: int) -> Optional[sqlite3.Row]:
    cur = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    return cur.fetchone()


def find_active_user_ids(conn: sqlite3.Connection, user_ids: Iterable[int]) -> List[int]:
    ids = sorted(set(user_ids))
    if not ids:
        return []
    cur = conn.execute(
        f"SELECT id FROM users WHERE is_active = 1 AND id IN ({placeholders(ids)})",
        tuple(ids),
    )
    return [row["id"] for row in cur.fetchall()]


def create_user(
    conn: sqlite3.Connection,
    username: str,
    email: str,
    password: str,
    role: str = UserRole.user.value,
    is_active: bool = True,
) -> sqlite3.Row:
    """Insert a user. Duplicate username/email raises BusinessRuleError."""
    email_norm = email.strip().lower()
    cur = conn.execute(
        "SELECT username, email FROM users WHERE username = ? OR email = ?",
        (username, email_norm),
    )
    existing = cur.fetchone()
    if existing:
        field = "email" if existing["email"] == email_norm else "username"
        raise BusinessRuleError(f"{field} already exists")

    now = now_iso()
    try:
        cur = conn.execute(
            """
            INSERT INTO users (username, email, password_hash, role, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (username, email_norm, hash_password(password), role, int(is_active), now, now),
        )
    except sqlite3.IntegrityError as e:
        conn.rollback()
        field = "email" if "email" in str(e).lower() else "username"
        raise BusinessRuleError(f"{field} already exists")
    conn.commit()
    return get_user_by_id(conn, cur.lastrowid)


def signup(conn: sqlite3.Connection, data: dict) -> sqlite3.Row:
    """Create a user from a validated signup payload."""
    role = data.get("role", UserRole.user.value)
    if role == UserRole.admin.value and not ALLOW_ADMIN_SIGNUP:
        raise BusinessRuleError("Admin signup is disabled")
    user = create_user(conn, data["username"], data["email"], data["password"], role=role)
    if IS_DEV:
        print(f"[AUTH] Signup: user_id={user['id']}, role={user['role']}")
    return user


def authenticate(conn: sqlite3.Connection, email: str, password: str) -> sqlite3.Row:
    """Return the user row for valid credentials."""
    cur = conn.execute("SELECT * FROM users WHERE email = ?", (email.strip().lower(),))
    row = cur.fetchone()
    if not row or not verify_password(password, row["password_hash"]):
        print("[AUTH] Login rejected: invalid credentials")
        raise InvalidCredentialsError()
    if not row["is_active"]:
        print(f"[AUTH] Login rejected: inactive user_id={row['id']}")
        raise InactiveUserError()
    return get_user_by_id(conn, row["id"])


def set_user_active(conn: sqlite3.Connection, user_id: int, is_active: bool) -> None:
    conn.execute(
        "UPDATE users SET is_active = ?, updated_at = ? WHERE id = ?",
        (int(is_active), now_iso(), user_id),
    )
    conn.commit()


def set_user_role(conn: sqlite3.Connection, user_id: int, role: str) -> None:
    conn.execute(
        "UPDATE users SET role = ?, updated_at = ? WHERE id = ?",
        (role, now_iso(), user_id),
    )
    conn.commit()