"""
tracker/clients.py

Client service: scoped CRUD for customer organizations.

Security guarantees:
- created_by always comes from the caller, never from the payload
- every lookup applies scope_filter(), so out-of-scope rows read as missing
- soft delete only; refused while active projects reference the client
"""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from tracker.config import IS_DEV
from tracker.db import dump_json, like_pattern, load_json, now_iso
from tracker.errors import BusinessRuleError, ForbiddenError, NotFoundError
from tracker.models import PageRequest, Pagination
from tracker.scoping import Caller, Resource, is_admin, scope_filter

CLIENT_NOT_FOUND = "Client not found or access denied"
ACTIVE_PROJECTS_BLOCK = "Cannot delete client with active projects. Please complete or remove projects first."

CLIENT_SELECT = """
    SELECT c.*, u.username AS creator_username, u.email AS creator_email
    FROM clients c
    LEFT JOIN users u ON u.id = c.created_by
"""

# payload key -> column
CLIENT_FIELDS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "address": "address_json",
    "company": "company",
    "industry": "industry",
    "isActive": "is_active",
}


def client_to_dict(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "phone": row["phone"],
        "address": load_json(row["address_json"]),
        "company": row["company"],
        "industry": row["industry"],
        "isActive": bool(row["is_active"]),
        "createdBy": {
            "id": row["created_by"],
            "username": row["creator_username"],
            "email": row["creator_email"],
        },
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _column_value(key: str, value: Any) -> Any:
    if key == "address":
        return dump_json(value)
    if key == "isActive":
        return int(bool(value))
    return value


def _raise_duplicate(e: sqlite3.IntegrityError) -> None:
    if "clients.email" in str(e) or "email" in str(e).lower():
        raise BusinessRuleError("email already exists")
    raise e


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
def find_visible_client(
    conn: sqlite3.Connection,
    caller: Caller,
    client_id: int,
    active_only: bool = True,
) -> Optional[sqlite3.Row]:
    """Client row if it exists and caller may see it, else None."""
    conditions = ["c.id = ?"]
    params: List[Any] = [client_id]
    if active_only:
        conditions.append("c.is_active = 1")
    scope_filter(caller, Resource.CLIENT, alias="c").apply(conditions, params)
    cur = conn.execute(f"{CLIENT_SELECT} WHERE {' AND '.join(conditions)}", tuple(params))
    return cur.fetchone()


def get_client(conn: sqlite3.Connection, caller: Caller, client_id: int) -> dict:
    row = find_visible_client(conn, caller, client_id)
    if not row:
        raise NotFoundError(CLIENT_NOT_FOUND)
    return client_to_dict(row)


def count_active_projects(conn: sqlite3.Connection, client_id: int) -> int:
    cur = conn.execute(
        "SELECT COUNT(*) FROM projects WHERE client_id = ? AND is_active = 1",
        (client_id,),
    )
    return cur.fetchone()[0]


def list_clients(
    conn: sqlite3.Connection,
    caller: Caller,
    page: PageRequest,
    search: Optional[str] = None,
    is_active: Optional[bool] = True,
) -> Dict[str, Any]:
    """Paginated, scoped listing. search matches name, email or company."""
    conditions: List[str] = []
    params: List[Any] = []

    if search:
        pattern = like_pattern(search)
        conditions.append(
            "(c.name LIKE ? ESCAPE '\\' OR c.email LIKE ? ESCAPE '\\' OR c.company LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern, pattern, pattern])
    if is_active is not None:
        conditions.append("c.is_active = ?")
        params.append(int(is_active))
    scope_filter(caller, Resource.CLIENT, alias="c").apply(conditions, params)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    total = conn.execute(f"SELECT COUNT(*) FROM clients c {where}", tuple(params)).fetchone()[0]
    cur = conn.execute(
        f"{CLIENT_SELECT} {where} ORDER BY c.created_at DESC, c.id DESC LIMIT ? OFFSET ?",
        tuple(params) + (page.limit, page.offset),
    )
    clients = [client_to_dict(row) for row in cur.fetchall()]

    if IS_DEV:
        print(f"[CLIENTS] List: user_id={caller.user_id}, search={search!r}, results={len(clients)}, total={total}")

    return {
        "clients": clients,
        "pagination": Pagination.build(page.page, page.limit, total),
    }


# ---------------------------------------------------------
# Mutations
# ---------------------------------------------------------
def create_client(conn: sqlite3.Connection, caller: Caller, data: dict) -> dict:
    now = now_iso()
    keys = [key for key in CLIENT_FIELDS if key in data]
    columns = [CLIENT_FIELDS[key] for key in keys] + ["created_by", "created_at", "updated_at"]
    values = [_column_value(key, data[key]) for key in keys] + [caller.user_id, now, now]

    try:
        cur = conn.execute(
            f"INSERT INTO clients ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            tuple(values),
        )
    except sqlite3.IntegrityError as e:
        conn.rollback()
        _raise_duplicate(e)
    conn.commit()
    client_id = cur.lastrowid

    if IS_DEV:
        print(f"[CLIENTS] Created client_id={client_id}, created_by={caller.user_id}")

    row = conn.execute(f"{CLIENT_SELECT} WHERE c.id = ?", (client_id,)).fetchone()
    return client_to_dict(row)


def update_client(conn: sqlite3.Connection, caller: Caller, client_id: int, data: dict) -> dict:
    # Deactivation is admin-only, like DELETE
    if data.get("isActive") is False and not is_admin(caller):
        raise ForbiddenError()

    existing = find_visible_client(conn, caller, client_id)
    if not existing:
        raise NotFoundError(CLIENT_NOT_FOUND)

    # Deactivating through an update is a delete in disguise
    if data.get("isActive") is False and count_active_projects(conn, client_id) > 0:
        raise BusinessRuleError(ACTIVE_PROJECTS_BLOCK)

    keys = [key for key in CLIENT_FIELDS if key in data]
    assignments = [f"{CLIENT_FIELDS[key]} = ?" for key in keys] + ["updated_at = ?"]
    values = [_column_value(key, data[key]) for key in keys] + [now_iso()]

    try:
        conn.execute(
            f"UPDATE clients SET {', '.join(assignments)} WHERE id = ?",
            tuple(values) + (client_id,),
        )
    except sqlite3.IntegrityError as e:
        conn.rollback()
        _raise_duplicate(e)
    conn.commit()

    if IS_DEV:
        print(f"[CLIENTS] Updated client_id={client_id}, by user_id={caller.user_id}")

    row = conn.execute(f"{CLIENT_SELECT} WHERE c.id = ?", (client_id,)).fetchone()
    return client_to_dict(row)


def delete_client(conn: sqlite3.Connection, caller: Caller, client_id: int) -> None:
    """Soft delete. Callers gate this to admins before calling."""
    existing = find_visible_client(conn, caller, client_id)
    if not existing:
        raise NotFoundError(CLIENT_NOT_FOUND)

    if count_active_projects(conn, client_id) > 0:
        raise BusinessRuleError(ACTIVE_PROJECTS_BLOCK)

    conn.execute(
        "UPDATE clients SET is_active = 0, updated_at = ? WHERE id = ?",
        (now_iso(), client_id),
    )
    conn.commit()
    print(f"[CLIENTS] Soft-deleted client_id={client_id}, by user_id={caller.user_id}")


def list_client_projects(
    conn: sqlite3.Connection,
    caller: Caller,
    client_id: int,
    page: PageRequest,
    status: Optional[str] = None,
    is_active: Optional[bool] = True,
) -> Dict[str, Any]:
    """Projects of one client, after checking the caller can see the client."""
    # Import here to avoid circular dependency (projects imports this module)
    from tracker.projects import query_projects

    client = find_visible_client(conn, caller, client_id)
    if not client:
        raise NotFoundError(CLIENT_NOT_FOUND)

    projects, total = query_projects(conn, page, client_id=client_id, status=status, is_active=is_active)
    return {
        "client": {"id": client["id"], "name": client["name"], "email": client["email"]},
        "projects": projects,
        "pagination": Pagination.build(page.page, page.limit, total),
    }
