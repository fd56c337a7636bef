"""
tracker/projects.py

Project service: scoped CRUD plus status changes and team membership.

Scope (see tracker.scoping):
- read / update / status change: creator, team member or admin
- delete / team-member changes: creator or admin

Every multi-step operation checks all references before its first write and
commits once, so a failed check leaves nothing behind.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tracker.clients import CLIENT_NOT_FOUND, find_visible_client
from tracker.config import IS_DEV
from tracker.db import dump_json, like_pattern, load_json, now_iso, placeholders
from tracker.errors import BusinessRuleError, NotFoundError, ValidationError
from tracker.models import PageRequest, Pagination
from tracker.scoping import Action, Caller, Resource, owns, scope_filter
from tracker.users import find_active_user_ids, get_user_by_id
from tracker.validation import parse_iso_datetime

PROJECT_NOT_FOUND = "Project not found or access denied"
MEMBERS_NOT_FOUND = "One or more team members not found"
DATE_ORDER_MESSAGE = "End date must be after start date"

PROJECT_SELECT = """
    SELECT p.*,
           c.name AS client_name, c.email AS client_email, c.company AS client_company,
           u.username AS creator_username, u.email AS creator_email
    FROM projects p
    LEFT JOIN clients c ON c.id = p.client_id
    LEFT JOIN users u ON u.id = p.created_by
"""

# payload key -> column (client and teamMembers are handled separately)
PROJECT_FIELDS = {
    "name": "name",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "budget": "budget",
    "startDate": "start_date",
    "endDate": "end_date",
    "deliverables": "deliverables_json",
    "tags": "tags_json",
    "isActive": "is_active",
}


# ---------------------------------------------------------
# Serialization
# ---------------------------------------------------------
def project_to_dict(row, members: List[dict]) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "client": {
            "id": row["client_id"],
            "name": row["client_name"],
            "email": row["client_email"],
            "company": row["client_company"],
        },
        "status": row["status"],
        "priority": row["priority"],
        "budget": row["budget"],
        "startDate": row["start_date"],
        "endDate": row["end_date"],
        "deliverables": load_json(row["deliverables_json"], []),
        "teamMembers": members,
        "tags": load_json(row["tags_json"], []),
        "isActive": bool(row["is_active"]),
        "createdBy": {
            "id": row["created_by"],
            "username": row["creator_username"],
            "email": row["creator_email"],
        },
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _members_by_project(conn: sqlite3.Connection, project_ids: List[int]) -> Dict[int, List[dict]]:
    members: Dict[int, List[dict]] = {pid: [] for pid in project_ids}
    if not project_ids:
        return members
    cur = conn.execute(
        f"""
        SELECT tm.project_id, u.id, u.username, u.email
        FROM project_team_members tm
        JOIN users u ON u.id = tm.user_id
        WHERE tm.project_id IN ({placeholders(project_ids)})
        ORDER BY tm.rowid
        """,
        tuple(project_ids),
    )
    for row in cur.fetchall():
        members[row["project_id"]].append({"id": row["id"], "username": row["username"], "email": row["email"]})
    return members


def _rows_to_dicts(conn: sqlite3.Connection, rows: List[sqlite3.Row]) -> List[dict]:
    members = _members_by_project(conn, [row["id"] for row in rows])
    return [project_to_dict(row, members[row["id"]]) for row in rows]


def list_team_members(conn: sqlite3.Connection, project_id: int) -> List[dict]:
    return _members_by_project(conn, [project_id])[project_id]


def _member_ids(conn: sqlite3.Connection, project_id: int) -> List[int]:
    cur = conn.execute(
        "SELECT user_id FROM project_team_members WHERE project_id = ? ORDER BY rowid",
        (project_id,),
    )
    return [row["user_id"] for row in cur.fetchall()]


def _load(conn: sqlite3.Connection, project_id: int) -> dict:
    row = conn.execute(f"{PROJECT_SELECT} WHERE p.id = ?", (project_id,)).fetchone()
    return _rows_to_dicts(conn, [row])[0]


# ---------------------------------------------------------
# Invariant checks
# ---------------------------------------------------------
def check_date_order(start_date: Optional[str], end_date: Optional[str]) -> None:
    """Persistence-level check on the merged record: endDate must not precede startDate."""
    start = parse_iso_datetime(start_date)
    end = parse_iso_datetime(end_date)
    if start and end and end < start:
        raise ValidationError([DATE_ORDER_MESSAGE])


def _dedupe(ids: Iterable[int]) -> List[int]:
    seen = set()
    out = []
    for member_id in ids:
        if member_id not in seen:
            seen.add(member_id)
            out.append(member_id)
    return out


def resolve_team_members(conn: sqlite3.Connection, member_ids: Iterable[int]) -> List[int]:
    """All ids must belong to active users; otherwise nothing is attached."""
    ids = _dedupe(member_ids)
    if len(find_active_user_ids(conn, ids)) != len(ids):
        raise BusinessRuleError(MEMBERS_NOT_FOUND)
    return ids


def _require_visible_client(conn: sqlite3.Connection, caller: Caller, client_id: int) -> None:
    if not find_visible_client(conn, caller, client_id, active_only=True):
        raise NotFoundError(CLIENT_NOT_FOUND)


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
def find_project(
    conn: sqlite3.Connection,
    caller: Caller,
    project_id: int,
    action: str = Action.READ,
) -> Optional[sqlite3.Row]:
    """Active project row if caller's scope for action covers it, else None."""
    conditions = ["p.id = ?", "p.is_active = 1"]
    params: List[Any] = [project_id]
    scope_filter(caller, Resource.PROJECT, action, alias="p").apply(conditions, params)
    cur = conn.execute(f"{PROJECT_SELECT} WHERE {' AND '.join(conditions)}", tuple(params))
    return cur.fetchone()


def _require_project(conn: sqlite3.Connection, caller: Caller, project_id: int, action: str) -> sqlite3.Row:
    row = find_project(conn, caller, project_id, action)
    if not row:
        if IS_DEV:
            print(f"[PROJECTS] Not found or out of scope: project_id={project_id}, user_id={caller.user_id}, action={action}")
        raise NotFoundError(PROJECT_NOT_FOUND)
    return row


def get_project(conn: sqlite3.Connection, caller: Caller, project_id: int) -> dict:
    row = _require_project(conn, caller, project_id, Action.READ)
    return _rows_to_dicts(conn, [row])[0]


def query_projects(
    conn: sqlite3.Connection,
    page: PageRequest,
    scope=None,
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    client_id: Optional[int] = None,
    is_active: Optional[bool] = True,
) -> Tuple[List[dict], int]:
    """Filtered page of projects plus the total match count. scope is a ScopeFilter or None."""
    conditions: List[str] = []
    params: List[Any] = []

    if search:
        pattern = like_pattern(search)
        conditions.append(
            "(p.name LIKE ? ESCAPE '\\' OR p.description LIKE ? ESCAPE '\\'"
            " OR EXISTS (SELECT 1 FROM json_each(p.tags_json) t WHERE t.value LIKE ? ESCAPE '\\'))"
        )
        params.extend([pattern, pattern, pattern])
    if status:
        conditions.append("p.status = ?")
        params.append(status)
    if priority:
        conditions.append("p.priority = ?")
        params.append(priority)
    if client_id is not None:
        conditions.append("p.client_id = ?")
        params.append(client_id)
    if is_active is not None:
        conditions.append("p.is_active = ?")
        params.append(int(is_active))
    if scope is not None:
        scope.apply(conditions, params)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    total = conn.execute(f"SELECT COUNT(*) FROM projects p {where}", tuple(params)).fetchone()[0]
    cur = conn.execute(
        f"{PROJECT_SELECT} {where} ORDER BY p.created_at DESC, p.id DESC LIMIT ? OFFSET ?",
        tuple(params) + (page.limit, page.offset),
    )
    return _rows_to_dicts(conn, cur.fetchall()), total


def list_projects(
    conn: sqlite3.Connection,
    caller: Caller,
    page: PageRequest,
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    client_id: Optional[int] = None,
    is_active: Optional[bool] = True,
) -> Dict[str, Any]:
    scope = scope_filter(caller, Resource.PROJECT, Action.READ, alias="p")
    projects, total = query_projects(
        conn,
        page,
        scope=scope,
        search=search,
        status=status,
        priority=priority,
        client_id=client_id,
        is_active=is_active,
    )
    if IS_DEV:
        print(f"[PROJECTS] List: user_id={caller.user_id}, search={search!r}, results={len(projects)}, total={total}")
    return {
        "projects": projects,
        "pagination": Pagination.build(page.page, page.limit, total),
    }


# ---------------------------------------------------------
# Mutations
# ---------------------------------------------------------
def _column_value(key: str, value: Any) -> Any:
    if key in ("deliverables", "tags"):
        return dump_json(value or [])
    if key == "isActive":
        return int(bool(value))
    return value


def create_project(conn: sqlite3.Connection, caller: Caller, data: dict) -> dict:
    client_id = data["client"]
    _require_visible_client(conn, caller, client_id)
    member_ids = resolve_team_members(conn, data.get("teamMembers") or [])
    check_date_order(data.get("startDate"), data.get("endDate"))

    now = now_iso()
    keys = [key for key in PROJECT_FIELDS if key in data]
    columns = [PROJECT_FIELDS[key] for key in keys] + ["client_id", "created_by", "created_at", "updated_at"]
    values = [_column_value(key, data[key]) for key in keys] + [client_id, caller.user_id, now, now]

    try:
        cur = conn.execute(
            f"INSERT INTO projects ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            tuple(values),
        )
        project_id = cur.lastrowid
        conn.executemany(
            "INSERT INTO project_team_members (project_id, user_id, added_at) VALUES (?, ?, ?)",
            [(project_id, member_id, now) for member_id in member_ids],
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise

    if IS_DEV:
        print(f"[PROJECTS] Created project_id={project_id}, client_id={client_id}, created_by={caller.user_id}")

    return _load(conn, project_id)


def update_project(conn: sqlite3.Connection, caller: Caller, project_id: int, data: dict) -> dict:
    existing = _require_project(conn, caller, project_id, Action.UPDATE)
    # Deactivation follows the delete rule: creator or admin only
    if data.get("isActive") is False and not owns(caller, existing["created_by"]):
        raise NotFoundError(PROJECT_NOT_FOUND)
    current_members = _member_ids(conn, project_id)

    new_members: Optional[List[int]] = None
    if "teamMembers" in data:
        new_members = _dedupe(data["teamMembers"] or [])
        if set(new_members) != set(current_members):
            # Membership changes stay with the creator (or an admin)
            if not owns(caller, existing["created_by"]):
                raise NotFoundError(PROJECT_NOT_FOUND)
            added = [m for m in new_members if m not in current_members]
            resolve_team_members(conn, added)

    client_id = data.get("client", existing["client_id"])
    if client_id != existing["client_id"]:
        _require_visible_client(conn, caller, client_id)

    check_date_order(
        data.get("startDate", existing["start_date"]),
        data.get("endDate", existing["end_date"]),
    )

    keys = [key for key in PROJECT_FIELDS if key in data]
    assignments = [f"{PROJECT_FIELDS[key]} = ?" for key in keys] + ["client_id = ?", "updated_at = ?"]
    now = now_iso()
    values = [_column_value(key, data[key]) for key in keys] + [client_id, now]

    try:
        conn.execute(
            f"UPDATE projects SET {', '.join(assignments)} WHERE id = ?",
            tuple(values) + (project_id,),
        )
        if new_members is not None and set(new_members) != set(current_members):
            removed = [m for m in current_members if m not in new_members]
            added = [m for m in new_members if m not in current_members]
            conn.executemany(
                "DELETE FROM project_team_members WHERE project_id = ? AND user_id = ?",
                [(project_id, member_id) for member_id in removed],
            )
            conn.executemany(
                "INSERT INTO project_team_members (project_id, user_id, added_at) VALUES (?, ?, ?)",
                [(project_id, member_id, now) for member_id in added],
            )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise

    if IS_DEV:
        print(f"[PROJECTS] Updated project_id={project_id}, by user_id={caller.user_id}")

    return _load(conn, project_id)


def delete_project(conn: sqlite3.Connection, caller: Caller, project_id: int) -> None:
    """Soft delete; team members cannot delete."""
    _require_project(conn, caller, project_id, Action.DELETE)
    conn.execute(
        "UPDATE projects SET is_active = 0, updated_at = ? WHERE id = ?",
        (now_iso(), project_id),
    )
    conn.commit()
    print(f"[PROJECTS] Soft-deleted project_id={project_id}, by user_id={caller.user_id}")


def update_status(conn: sqlite3.Connection, caller: Caller, project_id: int, status: str) -> dict:
    # No transition ordering: any valid status may follow any other
    _require_project(conn, caller, project_id, Action.UPDATE)
    conn.execute(
        "UPDATE projects SET status = ?, updated_at = ? WHERE id = ?",
        (status, now_iso(), project_id),
    )
    conn.commit()
    if IS_DEV:
        print(f"[PROJECTS] Status project_id={project_id} -> {status}, by user_id={caller.user_id}")
    return _load(conn, project_id)


def add_team_member(conn: sqlite3.Connection, caller: Caller, project_id: int, user_id: int) -> List[dict]:
    _require_project(conn, caller, project_id, Action.MANAGE_TEAM)

    user = get_user_by_id(conn, user_id)
    if not user or not user["is_active"]:
        raise NotFoundError("User not found")

    if user_id in _member_ids(conn, project_id):
        raise BusinessRuleError("User is already a team member")

    conn.execute(
        "INSERT INTO project_team_members (project_id, user_id, added_at) VALUES (?, ?, ?)",
        (project_id, user_id, now_iso()),
    )
    conn.execute("UPDATE projects SET updated_at = ? WHERE id = ?", (now_iso(), project_id))
    conn.commit()

    if IS_DEV:
        print(f"[PROJECTS] Added member user_id={user_id} to project_id={project_id}")
    return list_team_members(conn, project_id)


def remove_team_member(conn: sqlite3.Connection, caller: Caller, project_id: int, user_id: int) -> List[dict]:
    """Set difference: removing someone who is not a member is not an error."""
    _require_project(conn, caller, project_id, Action.MANAGE_TEAM)

    cur = conn.execute(
        "DELETE FROM project_team_members WHERE project_id = ? AND user_id = ?",
        (project_id, user_id),
    )
    if cur.rowcount:
        conn.execute("UPDATE projects SET updated_at = ? WHERE id = ?", (now_iso(), project_id))
    conn.commit()

    if IS_DEV:
        print(f"[PROJECTS] Removed member user_id={user_id} from project_id={project_id} (removed={cur.rowcount})")
    return list_team_members(conn, project_id)
