"""
tracker/scoping.py

Authorization filter: turns a caller into a SQL predicate restricting which
rows they may see or change.

Rules:
- admin: no restriction
- clients: rows the caller created
- projects (read, update, status change): rows the caller created OR is a team
  member of
- projects (delete, team-member changes): rows the caller created

Every route applies the predicate inside the lookup query itself, so a row
outside the caller's scope comes back exactly like a row that does not exist.

Pure Python logic - no FastAPI imports, no database access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Protocol, Tuple

from tracker.models import UserRole


class Caller(Protocol):
    user_id: int
    role: str


class Resource:
    CLIENT = "client"
    PROJECT = "project"


class Action:
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_TEAM = "manage_team"


# Project actions that team members share with the creator
MEMBER_ACTIONS = {Action.READ, Action.UPDATE}


@dataclass(frozen=True)
class ScopeFilter:
    """SQL boolean expression plus its parameters. Empty clause means unrestricted."""
    clause: str = ""
    params: Tuple[Any, ...] = ()

    @property
    def unrestricted(self) -> bool:
        return not self.clause

    def apply(self, conditions: List[str], params: List[Any]) -> None:
        """Append this predicate to a WHERE-clause builder."""
        if self.clause:
            conditions.append(self.clause)
            params.extend(self.params)


UNRESTRICTED = ScopeFilter()


def is_admin(caller: Caller) -> bool:
    return (caller.role or "").lower() == UserRole.admin.value


def scope_filter(caller: Caller, resource: str, action: str = Action.READ, alias: str = "") -> ScopeFilter:
    """
    Build the ownership predicate for caller on resource.

    Args:
        caller: anything with user_id and role (AuthContext in routes)
        resource: Resource.CLIENT or Resource.PROJECT
        action: one of Action.*; only matters for projects
        alias: table alias used in the surrounding query ("c", "p", ...)
    """
    if is_admin(caller):
        return UNRESTRICTED

    col = f"{alias}." if alias else ""

    if resource == Resource.CLIENT:
        return ScopeFilter(f"{col}created_by = ?", (caller.user_id,))

    if resource == Resource.PROJECT:
        if action in MEMBER_ACTIONS:
            project_id = f"{col}id"
            return ScopeFilter(
                f"({col}created_by = ? OR EXISTS ("
                f"SELECT 1 FROM project_team_members tm "
                f"WHERE tm.project_id = {project_id} AND tm.user_id = ?))",
                (caller.user_id, caller.user_id),
            )
        return ScopeFilter(f"{col}created_by = ?", (caller.user_id,))

    raise ValueError(f"Unknown resource: {resource}")


def owns(caller: Caller, created_by: int) -> bool:
    """Creator-or-admin check for a row already loaded."""
    return is_admin(caller) or created_by == caller.user_id
