"""
tracker/routes_projects.py

Project endpoints, including status changes and team membership.

Security guarantees:
- all endpoints require authentication (require_auth_context)
- non-admins see projects they created or are team members of
- delete and team-member changes are creator-or-admin only
- out-of-scope projects answer 404, same as missing ones
- path ids are format-checked before any query
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tracker import projects as project_service
from tracker.auth_context import AuthContext, require_auth_context
from tracker.db import get_db
from tracker.dependencies import pagination_params, parse_bool_param, require_id, validated_body
from tracker.models import PageRequest
from tracker.schemas import ProjectRequest, ProjectStatusRequest, TeamMemberRequest

router = APIRouter(
    prefix="/api/projects",
    tags=["projects"],
)


@router.get("")
def list_projects(
    ctx: AuthContext = Depends(require_auth_context),
    page: PageRequest = Depends(pagination_params),
    search: Optional[str] = Query(None, description="Matches name, description or tags"),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    client: Optional[str] = Query(None, description="Client id"),
    is_active: Optional[str] = Query(None, alias="isActive"),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    return project_service.list_projects(
        conn,
        ctx,
        page,
        search=search.strip() if search else None,
        status=status or None,
        priority=priority or None,
        client_id=require_id(client) if client else None,
        is_active=parse_bool_param(is_active, default=True),
    )


@router.get("/{project_id}")
def get_project(
    project_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    return {"project": project_service.get_project(conn, ctx, require_id(project_id))}


@router.post("", status_code=201)
def create_project(
    ctx: AuthContext = Depends(require_auth_context),
    data: dict = Depends(validated_body(ProjectRequest)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """
    Create a project for a client the caller can see.

    Raises:
        ValidationError(400): schema violations, endDate before startDate
        NotFoundError(404): client missing, inactive or out of scope
        BusinessRuleError(400): a team member id is unknown or inactive
    """
    project = project_service.create_project(conn, ctx, data)
    return {"message": "Project created successfully", "project": project}


@router.put("/{project_id}")
def update_project(
    project_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    data: dict = Depends(validated_body(ProjectRequest, apply_defaults=False)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    project = project_service.update_project(conn, ctx, require_id(project_id), data)
    return {"message": "Project updated successfully", "project": project}


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    project_service.delete_project(conn, ctx, require_id(project_id))
    return {"message": "Project deleted successfully"}


@router.patch("/{project_id}/status")
def update_project_status(
    project_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    data: dict = Depends(validated_body(ProjectStatusRequest, single_message=True)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    project = project_service.update_status(conn, ctx, require_id(project_id), data["status"])
    return {"message": "Project status updated successfully", "project": project}


@router.post("/{project_id}/team-members")
def add_team_member(
    project_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    data: dict = Depends(validated_body(TeamMemberRequest, single_message=True)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    members = project_service.add_team_member(conn, ctx, require_id(project_id), data["userId"])
    return {"message": "Team member added successfully", "teamMembers": members}


@router.delete("/{project_id}/team-members/{user_id}")
def remove_team_member(
    project_id: str,
    user_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    members = project_service.remove_team_member(conn, ctx, require_id(project_id), require_id(user_id))
    return {"message": "Team member removed successfully", "teamMembers": members}
