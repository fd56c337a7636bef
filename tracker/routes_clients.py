"""
tracker/routes_clients.py

Client endpoints.

Security guarantees:
- all endpoints require authentication (require_auth_context)
- delete is admin-only (require_admin, checked before any lookup)
- non-admins only ever see clients they created; anything else is a 404
- path ids are format-checked before any query
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tracker import clients as client_service
from tracker.auth_context import AuthContext, require_admin, require_auth_context
from tracker.db import get_db
from tracker.dependencies import pagination_params, parse_bool_param, require_id, validated_body
from tracker.models import PageRequest
from tracker.schemas import ClientRequest

router = APIRouter(
    prefix="/api/clients",
    tags=["clients"],
)


@router.get("")
def list_clients(
    ctx: AuthContext = Depends(require_auth_context),
    page: PageRequest = Depends(pagination_params),
    search: Optional[str] = Query(None, description="Matches name, email or company"),
    is_active: Optional[str] = Query(None, alias="isActive", description="true/false (default: active only)"),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    return client_service.list_clients(
        conn,
        ctx,
        page,
        search=search.strip() if search else None,
        is_active=parse_bool_param(is_active, default=True),
    )


@router.get("/{client_id}")
def get_client(
    client_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    return {"client": client_service.get_client(conn, ctx, require_id(client_id))}


@router.post("", status_code=201)
def create_client(
    ctx: AuthContext = Depends(require_auth_context),
    data: dict = Depends(validated_body(ClientRequest)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """
    Create a client owned by the caller.

    Raises:
        ValidationError(400): schema violations (all reported together)
        BusinessRuleError(400): "email already exists"
    """
    client = client_service.create_client(conn, ctx, data)
    return {"message": "Client created successfully", "client": client}


@router.put("/{client_id}")
def update_client(
    client_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    data: dict = Depends(validated_body(ClientRequest, apply_defaults=False)),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """
    Omitted optional fields keep their stored values.

    Raises:
        ForbiddenError(403): isActive=false from a non-admin
        NotFoundError(404): no such active client in scope
        BusinessRuleError(400): deactivating a client with active projects
    """
    client = client_service.update_client(conn, ctx, require_id(client_id), data)
    return {"message": "Client updated successfully", "client": client}


@router.delete("/{client_id}")
def delete_client(
    client_id: str,
    ctx: AuthContext = Depends(require_admin),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """
    Soft delete (admin only).

    Raises:
        ForbiddenError(403): caller is not an admin
        NotFoundError(404): no such active client
        BusinessRuleError(400): client still has active projects
    """
    client_service.delete_client(conn, ctx, require_id(client_id))
    return {"message": "Client deleted successfully"}


@router.get("/{client_id}/projects")
def list_client_projects(
    client_id: str,
    ctx: AuthContext = Depends(require_auth_context),
    page: PageRequest = Depends(pagination_params),
    status: Optional[str] = Query(None),
    is_active: Optional[str] = Query(None, alias="isActive"),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    return client_service.list_client_projects(
        conn,
        ctx,
        require_id(client_id),
        page,
        status=status or None,
        is_active=parse_bool_param(is_active, default=True),
    )
