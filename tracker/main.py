# ---------------------------------------------------------
# tracker/main.py
# Client & project tracker - backend
#
# Run: uvicorn tracker.main:app --reload (from repo root)
#
# - FastAPI + SQLite
# - /api/auth      : signup / login / me
# - /api/clients   : client CRUD (soft delete, admin only)
# - /api/projects  : project CRUD, status changes, team members
# ---------------------------------------------------------

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracker.config import CORS_ORIGINS, IS_PROD
from tracker.db import connect, init_db
from tracker.errors import register_error_handlers
from tracker.routes_auth import router as auth_router
from tracker.routes_clients import router as clients_router
from tracker.routes_projects import router as projects_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    conn = connect()
    try:
        init_db(conn)
    finally:
        conn.close()
    yield


# ---------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------
app = FastAPI(title="Client & Project Tracker", version="0.1", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# ============================================================================
# API ENDPOINT CLASSIFICATION
# ============================================================================
#
# [PUBLIC]
#   • /api/health, /api/auth/signup, /api/auth/login
#
# [AUTH]  (Authorization: Bearer <token>)
#   • /api/auth/me
#   • /api/clients[...]   - non-admins limited to clients they created
#   • /api/projects[...]  - non-admins limited to projects they created or
#                           are team members of
#
# [ADMIN]
#   • DELETE /api/clients/{id}
#
# Out-of-scope records are reported as 404 "... not found or access denied".
# ============================================================================


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "Server is running successfully!",
    }


app.include_router(auth_router)
app.include_router(clients_router)
app.include_router(projects_router)
