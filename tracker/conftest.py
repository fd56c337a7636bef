"""
Shared pytest fixtures: a throwaway SQLite database per test, the FastAPI app
wired to it, and helpers to create users/clients/projects and tokens.
"""

import os

# Cheap password hashing for tests; must be set before tracker.config is imported
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

import pytest
from fastapi.testclient import TestClient

from tracker.auth_context import AuthContext
from tracker.clients import create_client
from tracker.db import connect, get_db, init_db
from tracker.main import app
from tracker.projects import create_project
from tracker.security import issue_token
from tracker.users import create_user


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    conn = connect(path)
    init_db(conn)
    conn.close()
    return path


@pytest.fixture
def conn(db_path):
    c = connect(db_path)
    yield c
    c.close()


@pytest.fixture
def api(db_path):
    """TestClient whose requests use the per-test database."""
    def _get_test_db():
        c = connect(db_path)
        try:
            yield c
        finally:
            c.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def ctx_for(user) -> AuthContext:
    return AuthContext(user_id=user["id"], username=user["username"], email=user["email"], role=user["role"])


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {issue_token(user['id'], user['role'])}"}


def make_client(conn, owner, **overrides) -> dict:
    data = {
        "name": "Test Client",
        "email": "client@example.com",
        "phone": "+1234567890",
        "company": "Test Company",
        "industry": "Technology",
        "isActive": True,
    }
    data.update(overrides)
    return create_client(conn, ctx_for(owner), data)


def make_project(conn, owner, client_id, **overrides) -> dict:
    data = {
        "name": "Test Project",
        "description": "Test project description",
        "client": client_id,
        "status": "planning",
        "priority": "medium",
        "budget": 10000,
        "startDate": "2024-01-01T00:00:00Z",
        "endDate": "2024-12-31T00:00:00Z",
        "isActive": True,
    }
    data.update(overrides)
    return create_project(conn, ctx_for(owner), data)


@pytest.fixture
def user(conn):
    return create_user(conn, "testuser", "test@example.com", "TestPass123")


@pytest.fixture
def other_user(conn):
    return create_user(conn, "anotheruser", "another@example.com", "TestPass123")


@pytest.fixture
def admin(conn):
    return create_user(conn, "testadmin", "admin@example.com", "AdminPass123", role="admin")
