"""
tracker/test_auth_routes.py

Signup / login / token handling through the HTTP API.

Tests:
1. A new user can sign up, log in and list (zero) clients
2. Duplicate and malformed signups are rejected with readable messages
3. Missing, invalid and expired tokens each get their own 401 message
4. Role and active flag are read from the database on every request

Run:
    pytest tracker/test_auth_routes.py -v
"""

from datetime import timedelta

from tracker import users
from tracker.conftest import auth_headers, make_client
from tracker.security import issue_token
from tracker.users import set_user_active, set_user_role


def test_signup_login_and_empty_client_list(api):
    signup = api.post("/api/auth/signup", json={"username": "bob", "email": "bob@x.io", "password": "Passw0rd"})
    assert signup.status_code == 201
    body = signup.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["role"] == "user"
    assert body["user"]["email"] == "bob@x.io"
    assert "password" not in body["user"]
    assert "password_hash" not in body["user"]
    assert body["token"]

    login = api.post("/api/auth/login", json={"email": "bob@x.io", "password": "Passw0rd"})
    assert login.status_code == 200
    assert login.json()["message"] == "Login successful"
    token = login.json()["token"]

    listing = api.get("/api/clients", headers={"Authorization": f"Bearer {token}"})
    assert listing.status_code == 200
    assert listing.json() == {
        "clients": [],
        "pagination": {"page": 1, "limit": 10, "total": 0, "pages": 0},
    }


def test_signup_validation_errors(api):
    response = api.post("/api/auth/signup", json={})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation Error"
    assert body["errors"] == ["Username is required", "Email is required", "Password is required"]


def test_signup_duplicates(api, user):
    same_email = api.post(
        "/api/auth/signup",
        json={"username": "someoneelse", "email": "TEST@example.com", "password": "Passw0rd"},
    )
    assert same_email.status_code == 400
    assert same_email.json()["message"] == "email already exists"

    same_username = api.post(
        "/api/auth/signup",
        json={"username": "testuser", "email": "fresh@example.com", "password": "Passw0rd"},
    )
    assert same_username.status_code == 400
    assert same_username.json()["message"] == "username already exists"


def test_admin_signup_disabled(api, monkeypatch):
    monkeypatch.setattr(users, "ALLOW_ADMIN_SIGNUP", False)
    response = api.post(
        "/api/auth/signup",
        json={"username": "sneaky", "email": "sneaky@x.io", "password": "Passw0rd", "role": "admin"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Admin signup is disabled"


def test_admin_signup_when_enabled(api, monkeypatch):
    monkeypatch.setattr(users, "ALLOW_ADMIN_SIGNUP", True)
    response = api.post(
        "/api/auth/signup",
        json={"username": "boss", "email": "boss@x.io", "password": "Passw0rd", "role": "admin"},
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "admin"


def test_login_wrong_password(api, user):
    response = api.post("/api/auth/login", json={"email": "test@example.com", "password": "WrongPass1"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"

    unknown = api.post("/api/auth/login", json={"email": "nobody@example.com", "password": "TestPass123"})
    assert unknown.status_code == 401
    assert unknown.json()["message"] == "Invalid credentials"


def test_login_deactivated_user(api, conn, user):
    set_user_active(conn, user["id"], False)
    response = api.post("/api/auth/login", json={"email": "test@example.com", "password": "TestPass123"})
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated."


def test_missing_token(api):
    response = api.get("/api/clients")
    assert response.status_code == 401
    assert response.json() == {"message": "Access denied. No token provided."}


def test_invalid_token(api):
    response = api.get("/api/projects", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid token."}


def test_expired_token(api, user):
    token = issue_token(user["id"], user["role"], expires_in=timedelta(seconds=-30))
    response = api.get("/api/clients", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"message": "Token expired."}


def test_token_for_deleted_user(api):
    response = api.get("/api/clients", headers={"Authorization": f"Bearer {issue_token(999, 'admin')}"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid token."}


def test_deactivation_applies_to_existing_tokens(api, conn, user):
    headers = auth_headers(user)
    assert api.get("/api/auth/me", headers=headers).status_code == 200

    set_user_active(conn, user["id"], False)
    response = api.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated."


def test_role_revocation_applies_to_existing_tokens(api, conn, admin, user):
    """Token still says admin, but the database no longer does."""
    headers = auth_headers(admin)
    target = make_client(conn, user)

    set_user_role(conn, admin["id"], "user")
    response = api.delete(f"/api/clients/{target['id']}", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin privileges required."


def test_me(api, user):
    response = api.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "testuser"
    assert response.json()["user"]["isActive"] is True


def test_health_and_unknown_route(api):
    health = api.get("/api/health")
    assert health.status_code == 200
    assert health.json()["status"] == "OK"

    missing = api.get("/api/nothing-here")
    assert missing.status_code == 404
    assert missing.json() == {"message": "Route not found"}


def test_invalid_json_body(api):
    response = api.post(
        "/api/auth/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Request body must be valid JSON"]


def test_unexpected_error_is_generic(api, user, monkeypatch):
    from tracker import clients

    def boom(*args, **kwargs):
        raise RuntimeError("database exploded: secret detail")

    monkeypatch.setattr(clients, "list_clients", boom)
    response = api.get("/api/clients", headers=auth_headers(user))
    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}
