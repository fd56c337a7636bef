"""
tracker/test_clients.py

Client endpoints: validation, ownership scoping, admin-only delete and the
active-projects guard.

Tests:
1. Non-admins only see clients they created; anything else is a 404
   identical to a missing id
2. Client emails are unique system-wide; names are not
3. DELETE (and PUT isActive=false) is admin-only and refused while
   active projects exist
4. Soft-deleted clients drop out of default listings

Run:
    pytest tracker/test_clients.py -v
"""

from tracker.conftest import auth_headers, make_client, make_project

CLIENT_BODY = {
    "name": "Acme",
    "email": "Sales@Acme.com",
    "phone": "+15551234567",
    "address": {"street": "1 Main St", "city": "Springfield"},
    "company": "Acme Corp",
    "industry": "Manufacturing",
}


def test_create_client(api, user):
    response = api.post("/api/clients", json=dict(CLIENT_BODY, createdBy=999), headers=auth_headers(user))
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Client created successfully"
    client = body["client"]
    assert client["email"] == "sales@acme.com"
    assert client["isActive"] is True
    assert client["address"] == {"street": "1 Main St", "city": "Springfield"}
    assert client["createdBy"] == {"id": user["id"], "username": "testuser", "email": "test@example.com"}


def test_create_client_reports_all_errors(api, user):
    response = api.post(
        "/api/clients",
        json={"name": "", "email": "not-an-email", "phone": "abc"},
        headers=auth_headers(user),
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation Error"
    assert body["errors"] == [
        '"name" is not allowed to be empty',
        "Please provide a valid email address",
        "Please provide a valid phone number",
    ]


def test_duplicate_email_rejected_across_users(api, conn, user, other_user):
    make_client(conn, user, email="shared@example.com")
    response = api.post(
        "/api/clients",
        json={"name": "Copy", "email": "SHARED@example.com"},
        headers=auth_headers(other_user),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "email already exists"


def test_same_name_different_email_allowed(api, user):
    headers = auth_headers(user)
    first = api.post("/api/clients", json={"name": "Acme", "email": "a@acme.com"}, headers=headers)
    second = api.post("/api/clients", json={"name": "Acme", "email": "b@acme.com"}, headers=headers)
    assert first.status_code == 201
    assert second.status_code == 201


def test_list_is_scoped_to_creator(api, conn, user, other_user, admin):
    make_client(conn, user, name="Mine", email="mine@example.com")
    make_client(conn, other_user, name="Theirs", email="theirs@example.com")

    mine = api.get("/api/clients", headers=auth_headers(user)).json()
    assert [c["name"] for c in mine["clients"]] == ["Mine"]
    assert mine["pagination"]["total"] == 1

    everything = api.get("/api/clients", headers=auth_headers(admin)).json()
    assert {c["name"] for c in everything["clients"]} == {"Mine", "Theirs"}


def test_list_search_and_pagination(api, conn, user):
    for i in range(12):
        make_client(conn, user, name=f"Client {i}", email=f"c{i}@example.com", company="Widgets" if i % 2 else "Gizmos")
    headers = auth_headers(user)

    page_two = api.get("/api/clients?page=2&limit=5", headers=headers).json()
    assert len(page_two["clients"]) == 5
    assert page_two["pagination"] == {"page": 2, "limit": 5, "total": 12, "pages": 3}

    widgets = api.get("/api/clients?search=widg", headers=headers).json()
    assert widgets["pagination"]["total"] == 6

    fallback = api.get("/api/clients?page=0&limit=abc", headers=headers).json()
    assert fallback["pagination"]["page"] == 1
    assert fallback["pagination"]["limit"] == 10

    capped = api.get("/api/clients?limit=1000", headers=headers).json()
    assert capped["pagination"]["limit"] == 100


def test_out_of_scope_client_looks_missing(api, conn, user, other_user):
    theirs = make_client(conn, other_user)
    headers = auth_headers(user)

    foreign = api.get(f"/api/clients/{theirs['id']}", headers=headers)
    missing = api.get("/api/clients/9999", headers=headers)
    assert foreign.status_code == missing.status_code == 404
    assert foreign.json() == missing.json() == {"message": "Client not found or access denied"}

    update = api.put(f"/api/clients/{theirs['id']}", json={"name": "Hijack", "email": "x@y.io"}, headers=headers)
    assert update.status_code == 404


def test_malformed_id(api, user):
    response = api.get("/api/clients/abc", headers=auth_headers(user))
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid ID format"


def test_get_own_client(api, conn, user):
    mine = make_client(conn, user)
    response = api.get(f"/api/clients/{mine['id']}", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["client"]["name"] == "Test Client"


def test_update_client(api, conn, user):
    mine = make_client(conn, user)
    response = api.put(
        f"/api/clients/{mine['id']}",
        json={"name": "  Renamed  ", "email": "client@example.com"},
        headers=auth_headers(user),
    )
    assert response.status_code == 200
    client = response.json()["client"]
    assert response.json()["message"] == "Client updated successfully"
    assert client["name"] == "Renamed"
    # Omitted fields keep their stored values
    assert client["company"] == "Test Company"
    assert client["phone"] == "+1234567890"


def test_update_to_taken_email(api, conn, user):
    make_client(conn, user, email="taken@example.com")
    mine = make_client(conn, user, email="mine@example.com")
    response = api.put(
        f"/api/clients/{mine['id']}",
        json={"name": "Mine", "email": "taken@example.com"},
        headers=auth_headers(user),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "email already exists"


def test_delete_requires_admin(api, conn, user):
    mine = make_client(conn, user)
    response = api.delete(f"/api/clients/{mine['id']}", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin privileges required."

    # Role gate comes before the id lookup
    missing = api.delete("/api/clients/9999", headers=auth_headers(user))
    assert missing.status_code == 403


def test_delete_blocked_by_active_projects(api, conn, user, admin):
    target = make_client(conn, user)
    project = make_project(conn, user, target["id"])
    headers = auth_headers(admin)

    blocked = api.delete(f"/api/clients/{target['id']}", headers=headers)
    assert blocked.status_code == 400
    assert blocked.json()["message"] == (
        "Cannot delete client with active projects. Please complete or remove projects first."
    )

    assert api.delete(f"/api/projects/{project['id']}", headers=auth_headers(user)).status_code == 200

    deleted = api.delete(f"/api/clients/{target['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Client deleted successfully"}

    # Soft delete: gone from defaults, still listed with isActive=false
    assert api.get(f"/api/clients/{target['id']}", headers=headers).status_code == 404
    assert api.get("/api/clients", headers=headers).json()["clients"] == []
    inactive = api.get("/api/clients?isActive=false", headers=headers).json()["clients"]
    assert [c["id"] for c in inactive] == [target["id"]]
    assert inactive[0]["isActive"] is False


def test_deactivate_via_update_blocked_by_active_projects(api, conn, user, admin):
    target = make_client(conn, user)
    make_project(conn, user, target["id"])
    response = api.put(
        f"/api/clients/{target['id']}",
        json={"name": "Test Client", "email": "client@example.com", "isActive": False},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
    assert response.json()["message"].startswith("Cannot delete client with active projects")


def test_owner_cannot_deactivate_client_via_update(api, conn, user, admin):
    target = make_client(conn, user)
    body = {"name": "Test Client", "email": "client@example.com", "isActive": False}
    owner = auth_headers(user)

    response = api.put(f"/api/clients/{target['id']}", json=body, headers=owner)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin privileges required."
    stored = api.get(f"/api/clients/{target['id']}", headers=owner)
    assert stored.status_code == 200
    assert stored.json()["client"]["isActive"] is True

    by_admin = api.put(f"/api/clients/{target['id']}", json=body, headers=auth_headers(admin))
    assert by_admin.status_code == 200
    assert api.get(f"/api/clients/{target['id']}", headers=owner).status_code == 404


def test_client_projects(api, conn, user, other_user):
    mine = make_client(conn, user)
    make_project(conn, user, mine["id"], name="Alpha", status="in-progress")
    make_project(conn, user, mine["id"], name="Beta")
    headers = auth_headers(user)

    response = api.get(f"/api/clients/{mine['id']}/projects", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["client"] == {"id": mine["id"], "name": "Test Client", "email": "client@example.com"}
    assert {p["name"] for p in body["projects"]} == {"Alpha", "Beta"}
    assert body["pagination"]["total"] == 2

    filtered = api.get(f"/api/clients/{mine['id']}/projects?status=in-progress", headers=headers).json()
    assert [p["name"] for p in filtered["projects"]] == ["Alpha"]

    foreign = api.get(f"/api/clients/{mine['id']}/projects", headers=auth_headers(other_user))
    assert foreign.status_code == 404
