#!/usr/bin/env python3
"""
Seed the configured database with demo users, clients and projects.

Run: python -m tracker.seed   (wipes users, clients and projects first)

DEV-ONLY: refuses to run when ENV=prod.
"""

import sqlite3

from tracker.config import IS_PROD
from tracker.db import connect, init_db
from tracker.projects import create_project
from tracker.clients import create_client
from tracker.users import create_user


class _Seeder:
    """Minimal caller identity for the service layer."""

    def __init__(self, row):
        self.user_id = row["id"]
        self.role = row["role"]


def clear_data(conn: sqlite3.Connection) -> None:
    for table in ("project_team_members", "projects", "clients", "users"):
        conn.execute(f"DELETE FROM {table}")
    conn.execute("DELETE FROM sqlite_sequence WHERE name IN ('projects', 'clients', 'users')")
    conn.commit()
    print("[SEED] Cleared existing data")


def seed(conn: sqlite3.Connection) -> dict:
    init_db(conn)
    clear_data(conn)

    admin = create_user(conn, "admin", "admin@example.com", "AdminPass123", role="admin")
    john = create_user(conn, "johndoe", "john@example.com", "UserPass123")
    jane = create_user(conn, "janedoe", "jane@example.com", "UserPass123")
    print("[SEED] Created admin and regular users")

    acme = create_client(conn, _Seeder(john), {
        "name": "Acme Corporation",
        "email": "contact@acme.com",
        "phone": "+1234567890",
        "address": {
            "street": "123 Business Ave",
            "city": "New York",
            "state": "NY",
            "zipCode": "10001",
            "country": "USA",
        },
        "company": "Acme Corp",
        "industry": "Technology",
        "isActive": True,
    })
    globex = create_client(conn, _Seeder(jane), {
        "name": "Global Innovations",
        "email": "info@globalinnovations.com",
        "phone": "+1987654321",
        "company": "Global Innovations Ltd",
        "industry": "Manufacturing",
        "isActive": True,
    })
    techstart = create_client(conn, _Seeder(admin), {
        "name": "TechStart Solutions",
        "email": "hello@techstart.com",
        "company": "TechStart Inc",
        "industry": "Software",
        "isActive": True,
    })
    print("[SEED] Created clients")

    create_project(conn, _Seeder(john), {
        "name": "Website Redesign",
        "description": "Complete overhaul of the corporate website",
        "client": acme["id"],
        "status": "in-progress",
        "priority": "high",
        "budget": 50000,
        "startDate": "2024-01-15T00:00:00Z",
        "endDate": "2024-06-30T00:00:00Z",
        "deliverables": [
            {"name": "Wireframes", "description": "Low-fidelity page layouts", "completed": True},
            {"name": "Visual design", "completed": False},
        ],
        "teamMembers": [jane["id"]],
        "tags": ["web", "design"],
        "isActive": True,
    })
    create_project(conn, _Seeder(john), {
        "name": "Mobile App",
        "description": "Customer-facing iOS and Android app",
        "client": acme["id"],
        "status": "planning",
        "priority": "medium",
        "budget": 120000,
        "tags": ["mobile"],
        "isActive": True,
    })
    create_project(conn, _Seeder(jane), {
        "name": "ERP Integration",
        "description": "Connect production planning to the ERP system",
        "client": globex["id"],
        "status": "on-hold",
        "priority": "urgent",
        "budget": 80000,
        "startDate": "2024-03-01T00:00:00Z",
        "teamMembers": [john["id"]],
        "tags": ["integration", "erp"],
        "isActive": True,
    })
    create_project(conn, _Seeder(admin), {
        "name": "Security Audit",
        "client": techstart["id"],
        "status": "completed",
        "priority": "low",
        "isActive": True,
    })
    print("[SEED] Created projects")

    return {"admin": admin, "users": [john, jane]}


if __name__ == "__main__":
    if IS_PROD:
        raise SystemExit("Refusing to seed a production database")
    conn = connect()
    try:
        seed(conn)
    finally:
        conn.close()
    print("[SEED] Done. Logins:")
    print("  admin@example.com / AdminPass123 (admin)")
    print("  john@example.com / UserPass123")
    print("  jane@example.com / UserPass123")
