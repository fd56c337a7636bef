# tracker/db.py
# SQLite storage layer: connection handling, schema creation and row helpers.
#
# Connections are never global. The FastAPI dependency get_db() opens one per
# request and every service function receives it explicitly.

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path as FsPath
from typing import Any, Generator, List, Optional

from tracker.config import DATABASE_PATH, IS_DEV


def resolve_db_path(path: Optional[str] = None) -> str:
    """Absolute path for the database file (relative paths resolve next to the package)."""
    raw = path or DATABASE_PATH
    if raw == ":memory:":
        return raw
    candidate = FsPath(raw)
    if not candidate.is_absolute():
        candidate = FsPath(__file__).resolve().parent / candidate
    return str(candidate)


def connect(path: Optional[str] = None) -> sqlite3.Connection:
    """Open a SQLite connection with Row factory and foreign keys enabled."""
    conn = sqlite3.connect(resolve_db_path(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db() -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: one connection per request, always closed."""
    conn = connect()
    try:
        yield conn
    finally:
        conn.close()


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables and indexes (idempotent)."""
    cur = conn.cursor()

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('admin', 'user')),
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            phone TEXT,
            address_json TEXT,
            company TEXT,
            industry TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_by INTEGER NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (created_by) REFERENCES users (id)
        )
        """
    )
    cur.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_clients_email_unique ON clients(email)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_clients_created_by ON clients(created_by)")

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            client_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'planning',
            priority TEXT NOT NULL DEFAULT 'medium',
            budget REAL CHECK (budget IS NULL OR budget >= 0),
            start_date TEXT,
            end_date TEXT,
            deliverables_json TEXT NOT NULL DEFAULT '[]',
            tags_json TEXT NOT NULL DEFAULT '[]',
            is_active INTEGER NOT NULL DEFAULT 1,
            created_by INTEGER NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (client_id) REFERENCES clients (id),
            FOREIGN KEY (created_by) REFERENCES users (id)
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_projects_client_status ON projects(client_id, status)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_projects_created_by ON projects(created_by)")

    # Composite primary key keeps membership a set
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS project_team_members (
            project_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            added_at TEXT NOT NULL,
            PRIMARY KEY (project_id, user_id),
            FOREIGN KEY (project_id) REFERENCES projects (id),
            FOREIGN KEY (user_id) REFERENCES users (id)
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_team_members_user ON project_team_members(user_id)")

    conn.commit()
    if IS_DEV:
        print("[DB] Ensured users, clients, projects, project_team_members tables")


# ---------------------------------------------------------
# Row helpers
# ---------------------------------------------------------
def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def load_json(raw: Optional[str], default: Any = None) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return default


def like_pattern(term: str) -> str:
    """Build a LIKE pattern matching term anywhere; use with ESCAPE '\\'."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def placeholders(values: List[Any]) -> str:
    return ", ".join("?" for _ in values)
