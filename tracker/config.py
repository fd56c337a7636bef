# tracker/config.py
# Environment-aware configuration for the client/project tracker backend

import os
from typing import Literal

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# JWT configuration
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
ALGORITHM = "HS256"

# Token lifetime
TOKEN_EXPIRES_HOURS = int(os.environ.get("TOKEN_EXPIRES_HOURS", "24"))

# Password hashing work factor (PBKDF2-SHA256)
PASSWORD_HASH_ITERATIONS = int(os.environ.get("PASSWORD_HASH_ITERATIONS", "120000"))

# Self-service signup may only create admins when explicitly enabled
ALLOW_ADMIN_SIGNUP = os.environ.get("ALLOW_ADMIN_SIGNUP", "").lower() in ("1", "true", "yes")

# Database configuration (SQLite file, relative paths resolve next to this package)
DATABASE_PATH = os.environ.get("DATABASE_PATH", "tracker.db")

# Pagination
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

# CORS origins (expand for staging/prod)
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

if IS_STAGING or IS_PROD:
    extra_origins = os.environ.get("CORS_ORIGINS", "")
    if extra_origins:
        CORS_ORIGINS.extend(o.strip() for o in extra_origins.split(",") if o.strip())

if IS_PROD and SECRET_KEY == "dev-secret-key-change-me":
    raise RuntimeError("SECRET_KEY must be set in production")

if IS_DEV:
    print(f"[CONFIG] Environment: {ENV}")
    print(f"[CONFIG] Database: SQLite ({DATABASE_PATH})")
    print(f"[CONFIG] Token lifetime: {TOKEN_EXPIRES_HOURS} hours")
