"""
tracker/security.py

Credential & token service.

- Passwords: salted PBKDF2-SHA256, stored as "pbkdf2_sha256$<iterations>$<salt>$<hash>".
  Equal plaintexts hash differently because every hash gets a fresh salt.
- Tokens: HS256 JWTs carrying the user id ("sub") and role, expiring after
  TOKEN_EXPIRES_HOURS by default.

Pure Python logic - no FastAPI imports, no database access.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from tracker.config import ALGORITHM, PASSWORD_HASH_ITERATIONS, SECRET_KEY, TOKEN_EXPIRES_HOURS
from tracker.errors import InvalidTokenError, TokenExpiredError, TokenMissingError

HASH_SCHEME = "pbkdf2_sha256"


# --------------------------------------------------------------------
# Passwords
# --------------------------------------------------------------------
def hash_password(password: str, iterations: Optional[int] = None) -> str:
    iterations = iterations or PASSWORD_HASH_ITERATIONS
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{HASH_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of password against a stored hash. Malformed hashes never match."""
    try:
        scheme, iterations, salt, expected = password_hash.split("$")
        rounds = int(iterations)
    except (AttributeError, ValueError):
        return False
    if scheme != HASH_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), rounds)
    return hmac.compare_digest(digest.hex(), expected)


# --------------------------------------------------------------------
# Tokens
# --------------------------------------------------------------------
@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: Optional[str]


def issue_token(user_id: int, role: str, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else timedelta(hours=TOKEN_EXPIRES_HOURS)),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: Optional[str]) -> TokenClaims:
    """
    Verify a signed token and return its claims.

    Raises:
        TokenMissingError: no token supplied
        TokenExpiredError: signature fine but past "exp"
        InvalidTokenError: malformed, bad signature, or no usable user id
    """
    if not token:
        raise TokenMissingError()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError:
        raise InvalidTokenError()

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise InvalidTokenError()
    return TokenClaims(user_id=user_id, role=payload.get("role"))
