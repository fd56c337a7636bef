"""
tracker/test_security.py

Password hashing and token verification.

Run:
    pytest tracker/test_security.py -v
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tracker.config import ALGORITHM, SECRET_KEY
from tracker.errors import InvalidTokenError, TokenExpiredError, TokenMissingError
from tracker.security import hash_password, issue_token, verify_password, verify_token


def test_hash_is_salted():
    first = hash_password("Passw0rd")
    second = hash_password("Passw0rd")
    assert first != second
    assert "Passw0rd" not in first
    assert verify_password("Passw0rd", first)
    assert verify_password("Passw0rd", second)


def test_wrong_password_rejected():
    stored = hash_password("Passw0rd")
    assert not verify_password("passw0rd", stored)


@pytest.mark.parametrize("stored", ["", "plain-sha256-hex", "md5$1$salt$abc", "pbkdf2_sha256$many$salt$abc"])
def test_malformed_hash_never_matches(stored):
    assert not verify_password("Passw0rd", stored)


def test_token_round_trip():
    claims = verify_token(issue_token(42, "admin"))
    assert claims.user_id == 42
    assert claims.role == "admin"


def test_missing_token():
    with pytest.raises(TokenMissingError):
        verify_token(None)
    with pytest.raises(TokenMissingError):
        verify_token("")


def test_expired_token():
    token = issue_token(1, "user", expires_in=timedelta(seconds=-30))
    with pytest.raises(TokenExpiredError):
        verify_token(token)


def test_tampered_token():
    header, _, signature = issue_token(1, "user").split(".")
    _, other_payload, _ = issue_token(2, "admin").split(".")
    with pytest.raises(InvalidTokenError):
        verify_token(f"{header}.{other_payload}.{signature}")

    with pytest.raises(InvalidTokenError):
        verify_token("not-a-jwt")


def test_token_signed_with_other_key():
    token = jwt.encode(
        {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "some-other-secret",
        algorithm=ALGORITHM,
    )
    with pytest.raises(InvalidTokenError):
        verify_token(token)


def test_token_without_user_id():
    token = jwt.encode(
        {"role": "user", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        SECRET_KEY,
        algorithm=ALGORITHM,
    )
    with pytest.raises(InvalidTokenError):
        verify_token(token)
