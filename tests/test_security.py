from datetime import datetime, timedelta, UTC

import jwt
import pytest

from eventhub import config
from eventhub.errors import UnauthorizedError
from eventhub.security import (
    JWT_ALGORITHM,
    Principal,
    create_token,
    decode_token,
    hash_password,
    principal_from_header,
    verify_password,
)

USER = {"id": "u-1", "email": "ana@example.com", "role": "organizer", "email_confirmed": True}


def test_hash_and_verify_password():
    hashed = hash_password("StrongP@ss123")
    assert hashed != "StrongP@ss123"
    assert hashed.startswith("$2")
    assert verify_password("StrongP@ss123", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_with_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_token_roundtrip():
    principal = decode_token(create_token(USER))
    assert principal == Principal("u-1", "ana@example.com", "organizer", True)
    assert not principal.is_admin


def test_expired_token():
    now = datetime.now(UTC)
    token = jwt.encode(
        {"sub": "u-1", "email": "a@b.c", "role": "admin", "iat": now - timedelta(hours=2),
         "exp": now - timedelta(hours=1)},
        config.JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )
    with pytest.raises(UnauthorizedError, match="expired"):
        decode_token(token)


def test_token_signed_with_other_secret():
    token = jwt.encode({"sub": "u-1", "email": "a@b.c", "role": "admin"}, "other-secret", algorithm=JWT_ALGORITHM)
    with pytest.raises(UnauthorizedError, match="Invalid token"):
        decode_token(token)


def test_token_missing_claims():
    token = jwt.encode({"sub": "u-1"}, config.JWT_SECRET, algorithm=JWT_ALGORITHM)
    with pytest.raises(UnauthorizedError, match="payload"):
        decode_token(token)


def test_missing_secret(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", None)
    with pytest.raises(RuntimeError):
        create_token(USER)


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer", "Bearer not.a.jwt"])
def test_bad_authorization_header(header):
    with pytest.raises(UnauthorizedError):
        principal_from_header(header)


def test_bearer_header():
    principal = principal_from_header(f"Bearer {create_token({**USER, 'role': 'admin'})}")
    assert principal.is_admin
    assert principal.user_id == "u-1"
