"""
Password hashing and JWT helpers.
Provides bcrypt hashing, token creation and bearer-token verification.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Optional

import bcrypt
import jwt

from . import config
from .errors import UnauthorizedError

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Principal:
    """Authenticated identity taken from a verified token."""
    user_id: str
    email: str
    role: str
    email_confirmed: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# --- PASSWORDS ---
def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# --- JWT CREATION ---
def _secret() -> str:
    if not config.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is missing. Set it in the environment")
    return config.JWT_SECRET


def create_token(user: dict) -> str:
    """
    Generate a signed JWT for a stored user record.

    Args:
        user (dict): User item with id, email, role and email_confirmed.

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user["id"],
        "email": user["email"],
        "role": user["role"],
        "email_confirmed": bool(user.get("email_confirmed", False)),
        "iat": now,
        "exp": now + timedelta(minutes=config.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


# --- JWT VALIDATION ---
def decode_token(token: str) -> Principal:
    try:
        claims = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    if not claims.get("sub") or not claims.get("email") or not claims.get("role"):
        raise UnauthorizedError("Invalid token payload")

    return Principal(
        user_id=claims["sub"],
        email=claims["email"],
        role=claims["role"],
        email_confirmed=bool(claims.get("email_confirmed", False)),
    )


def principal_from_header(auth_header: Optional[str]) -> Principal:
    """Verify an `Authorization: Bearer <token>` header."""
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise UnauthorizedError("Missing or invalid Authorization header")
    token = auth_header.split(" ", 1)[1].strip()
    return decode_token(token)
