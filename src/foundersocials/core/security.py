"""Password hashing and bearer-token helpers."""
from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from jose import JWTError, jwt

from foundersocials.core.settings import settings
from foundersocials.db.time import utcnow

_password_hasher = PasswordHasher()

# Claim marking a token as an API bearer token. Tokens minted for other
# audiences (SSO tokens, access links) never carry it.
ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Return True when ``password`` matches ``password_hash``.

    Users without a stored hash (for example rows created by fixtures or
    imported accounts) can never log in with a password.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def create_access_token(subject: int | str, extra_claims: dict[str, Any] | None = None) -> str:
    """Create a signed JWT for API bearer authentication.

    Args:
        subject: User identifier stored in the ``sub`` claim.
        extra_claims: Optional additional claims merged into the payload.

    Returns:
        Encoded JWT string.
    """
    expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload: dict[str, Any] = {"sub": str(subject), "exp": expire}
    if extra_claims:
        payload.update(extra_claims)
    payload["typ"] = ACCESS_TOKEN_TYPE
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def generate_reset_token() -> str:
    """Return a random, URL-safe password reset token."""
    return secrets.token_hex(32)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify an API bearer token and return its claims.

    Raises:
        JWTError: Bad signature, expired, or not an API access token.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    if payload.get("typ") != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an API access token")
    return payload
