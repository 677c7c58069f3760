"""
Security utilities: JWT verification for bearer tokens issued by the auth service.
Tokens use python-jose. Minting is kept for local tooling and tests.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from campus_notify.core.config import settings


def create_access_token(user_id: str, role: str | None = None) -> str:
    """Create a short-lived JWT access token for the given user id."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "jti": secrets.token_hex(16),
    }
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.
    Raises JWTError on failure.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return payload


def user_id_from_token(token: str) -> str:
    """Return the subject claim of a valid access token. Raises JWTError otherwise."""
    payload = decode_access_token(token)
    subject = payload.get("sub")
    if not subject or not str(subject).strip():
        raise JWTError("Malformed token: missing subject")
    return str(subject)
