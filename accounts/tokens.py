"""Signed, expiring session tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

JWT_ALGORITHM = "HS256"


class InvalidSessionToken(Exception):
    """Raised when a bearer token is malformed, tampered with or expired."""


def issue_token(
    user_id: int,
    username: str,
    *,
    secret: str,
    ttl_seconds: int,
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "id": int(user_id),
        "username": username,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, *, secret: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise InvalidSessionToken("token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidSessionToken("invalid token") from exc
    if "id" not in claims:
        raise InvalidSessionToken("token missing subject")
    return claims


__all__ = ["InvalidSessionToken", "JWT_ALGORITHM", "decode_token", "issue_token"]
