"""User account persistence and credential checks."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from db import schema
from db.rows import row_to_dict
from helpers import _encode_name_list, _normalize_text, _parse_name_list

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_PIC = "https://picsum.photos/200"
DEFAULT_BANNER = "https://picsum.photos/800/250"

PASSWORD_PATTERN = re.compile(r"^(?=.*[A-Z])(?=.*[!@#$%^&*])[A-Za-z\d!@#$%^&*]{8,}$")
PASSWORD_RULES = (
    "Password must be at least 8 characters long, contain 1 uppercase letter, "
    "and 1 special character."
)

MEDIA_COLUMNS = ("profile_pic", "banner")


class AccountError(RuntimeError):
    """Base class for account service errors."""


class AccountValidationError(AccountError):
    """Raised when submitted account fields are missing or malformed."""


class AccountConflictError(AccountError):
    """Raised when a username or email is already registered."""


class AccountNotFoundError(AccountError):
    """Raised when a user cannot be located."""


class InvalidCredentialsError(AccountError):
    """Raised when an email/password pair does not match."""


def is_strong_password(password: str) -> bool:
    return bool(PASSWORD_PATTERN.match(password or ""))


def _public_user(row: Mapping[str, Any]) -> dict[str, Any]:
    data = row_to_dict(row) or {}
    return {
        "id": data.get("id"),
        "username": data.get("username"),
        "profile_pic": data.get("profile_pic"),
        "banner": data.get("banner"),
        "platforms": _parse_name_list(data.get("platforms")),
        "genres": _parse_name_list(data.get("genres")),
    }


def _public_columns() -> Iterable[Any]:
    users = schema.users
    return (
        users.c.id,
        users.c.username,
        users.c.profile_pic,
        users.c.banner,
        users.c.platforms,
        users.c.genres,
    )


def register_user(
    conn: Connection, *, email: Any, username: Any, password: Any
) -> dict[str, Any]:
    """Create a user and return ``{id, username, email}``."""

    email_text = _normalize_text(email).lower()
    username_text = _normalize_text(username)
    password_text = password if isinstance(password, str) else ""
    if not email_text or not username_text or not password_text:
        raise AccountValidationError("All fields are required.")
    if not is_strong_password(password_text):
        raise AccountValidationError(PASSWORD_RULES)

    users = schema.users
    existing = conn.execute(
        select(users.c.id).where(
            or_(users.c.email == email_text, users.c.username == username_text)
        )
    ).first()
    if existing is not None:
        raise AccountConflictError("Email or username already registered.")

    try:
        result = conn.execute(
            insert(users).values(
                email=email_text,
                username=username_text,
                password=generate_password_hash(password_text),
            )
        )
    except IntegrityError as exc:
        raise AccountConflictError("Email or username already registered.") from exc

    user_id = result.inserted_primary_key[0]
    logger.info("Registered user %s (id=%s)", username_text, user_id)
    return {"id": user_id, "username": username_text, "email": email_text}


def authenticate_user(conn: Connection, *, email: Any, password: Any) -> dict[str, Any]:
    """Return the login profile for a matching email/password pair."""

    email_text = _normalize_text(email).lower()
    if not email_text or not isinstance(password, str) or not password:
        raise AccountValidationError("Email and password are required.")

    users = schema.users
    row = conn.execute(select(users).where(users.c.email == email_text)).mappings().first()
    if row is None or not check_password_hash(row["password"], password):
        logger.info("Rejected login attempt for %s", email_text)
        raise InvalidCredentialsError("Invalid email or password")

    return {
        "id": row["id"],
        "username": row["username"],
        "email": row["email"],
        "profilePic": row["profile_pic"] or DEFAULT_PROFILE_PIC,
        "banner": row["banner"] or DEFAULT_BANNER,
    }


def list_users(conn: Connection) -> list[dict[str, Any]]:
    users = schema.users
    rows = conn.execute(select(*_public_columns()).order_by(users.c.id)).mappings().all()
    return [_public_user(row) for row in rows]


def find_user(conn: Connection, username: Any) -> dict[str, Any] | None:
    """Return the public profile for ``username`` (case-insensitive)."""

    name = _normalize_text(username)
    if not name:
        return None
    users = schema.users
    row = conn.execute(
        select(*_public_columns()).where(func.lower(users.c.username) == name.lower())
    ).mappings().first()
    return _public_user(row) if row is not None else None


def get_user(conn: Connection, username: Any) -> dict[str, Any]:
    user = find_user(conn, username)
    if user is None:
        raise AccountNotFoundError("User not found")
    return user


def get_user_by_id(conn: Connection, user_id: int) -> dict[str, Any] | None:
    users = schema.users
    row = conn.execute(
        select(*_public_columns()).where(users.c.id == user_id)
    ).mappings().first()
    return _public_user(row) if row is not None else None


def rename_user(conn: Connection, *, old_username: Any, new_username: Any) -> dict[str, Any]:
    """Rename a user and every denormalized copy of the name."""

    old_name = _normalize_text(old_username)
    new_name = _normalize_text(new_username)
    if not old_name or not new_name:
        raise AccountValidationError("Missing required fields")

    users = schema.users
    if old_name != new_name:
        taken = conn.execute(
            select(users.c.id).where(users.c.username == new_name)
        ).first()
        if taken is not None:
            raise AccountConflictError("Username is already taken.")

    result = conn.execute(
        update(users).where(users.c.username == old_name).values(username=new_name)
    )
    if result.rowcount == 0:
        raise AccountNotFoundError("User not found")

    conn.execute(
        update(schema.posts)
        .where(schema.posts.c.username == old_name)
        .values(username=new_name)
    )
    conn.execute(
        update(schema.replies)
        .where(schema.replies.c.username == old_name)
        .values(username=new_name)
    )
    conn.execute(
        update(schema.messages)
        .where(schema.messages.c.sender == old_name)
        .values(sender=new_name)
    )
    conn.execute(
        update(schema.messages)
        .where(schema.messages.c.receiver == old_name)
        .values(receiver=new_name)
    )
    logger.info("Renamed user %s to %s", old_name, new_name)
    return get_user(conn, new_name)


def set_user_media(conn: Connection, *, username: Any, column: str, url: Any) -> dict[str, Any]:
    """Point ``profile_pic`` or ``banner`` at ``url``."""

    if column not in MEDIA_COLUMNS:
        raise AccountValidationError(f"unsupported media field: {column}")
    name = _normalize_text(username)
    url_text = _normalize_text(url)
    if not name or not url_text:
        raise AccountValidationError("Username and profile picture are required.")

    users = schema.users
    result = conn.execute(
        update(users).where(users.c.username == name).values({column: url_text})
    )
    if result.rowcount == 0:
        raise AccountNotFoundError("User not found.")
    return get_user(conn, name)


def update_preferences(
    conn: Connection, *, username: Any, platforms: Any = None, genres: Any = None
) -> dict[str, Any]:
    """Replace stored platform/genre preferences, keeping omitted ones."""

    name = _normalize_text(username)
    if not name:
        raise AccountValidationError("Username is required.")

    users = schema.users
    values: dict[str, Any] = {}
    encoded_platforms = _encode_name_list(platforms)
    encoded_genres = _encode_name_list(genres)
    if encoded_platforms is not None:
        values["platforms"] = encoded_platforms
    if encoded_genres is not None:
        values["genres"] = encoded_genres

    exists = conn.execute(select(users.c.id).where(users.c.username == name)).first()
    if exists is None:
        raise AccountNotFoundError("User not found.")
    if values:
        conn.execute(update(users).where(users.c.username == name).values(**values))
    return get_user(conn, name)


__all__ = [
    "AccountConflictError",
    "AccountError",
    "AccountNotFoundError",
    "AccountValidationError",
    "DEFAULT_BANNER",
    "DEFAULT_PROFILE_PIC",
    "InvalidCredentialsError",
    "MEDIA_COLUMNS",
    "PASSWORD_RULES",
    "authenticate_user",
    "find_user",
    "get_user",
    "get_user_by_id",
    "is_strong_password",
    "list_users",
    "register_user",
    "rename_user",
    "set_user_media",
    "update_preferences",
]
