"""Friend list persistence."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, func, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from db import schema
from helpers import _normalize_text

logger = logging.getLogger(__name__)


class FriendError(RuntimeError):
    """Base class for friend service errors."""


class FriendValidationError(FriendError):
    pass


class FriendNotFoundError(FriendError):
    pass


def _resolve_user_id(conn: Connection, username: str) -> tuple[int, str] | None:
    users = schema.users
    row = conn.execute(
        select(users.c.id, users.c.username).where(
            func.lower(users.c.username) == username.lower()
        )
    ).first()
    if row is None:
        return None
    return int(row.id), str(row.username)


def list_friends(conn: Connection, user_id: int) -> list[dict[str, Any]]:
    """Return the friends of ``user_id`` ordered by username."""

    users = schema.users
    friends = schema.friends
    rows = conn.execute(
        select(users.c.id, users.c.username, users.c.profile_pic)
        .select_from(friends.join(users, users.c.id == friends.c.friend_id))
        .where(friends.c.user_id == user_id)
        .order_by(func.lower(users.c.username), users.c.id)
    ).mappings().all()
    return [dict(row) for row in rows]


def add_friend(conn: Connection, user_id: int, username: Any) -> list[dict[str, Any]]:
    """Add ``username`` to the friends of ``user_id``; adding twice is a no-op."""

    name = _normalize_text(username)
    if not name:
        raise FriendValidationError("Username is required")
    resolved = _resolve_user_id(conn, name)
    if resolved is None:
        raise FriendNotFoundError("User not found")
    friend_id, friend_name = resolved
    if friend_id == user_id:
        raise FriendValidationError("You cannot add yourself as a friend")

    friends = schema.friends
    existing = conn.execute(
        select(friends.c.id).where(
            and_(friends.c.user_id == user_id, friends.c.friend_id == friend_id)
        )
    ).first()
    if existing is None:
        try:
            conn.execute(insert(friends).values(user_id=user_id, friend_id=friend_id))
            logger.info("User %s added friend %s", user_id, friend_name)
        except IntegrityError:
            logger.debug("Friendship %s -> %s already recorded", user_id, friend_id)
    return list_friends(conn, user_id)


def get_friend(conn: Connection, user_id: int, username: Any) -> dict[str, Any]:
    name = _normalize_text(username)
    users = schema.users
    friends = schema.friends
    row = conn.execute(
        select(
            users.c.id,
            users.c.username,
            users.c.profile_pic,
            users.c.banner,
        )
        .select_from(friends.join(users, users.c.id == friends.c.friend_id))
        .where(
            and_(
                friends.c.user_id == user_id,
                func.lower(users.c.username) == name.lower(),
            )
        )
    ).mappings().first()
    if not name or row is None:
        raise FriendNotFoundError("Friend not found")
    return dict(row)


__all__ = [
    "FriendError",
    "FriendNotFoundError",
    "FriendValidationError",
    "add_friend",
    "get_friend",
    "list_friends",
]
