"""Relational schema for accounts, friendships, messages, posts and games."""

from __future__ import annotations

import logging

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("profile_pic", String(1024)),
    Column("banner", String(1024)),
    Column("platforms", Text),
    Column("genres", Text),
    Column("created_at", DateTime(timezone=True), server_default=func.current_timestamp()),
)

friends = Table(
    "friends",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("friend_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    UniqueConstraint("user_id", "friend_id", name="uq_friends_pair"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sender", String(255), nullable=False, index=True),
    Column("receiver", String(255), nullable=False, index=True),
    Column("content", Text, nullable=False),
    Column("timestamp", DateTime(timezone=True), server_default=func.current_timestamp()),
)

# ``id`` is the IGDB identifier, never generated locally.
games = Table(
    "games",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("name", String(512), nullable=False),
)

posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("username", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("game_id", Integer, index=True),
    Column("game_name", String(512), nullable=False),
    Column("profile_pic", String(1024)),
    Column("created_at", DateTime(timezone=True), server_default=func.current_timestamp()),
)

replies = Table(
    "replies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("username", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.current_timestamp()),
)


def create_all(engine: Engine) -> None:
    """Create any missing tables on ``engine``."""

    metadata.create_all(engine)
    logger.debug("Ensured tables: %s", ", ".join(sorted(metadata.tables)))


__all__ = [
    "create_all",
    "friends",
    "games",
    "messages",
    "metadata",
    "posts",
    "replies",
    "users",
]
