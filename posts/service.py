"""Game discussion posts and replies."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from sqlalchemy import func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection

from db import schema
from db.rows import row_to_dict
from helpers import _coerce_int, _normalize_text
from igdb.client import CatalogError, CredentialExchangeError

logger = logging.getLogger(__name__)

UNKNOWN_GAME = "Unknown Game"
DEFAULT_POST_AVATAR = "https://placehold.co/50"

GameNameFetcher = Callable[[int], "str | None"]


class PostError(RuntimeError):
    """Base class for post service errors."""


class PostValidationError(PostError):
    pass


class PostNotFoundError(PostError):
    pass


class PostAuthorNotFoundError(PostError):
    pass


def _insert_game_if_missing(conn: Connection, game_id: int, name: str) -> None:
    games = schema.games
    dialect = conn.dialect.name
    if dialect == "postgresql":
        conn.execute(pg_insert(games).values(id=game_id, name=name).on_conflict_do_nothing())
        return
    if dialect == "sqlite":
        conn.execute(sqlite_insert(games).values(id=game_id, name=name).on_conflict_do_nothing())
        return
    exists = conn.execute(select(games.c.id).where(games.c.id == game_id)).first()
    if exists is None:
        conn.execute(insert(games).values(id=game_id, name=name))


def resolve_game_name(
    conn: Connection, game_id: int, fetch_game_name: GameNameFetcher | None
) -> str:
    """Return the stored game name, falling back to the catalog and caching it."""

    games = schema.games
    stored = conn.execute(select(games.c.name).where(games.c.id == game_id)).scalar()
    if stored:
        return str(stored)
    if fetch_game_name is None:
        return UNKNOWN_GAME

    try:
        name = fetch_game_name(game_id)
    except (CatalogError, CredentialExchangeError) as exc:
        logger.warning("Unable to resolve game %s from IGDB: %s", game_id, exc)
        return UNKNOWN_GAME
    if not name:
        return UNKNOWN_GAME
    _insert_game_if_missing(conn, game_id, name)
    return name


def _attach_replies(conn: Connection, posts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    if not posts:
        return posts
    replies = schema.replies
    post_ids = [post["id"] for post in posts]
    rows = conn.execute(
        select(replies)
        .where(replies.c.post_id.in_(post_ids))
        .order_by(replies.c.created_at, replies.c.id)
    ).mappings().all()
    by_post: dict[int, list[dict[str, Any]]] = defaultdict(list)
    for row in rows:
        by_post[row["post_id"]].append(row_to_dict(row))
    for post in posts:
        post["replies"] = by_post.get(post["id"], [])
    return posts


def list_posts(conn: Connection) -> list[dict[str, Any]]:
    """Return all posts, newest first, each carrying its replies."""

    posts = schema.posts
    games = schema.games
    rows = conn.execute(
        select(
            posts.c.id,
            posts.c.user_id,
            posts.c.username,
            posts.c.content,
            posts.c.game_id,
            func.coalesce(games.c.name, posts.c.game_name).label("game_name"),
            posts.c.profile_pic,
            posts.c.created_at,
        )
        .select_from(posts.outerjoin(games, games.c.id == posts.c.game_id))
        .order_by(posts.c.created_at.desc(), posts.c.id.desc())
    ).mappings().all()
    return _attach_replies(conn, [row_to_dict(row) for row in rows])


def create_post(
    conn: Connection,
    *,
    username: Any,
    content: Any,
    game_id: Any,
    fetch_game_name: GameNameFetcher | None = None,
) -> dict[str, Any]:
    name = _normalize_text(username)
    body = content.strip() if isinstance(content, str) else ""
    game = _coerce_int(game_id)
    if not name or not body or game_id in (None, ""):
        raise PostValidationError("Missing required fields")
    if game is None or game <= 0:
        raise PostValidationError("Invalid game id")

    users = schema.users
    author = conn.execute(
        select(users.c.id, users.c.profile_pic).where(users.c.username == name)
    ).first()
    if author is None:
        raise PostAuthorNotFoundError("User not found")

    game_name = resolve_game_name(conn, game, fetch_game_name)
    posts = schema.posts
    result = conn.execute(
        insert(posts).values(
            user_id=author.id,
            username=name,
            content=body,
            game_id=game,
            game_name=game_name,
            profile_pic=author.profile_pic or DEFAULT_POST_AVATAR,
        )
    )
    post_id = result.inserted_primary_key[0]
    logger.info("User %s created post %s about game %s", name, post_id, game)
    row = conn.execute(select(posts).where(posts.c.id == post_id)).mappings().first()
    return row_to_dict(row) or {}


def _ensure_post(conn: Connection, post_id: int) -> None:
    posts = schema.posts
    if conn.execute(select(posts.c.id).where(posts.c.id == post_id)).first() is None:
        raise PostNotFoundError("Post not found")


def add_reply(conn: Connection, post_id: int, *, username: Any, content: Any) -> dict[str, Any]:
    name = _normalize_text(username)
    body = content.strip() if isinstance(content, str) else ""
    if not name or not body:
        raise PostValidationError("Missing required fields")
    _ensure_post(conn, post_id)

    replies = schema.replies
    result = conn.execute(
        insert(replies).values(post_id=post_id, username=name, content=body)
    )
    reply_id = result.inserted_primary_key[0]
    row = conn.execute(select(replies).where(replies.c.id == reply_id)).mappings().first()
    return row_to_dict(row) or {}


def list_replies(conn: Connection, post_id: int) -> list[dict[str, Any]]:
    replies = schema.replies
    rows = conn.execute(
        select(replies)
        .where(replies.c.post_id == post_id)
        .order_by(replies.c.created_at, replies.c.id)
    ).mappings().all()
    return [row_to_dict(row) for row in rows]


__all__ = [
    "DEFAULT_POST_AVATAR",
    "PostAuthorNotFoundError",
    "PostError",
    "PostNotFoundError",
    "PostValidationError",
    "UNKNOWN_GAME",
    "add_reply",
    "create_post",
    "list_posts",
    "list_replies",
    "resolve_game_name",
]
