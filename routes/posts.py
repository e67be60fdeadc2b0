"""Game discussion post API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify

from posts import service as posts_service
from routes.api_utils import (
    BadRequestError,
    NotFoundError,
    handle_api_errors,
    json_payload,
)

posts_blueprint = Blueprint("posts", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the post endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"posts routes missing context value: {key}")
    return _context[key]


def _get_db():
    getter: Callable[[], Any] = _ctx('get_db')
    return getter()


def _game_name_fetcher() -> posts_service.GameNameFetcher | None:
    client = _ctx('get_catalog_client')()
    if client is None:
        return None
    return client.get_game_name


@posts_blueprint.route('/api/posts')
@handle_api_errors
def api_posts():
    with _get_db().sa_connection() as conn:
        posts = posts_service.list_posts(conn)
    return jsonify(posts)


@posts_blueprint.route('/api/posts', methods=['POST'])
@handle_api_errors
def api_create_post():
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            post = posts_service.create_post(
                conn,
                username=payload.get('username'),
                content=payload.get('content'),
                game_id=payload.get('game_id'),
                fetch_game_name=_game_name_fetcher(),
            )
    except posts_service.PostValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    except posts_service.PostAuthorNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc
    return jsonify(post), 201


@posts_blueprint.route('/api/posts/<int:post_id>/reply', methods=['POST'])
@handle_api_errors
def api_reply(post_id: int):
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            reply = posts_service.add_reply(
                conn,
                post_id,
                username=payload.get('username'),
                content=payload.get('content'),
            )
    except posts_service.PostValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    except posts_service.PostNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc
    return jsonify(reply), 201


@posts_blueprint.route('/api/posts/<int:post_id>/replies')
@handle_api_errors
def api_replies(post_id: int):
    with _get_db().sa_connection() as conn:
        replies = posts_service.list_replies(conn, post_id)
    return jsonify(replies)
