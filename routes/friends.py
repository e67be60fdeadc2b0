"""Friend list and friend conversation API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify

from friends import service as friends_service
from messages import service as messages_service
from routes.api_utils import (
    BadRequestError,
    NotFoundError,
    current_account,
    current_user_id,
    handle_api_errors,
    json_payload,
    token_required,
)

friends_blueprint = Blueprint("friends", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the friend endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"friends routes missing context value: {key}")
    return _context[key]


def _get_db():
    getter: Callable[[], Any] = _ctx('get_db')
    return getter()


@friends_blueprint.route('/api/friends')
@handle_api_errors
@token_required
def api_friends():
    with _get_db().sa_connection() as conn:
        friends = friends_service.list_friends(conn, current_user_id())
    return jsonify(friends)


@friends_blueprint.route('/api/friends', methods=['POST'])
@handle_api_errors
@token_required
def api_add_friend():
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            friends = friends_service.add_friend(
                conn, current_user_id(), payload.get('username')
            )
    except friends_service.FriendNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc
    except friends_service.FriendValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    return jsonify(friends)


@friends_blueprint.route('/api/friends/<username>')
@handle_api_errors
@token_required
def api_friend(username: str):
    try:
        with _get_db().sa_connection() as conn:
            friend = friends_service.get_friend(conn, current_user_id(), username)
    except friends_service.FriendNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc
    return jsonify(friend)


@friends_blueprint.route('/api/friends/<username>/message', methods=['POST'])
@handle_api_errors
@token_required
def api_message_friend(username: str):
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            friend = friends_service.get_friend(conn, current_user_id(), username)
            messages_service.send_message(
                conn,
                sender=current_account(conn)['username'],
                receiver=friend['username'],
                content=payload.get('message'),
            )
    except friends_service.FriendNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc
    except messages_service.MessageValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    return jsonify({'success': True})


@friends_blueprint.route('/api/friends/<username>/messages')
@handle_api_errors
@token_required
def api_friend_messages(username: str):
    try:
        with _get_db().sa_connection() as conn:
            friend = friends_service.get_friend(conn, current_user_id(), username)
            messages = messages_service.list_conversation(
                conn, current_account(conn)['username'], friend['username']
            )
    except friends_service.FriendNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc
    return jsonify(messages)
