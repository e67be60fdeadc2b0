"""Direct message API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify

from messages import service as messages_service
from routes.api_utils import BadRequestError, handle_api_errors, json_payload

messages_blueprint = Blueprint("messages", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the message endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"messages routes missing context value: {key}")
    return _context[key]


def _get_db():
    getter: Callable[[], Any] = _ctx('get_db')
    return getter()


@messages_blueprint.route('/api/messages/<username>')
@handle_api_errors
def api_messages(username: str):
    with _get_db().sa_connection() as conn:
        messages = messages_service.list_messages_for(conn, username)
    return jsonify(messages)


@messages_blueprint.route('/api/messages/<receiver>/message', methods=['POST'])
@handle_api_errors
def api_send_message(receiver: str):
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            messages_service.send_message(
                conn,
                sender=payload.get('sender'),
                receiver=receiver,
                content=payload.get('message'),
            )
    except messages_service.MessageValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    return jsonify({'success': True, 'message': 'Message sent successfully!'}), 201
