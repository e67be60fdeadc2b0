"""Direct message persistence."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, insert, or_, select
from sqlalchemy.engine import Connection

from db import schema
from db.rows import row_to_dict
from helpers import _normalize_text

logger = logging.getLogger(__name__)


class MessageValidationError(ValueError):
    """Raised when a message is missing its sender, receiver or body."""


def send_message(conn: Connection, *, sender: Any, receiver: Any, content: Any) -> dict[str, Any]:
    sender_name = _normalize_text(sender)
    receiver_name = _normalize_text(receiver)
    body = content.strip() if isinstance(content, str) else ""
    if not sender_name or not body:
        raise MessageValidationError("Message and sender are required!")
    if not receiver_name:
        raise MessageValidationError("Receiver is required!")

    messages = schema.messages
    result = conn.execute(
        insert(messages).values(sender=sender_name, receiver=receiver_name, content=body)
    )
    message_id = result.inserted_primary_key[0]
    logger.info("Message %s sent from %s to %s", message_id, sender_name, receiver_name)
    row = conn.execute(select(messages).where(messages.c.id == message_id)).mappings().first()
    return row_to_dict(row) or {}


def list_messages_for(conn: Connection, username: Any) -> list[dict[str, Any]]:
    """Return every message sent or received by ``username``, newest first."""

    name = _normalize_text(username)
    messages = schema.messages
    rows = conn.execute(
        select(messages)
        .where(or_(messages.c.receiver == name, messages.c.sender == name))
        .order_by(messages.c.timestamp.desc(), messages.c.id.desc())
    ).mappings().all()
    return [row_to_dict(row) for row in rows]


def list_conversation(conn: Connection, first: Any, second: Any) -> list[dict[str, Any]]:
    """Return messages exchanged between two users, newest first."""

    a = _normalize_text(first)
    b = _normalize_text(second)
    messages = schema.messages
    rows = conn.execute(
        select(messages)
        .where(
            or_(
                and_(messages.c.sender == a, messages.c.receiver == b),
                and_(messages.c.sender == b, messages.c.receiver == a),
            )
        )
        .order_by(messages.c.timestamp.desc(), messages.c.id.desc())
    ).mappings().all()
    return [row_to_dict(row) for row in rows]


__all__ = [
    "MessageValidationError",
    "list_conversation",
    "list_messages_for",
    "send_message",
]
