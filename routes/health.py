"""Database connectivity check."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, current_app, jsonify
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from db.rows import serialize_value

health_blueprint = Blueprint("health", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"health routes missing context value: {key}")
    return _context[key]


@health_blueprint.route('/api/test-db')
def api_test_db():
    getter: Callable[[], Any] = _ctx('get_db')
    try:
        with getter().sa_connection() as conn:
            now = conn.execute(select(func.current_timestamp())).scalar()
    except SQLAlchemyError as exc:
        current_app.logger.error("Database connectivity check failed: %s", exc)
        return jsonify({'error': 'Database connection failed', 'details': str(exc)}), 500
    return jsonify({'success': True, 'time': serialize_value(now)})
