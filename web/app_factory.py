"""Flask application factory."""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger(__name__)


def _parse_origins(value: Any) -> str | list[str]:
    text = str(value or "*").strip()
    if text == "*" or not text:
        return "*"
    return [origin.strip() for origin in text.split(",") if origin.strip()]


def _register_error_handlers(flask_app: Flask) -> None:
    @flask_app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        flask_app.logger.warning("Upload too large for path %s", request.path)
        return jsonify({'error': 'file too large'}), 413

    @flask_app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            if request.path.startswith('/api/'):
                return jsonify({'error': e.description or e.name}), e.code or 500
            return e
        flask_app.logger.exception("Unhandled exception")
        if request.path.startswith('/api/'):
            return jsonify({'error': 'internal server error'}), 500
        return "Internal Server Error", 500


def create_app(
    flask_app: Flask | None = None,
    *,
    configure_blueprints: Callable[[Flask], None] | None = None,
    settings: Mapping[str, Any] | None = None,
) -> Flask:
    """Return a configured Flask application instance.

    ``settings`` is merged into ``flask_app.config``; ``CORS_ORIGINS`` in the
    resulting config drives the ``flask-cors`` setup for ``/api/*`` routes.
    """
    if flask_app is None:
        flask_app = Flask(__name__)
    if settings:
        flask_app.config.update(settings)

    CORS(
        flask_app,
        resources={r"/api/*": {"origins": _parse_origins(flask_app.config.get('CORS_ORIGINS'))}},
    )
    _register_error_handlers(flask_app)

    if configure_blueprints is not None:
        configure_blueprints(flask_app)
    logger.debug("Registered blueprints: %s", ", ".join(sorted(flask_app.blueprints)))
    return flask_app
