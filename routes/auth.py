"""Registration, login and session API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, g, jsonify

from accounts import service as accounts_service
from accounts.tokens import issue_token
from routes.api_utils import (
    BadRequestError,
    UnauthorizedError,
    handle_api_errors,
    json_payload,
    token_required,
)

auth_blueprint = Blueprint("auth", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the auth endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"auth routes missing context value: {key}")
    return _context[key]


def _get_db():
    getter: Callable[[], Any] = _ctx('get_db')
    return getter()


@auth_blueprint.route('/api/auth/register', methods=['POST'])
@handle_api_errors
def api_register():
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            user = accounts_service.register_user(
                conn,
                email=payload.get('email'),
                username=payload.get('username'),
                password=payload.get('password'),
            )
    except (accounts_service.AccountValidationError, accounts_service.AccountConflictError) as exc:
        raise BadRequestError(str(exc)) from exc
    return jsonify({'message': 'Registration successful', 'user': user}), 201


@auth_blueprint.route('/api/auth/login', methods=['POST'])
@handle_api_errors
def api_login():
    payload = json_payload()
    try:
        with _get_db().sa_connection() as conn:
            user = accounts_service.authenticate_user(
                conn,
                email=payload.get('email'),
                password=payload.get('password'),
            )
    except accounts_service.AccountValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    except accounts_service.InvalidCredentialsError as exc:
        raise UnauthorizedError(str(exc)) from exc

    token = issue_token(
        user['id'],
        user['username'],
        secret=_ctx('jwt_secret'),
        ttl_seconds=_ctx('jwt_ttl_seconds'),
    )
    return jsonify({'message': 'Login successful', 'token': token, 'user': user})


@auth_blueprint.route('/api/auth/logout', methods=['POST'])
@handle_api_errors
def api_logout():
    # Tokens are stateless; the client discards its copy.
    return jsonify({'message': 'Logged out successfully'})


@auth_blueprint.route('/api/protected/dashboard')
@handle_api_errors
@token_required
def api_dashboard():
    return jsonify(
        {
            'message': 'Welcome to the protected dashboard!',
            'user': dict(g.current_user),
        }
    )
