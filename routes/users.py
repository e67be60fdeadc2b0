"""User profile, preference and media API routes."""

from __future__ import annotations

import os
from typing import Any, Callable, Mapping

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from accounts import media as accounts_media
from accounts import service as accounts_service
from routes.api_utils import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    current_account,
    handle_api_errors,
    json_payload,
    token_required,
)

users_blueprint = Blueprint("users", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the user endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"users routes missing context value: {key}")
    return _context[key]


def _get_db():
    getter: Callable[[], Any] = _ctx('get_db')
    return getter()


def _translate_account_error(exc: accounts_service.AccountError) -> Exception:
    if isinstance(exc, accounts_service.AccountNotFoundError):
        return NotFoundError(str(exc))
    if isinstance(exc, accounts_service.AccountConflictError):
        return ConflictError(str(exc))
    return BadRequestError(str(exc))


def _discard_upload(filename: str) -> None:
    try:
        os.remove(os.path.join(_ctx('upload_dir'), filename))
    except OSError:
        current_app.logger.warning("Unable to remove orphaned upload %s", filename)


@users_blueprint.route('/api/users')
@handle_api_errors
def api_users():
    with _get_db().sa_connection() as conn:
        users = accounts_service.list_users(conn)
    return jsonify(users)


@users_blueprint.route('/api/users/<username>')
@handle_api_errors
def api_user(username: str):
    with _get_db().sa_connection() as conn:
        user = accounts_service.find_user(conn, username)
    if user is None:
        raise NotFoundError('User not found')
    return jsonify(user)


@users_blueprint.route('/api/users/update-username', methods=['POST'])
@handle_api_errors
def api_update_username():
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            user = accounts_service.rename_user(
                conn,
                old_username=payload.get('oldUsername'),
                new_username=payload.get('newUsername'),
            )
    except accounts_service.AccountError as exc:
        raise _translate_account_error(exc) from exc
    return jsonify(
        {
            'success': True,
            'message': 'Username updated successfully!',
            'user': user,
        }
    )


@users_blueprint.route('/api/users/update-profile-pic', methods=['POST'])
@handle_api_errors
def api_update_profile_pic():
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            user = accounts_service.set_user_media(
                conn,
                username=payload.get('username'),
                column='profile_pic',
                url=payload.get('profile_pic'),
            )
    except accounts_service.AccountError as exc:
        raise _translate_account_error(exc) from exc
    return jsonify(
        {
            'success': True,
            'message': 'Profile picture updated successfully!',
            'user': user,
        }
    )


@users_blueprint.route('/api/users/update-preferences', methods=['POST'])
@handle_api_errors
def api_update_preferences():
    payload = json_payload()
    try:
        with _get_db().transaction() as conn:
            user = accounts_service.update_preferences(
                conn,
                username=payload.get('username'),
                platforms=payload.get('platforms'),
                genres=payload.get('genres'),
            )
    except accounts_service.AccountError as exc:
        raise _translate_account_error(exc) from exc
    return jsonify(
        {
            'success': True,
            'message': 'Preferences updated successfully!',
            'user': user,
        }
    )


@users_blueprint.route('/api/users/<username>/media', methods=['POST'])
@handle_api_errors
@token_required
def api_upload_media(username: str):
    with _get_db().sa_connection() as conn:
        owner = current_account(conn)['username']
    if owner.lower() != username.strip().lower():
        raise ForbiddenError('You can only change your own profile media.')

    kind = (request.form.get('kind') or 'profile_pic').strip()
    if kind not in accounts_service.MEDIA_COLUMNS:
        raise BadRequestError('kind must be profile_pic or banner')

    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise BadRequestError('file is required')
    if not accounts_media.has_allowed_extension(upload.filename):
        raise BadRequestError('unsupported file type')

    try:
        filename, width, height = accounts_media.save_media_image(
            upload.stream, _ctx('upload_dir'), kind=kind
        )
    except accounts_media.MediaError as exc:
        raise BadRequestError(str(exc)) from exc

    url = f'/uploads/{filename}'
    try:
        with _get_db().transaction() as conn:
            user = accounts_service.set_user_media(
                conn, username=owner, column=kind, url=url
            )
    except Exception as exc:
        _discard_upload(filename)
        if isinstance(exc, accounts_service.AccountError):
            raise _translate_account_error(exc) from exc
        raise
    return jsonify(
        {
            'success': True,
            'url': url,
            'width': width,
            'height': height,
            'user': user,
        }
    )


@users_blueprint.route('/uploads/<path:filename>')
def uploaded_file(filename: str):
    return send_from_directory(os.path.abspath(_ctx('upload_dir')), filename)
