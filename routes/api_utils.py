"""Shared helpers for API routes (error handling, logging and auth)."""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable, Mapping, ParamSpec, TypeVar

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from accounts import service as accounts_service
from accounts.tokens import InvalidSessionToken, decode_token

P = ParamSpec("P")
R = TypeVar("R")


class APIError(Exception):
    """Base class for API errors that includes an HTTP status code."""

    status_code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        data = {"error": self.message}
        data.update(self.payload)
        return data


class BadRequestError(APIError):
    status_code = 400
    message = "Invalid request."


class UnauthorizedError(APIError):
    status_code = 401
    message = "Unauthorized."


class ForbiddenError(APIError):
    status_code = 403
    message = "Forbidden."


class NotFoundError(APIError):
    status_code = 404
    message = "Resource not found."


class ConflictError(APIError):
    status_code = 409
    message = "Conflict detected."


class PayloadTooLargeError(APIError):
    status_code = 413
    message = "Uploaded file is too large."


class UpstreamServiceError(APIError):
    status_code = 502
    message = "Upstream service unavailable."


class ServiceUnavailableError(APIError):
    status_code = 503
    message = "Catalog unavailable."


def json_payload() -> Mapping[str, Any]:
    """Return the request JSON object, or raise when the body is not one."""

    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise BadRequestError("invalid payload")
    return payload


def _resolve_user() -> str:
    claims = getattr(g, "current_user", None)
    if isinstance(claims, Mapping) and claims.get("username"):
        return str(claims["username"])
    return "anonymous"


def _collect_request_context() -> dict[str, Any]:
    context: dict[str, Any] = {
        "route": request.path,
        "endpoint": request.endpoint,
        "method": request.method,
        "user": _resolve_user(),
        "view_args": dict(request.view_args or {}),
        "args": request.args.to_dict(flat=False),
    }

    try:
        json_body = request.get_json(silent=True)
    except Exception:
        json_body = None
    if isinstance(json_body, Mapping):
        context["json"] = {
            key: ("***" if "password" in str(key).lower() else value)
            for key, value in json_body.items()
        }

    return context


def _serialize_context(context: dict[str, Any]) -> str:
    try:
        return json.dumps(context, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(context)


def _log_api_error(exc: Exception, *, status_code: int, handled: bool) -> None:
    context = _collect_request_context()
    context["status_code"] = status_code
    context_str = _serialize_context(context)
    if handled and status_code < 500:
        current_app.logger.warning(
            "Handled API error (%s): %s | context=%s", status_code, exc, context_str
        )
        return
    if handled:
        current_app.logger.error(
            "Handled API error (%s): %s | context=%s", status_code, exc, context_str,
            exc_info=exc,
        )
        return
    current_app.logger.exception(
        "Unhandled API error (%s): %s | context=%s", status_code, exc, context_str
    )


def handle_api_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Decorator that centralizes API error handling and logging."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        try:
            return func(*args, **kwargs)
        except APIError as exc:
            status_code = exc.status_code
            _log_api_error(exc, status_code=status_code, handled=True)
            response = jsonify(exc.to_dict())
            return response, status_code
        except HTTPException as exc:
            status_code = exc.code or 500
            message = exc.description or str(exc)
            api_error = APIError(message=message, status_code=status_code)
            _log_api_error(exc, status_code=status_code, handled=True)
            return jsonify(api_error.to_dict()), status_code
        except Exception as exc:  # pragma: no cover - last-resort guard
            _log_api_error(exc, status_code=500, handled=False)
            return jsonify({"error": "Internal Server Error"}), 500

    return wrapper


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def token_required(func: Callable[P, R]) -> Callable[P, R]:
    """Require a valid bearer token and expose its claims as ``g.current_user``.

    Must be applied inside :func:`handle_api_errors` so the raised errors are
    rendered as JSON.
    """

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        token = _bearer_token()
        if token is None:
            raise UnauthorizedError("Access denied. No token provided.")
        try:
            claims = decode_token(token, secret=current_app.config["JWT_SECRET"])
        except InvalidSessionToken as exc:
            raise ForbiddenError("Invalid or expired token.") from exc
        g.current_user = claims
        return func(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    claims = getattr(g, "current_user", None)
    if not isinstance(claims, Mapping) or "id" not in claims:
        raise UnauthorizedError("Access denied. No token provided.")
    return int(claims["id"])


def current_account(conn: Any) -> dict[str, Any]:
    """Return the stored profile of the bearer-token user.

    The username is read from the database rather than the token claims, so a
    rename takes effect for tokens issued before it.
    """

    user = accounts_service.get_user_by_id(conn, current_user_id())
    if user is None:
        raise UnauthorizedError("Account no longer exists.")
    return user


__all__ = [
    "APIError",
    "BadRequestError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "PayloadTooLargeError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "UpstreamServiceError",
    "current_account",
    "current_user_id",
    "handle_api_errors",
    "json_payload",
    "token_required",
]
