"""IGDB client and Twitch credential exchange."""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Callable, Mapping

from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from helpers import _format_first_release_date
from igdb.query import (
    SearchFilters,
    build_game_detail_query,
    build_game_name_query,
    build_search_query,
)
from igdb.token_cache import AccessTokenCache, CredentialExchangeError

logger = logging.getLogger(__name__)


__all__ = [
    "AuthenticationRejected",
    "CatalogError",
    "CatalogRequestError",
    "CredentialExchangeError",
    "IGDBClient",
    "add_release_date",
]


class CatalogError(RuntimeError):
    """Base class for failed catalog calls."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationRejected(CatalogError):
    """IGDB answered 401 to a request carrying a freshly exchanged token."""


class CatalogRequestError(CatalogError):
    """IGDB request failed for a reason other than authentication."""


def add_release_date(game: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``game`` with a ``releaseDate`` string derived from its timestamp."""

    result = dict(game)
    result["releaseDate"] = _format_first_release_date(game.get("first_release_date")) or "Unknown"
    return result


class IGDBClient:
    """High level helper that manages IGDB authentication and queries."""

    BASE_URL = "https://api.igdb.com/v4"
    TOKEN_URL = "https://id.twitch.tv/oauth2/token"

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        user_agent: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        rate_limit_wait: float = 1.0,
        request_factory: Callable[..., Any] | None = None,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
        token_store_path: str | os.PathLike[str] | None = None,
        seed_token: str | None = None,
        token_cache: AccessTokenCache | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._client_id = (client_id or self._env.get("TWITCH_CLIENT_ID") or "").strip()
        self._client_secret = (
            client_secret or self._env.get("TWITCH_CLIENT_SECRET") or ""
        ).strip()
        self._user_agent = (user_agent or "").strip()
        self._timeout = timeout if timeout and timeout > 0 else 10.0
        self._max_retries = max(1, int(max_retries)) if max_retries else 3
        self._rate_limit_wait = rate_limit_wait if rate_limit_wait and rate_limit_wait > 0 else 1.0
        self._request_factory = request_factory or Request
        self._opener = opener or urlopen
        self._sleep = sleep or time.sleep
        self.token_cache = token_cache or AccessTokenCache(
            self.request_access_token,
            clock=clock,
            store_path=token_store_path,
            seed_token=seed_token,
        )

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def user_agent(self) -> str:
        if self._user_agent:
            return self._user_agent
        env_agent = self._env.get("IGDB_USER_AGENT")
        if env_agent:
            return env_agent.strip()
        return "GamingLab/1.0 (support@example.com)"

    @property
    def has_credentials(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def request_access_token(self) -> Mapping[str, Any]:
        """Perform the client-credentials exchange and return the decoded body."""

        if not self.has_credentials:
            raise CredentialExchangeError("missing twitch client credentials")

        payload = urlencode(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            }
        ).encode("utf-8")
        request = self._request_factory(self.TOKEN_URL, data=payload, method="POST")
        request.add_header("Content-Type", "application/x-www-form-urlencoded")
        request.add_header("Accept", "application/json")

        try:
            with self._opener(request, timeout=self._timeout) as response:
                body = response.read()
        except HTTPError as exc:
            message = _format_http_error("failed to obtain twitch token", exc)
            raise CredentialExchangeError(message) from exc
        except OSError as exc:
            raise CredentialExchangeError(f"failed to obtain twitch token: {exc}") from exc

        try:
            data = json.loads(body.decode("utf-8")) if body else {}
        except ValueError as exc:
            raise CredentialExchangeError("invalid JSON response from twitch") from exc
        if not isinstance(data, Mapping):
            raise CredentialExchangeError("unexpected twitch token response")
        return data

    def query(self, endpoint: str, body: str) -> Any:
        """POST ``body`` to an IGDB endpoint, refreshing the token once on 401."""

        path = str(endpoint or "").strip().strip("/")
        if not path:
            raise ValueError("IGDB endpoint is required")
        payload = str(body or "").strip().encode("utf-8")
        logger.debug("IGDB %s query: %s", path, payload.decode("utf-8"))

        try:
            return self._post_query(path, payload)
        except AuthenticationRejected:
            logger.warning("IGDB rejected the cached token; refreshing and retrying once")
            self.token_cache.invalidate()
        return self._post_query(path, payload)

    def search_games(self, filters: SearchFilters) -> list[dict[str, Any]]:
        data = self.query("games", build_search_query(filters))
        if not isinstance(data, list):
            raise CatalogRequestError("unexpected IGDB search payload")
        return [add_release_date(item) for item in data if isinstance(item, Mapping)]

    def get_game(self, game_id: int) -> dict[str, Any] | None:
        data = self.query("games", build_game_detail_query(game_id))
        if not isinstance(data, list) or not data or not isinstance(data[0], Mapping):
            return None
        return dict(data[0])

    def get_game_name(self, game_id: int) -> str | None:
        data = self.query("games", build_game_name_query(game_id))
        if not isinstance(data, list) or not data or not isinstance(data[0], Mapping):
            return None
        name = data[0].get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        return name.strip()

    def _post_query(self, path: str, payload: bytes) -> Any:
        access_token = self.token_cache.get_token()
        request = self._request_factory(f"{self.BASE_URL}/{path}", data=payload, method="POST")
        self._apply_headers(request, access_token)
        return self._request_json(request, error_prefix=f"IGDB {path} request failed")

    def _apply_headers(self, request: Any, access_token: str) -> None:
        request.add_header("Client-ID", self._client_id)
        request.add_header("Authorization", f"Bearer {access_token}")
        request.add_header("Content-Type", "text/plain")
        request.add_header("Accept", "application/json")
        request.add_header("User-Agent", self.user_agent)

    def _request_json(self, request: Any, *, error_prefix: str) -> Any:
        attempts = self._max_retries
        for attempt in range(attempts):
            try:
                with self._opener(request, timeout=self._timeout) as response:
                    body = response.read()
            except HTTPError as exc:
                if exc.code == 401:
                    raise AuthenticationRejected(
                        _format_http_error(error_prefix, exc), status_code=401
                    ) from exc
                if exc.code == 429 and attempt + 1 < attempts:
                    delay = self._retry_delay(exc)
                    logger.info("IGDB rate limit hit; retrying in %.2fs", delay)
                    if delay > 0:
                        self._sleep(delay)
                    continue
                raise CatalogRequestError(
                    _format_http_error(error_prefix, exc), status_code=exc.code
                ) from exc
            except OSError as exc:
                raise CatalogRequestError(f"{error_prefix}: {exc}") from exc
            try:
                text = body.decode("utf-8") if body else ""
                return json.loads(text) if text else []
            except ValueError as exc:
                raise CatalogRequestError("invalid JSON response from IGDB") from exc
        return []

    def _retry_delay(self, error: HTTPError) -> float:
        headers = getattr(error, "headers", None)
        if headers is not None:
            for key in ("Retry-After", "retry-after"):
                value = headers.get(key)
                if value:
                    try:
                        delay = float(value)
                        if delay > 0:
                            return delay
                    except (TypeError, ValueError):
                        continue
            for key in ("X-RateLimit-Reset", "x-ratelimit-reset"):
                value = headers.get(key)
                if value:
                    try:
                        delay = float(value) - time.time()
                        if delay > 0:
                            return delay
                    except (TypeError, ValueError):
                        continue
        return self._rate_limit_wait


def _format_http_error(prefix: str, error: HTTPError) -> str:
    message = f"{prefix}: {error.code}"
    error_message = ""
    try:
        error_body = error.read()
    except Exception:  # pragma: no cover - best effort to capture error body
        error_body = b""
    if error_body:
        error_message = error_body.decode("utf-8", errors="replace").strip()
    if not error_message and error.reason:
        error_message = str(error.reason)
    if error_message:
        message = f"{message} {error_message}"
    return message
