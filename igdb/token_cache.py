"""Shared Twitch bearer credential for outbound IGDB calls.

The cache holds a single :class:`AccessCredential` that is replaced wholesale
on every refresh. Readers copy the reference once, so a concurrent refresh is
observed either entirely or not at all. Two requests that both see an expired
credential may each run an exchange; the later one simply wins.
"""

from __future__ import annotations

import json
import logging
import math
import numbers
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)


class CredentialExchangeError(RuntimeError):
    """Raised when the identity endpoint does not yield a usable token."""


@dataclass(frozen=True)
class AccessCredential:
    """Bearer token paired with the epoch second at which it stops being valid."""

    token: str | None = None
    expires_at: float = 0.0

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at


EMPTY_CREDENTIAL = AccessCredential()


def _coerce_ttl(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, numbers.Real):
        ttl = float(value)
    else:
        try:
            ttl = float(str(value).strip())
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(ttl) or ttl <= 0:
        return 0.0
    return ttl


class AccessTokenCache:
    """Cache a client-credentials token until its advertised expiry."""

    def __init__(
        self,
        exchange: Callable[[], Mapping[str, Any]],
        *,
        clock: Callable[[], float] | None = None,
        store_path: str | os.PathLike[str] | None = None,
        seed_token: str | None = None,
    ) -> None:
        self._exchange = exchange
        self._clock = clock or time.time
        self._store_path = Path(store_path) if store_path else None
        self._credential = EMPTY_CREDENTIAL
        self.exchange_count = 0

        persisted = self._load_persisted()
        seed = seed_token.strip() if seed_token else ""
        if persisted is not None and (persisted.is_valid(self._clock()) or not seed):
            self._credential = persisted
        elif seed:
            if persisted is not None:
                logger.info("Persisted Twitch token expired; using TWITCH_ACCESS_TOKEN")
            # No advertised expiry; kept until the catalog rejects it.
            self._credential = AccessCredential(seed, math.inf)

    @property
    def credential(self) -> AccessCredential:
        return self._credential

    def get_token(self) -> str:
        """Return a bearer token, exchanging credentials when the cache is stale."""

        credential = self._credential
        if credential.is_valid(self._clock()):
            return credential.token  # type: ignore[return-value]
        return self._refresh().token  # type: ignore[return-value]

    def invalidate(self) -> None:
        """Drop the cached token so the next lookup performs an exchange."""

        self._credential = EMPTY_CREDENTIAL

    def _refresh(self) -> AccessCredential:
        logger.info("Requesting a new Twitch access token")
        now = self._clock()
        self.exchange_count += 1
        payload = self._exchange()
        token = payload.get("access_token") if isinstance(payload, Mapping) else None
        if not isinstance(token, str) or not token.strip():
            raise CredentialExchangeError("missing access token in twitch response")

        ttl = _coerce_ttl(payload.get("expires_in"))
        if ttl <= 0:
            logger.warning("Twitch token response carried no usable expires_in")
        credential = AccessCredential(token.strip(), now + ttl)
        self._credential = credential
        self._persist(credential)
        return credential

    def _load_persisted(self) -> AccessCredential | None:
        if self._store_path is None or not self._store_path.exists():
            return None
        try:
            data = json.loads(self._store_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", self._store_path, exc)
            return None
        if not isinstance(data, Mapping):
            return None
        token = data.get("access_token")
        if not isinstance(token, str) or not token.strip():
            return None
        try:
            expires_at = float(data.get("expires_at") or 0)
        except (TypeError, ValueError):
            expires_at = 0.0
        return AccessCredential(token.strip(), expires_at)

    def _persist(self, credential: AccessCredential) -> None:
        if self._store_path is None:
            return
        document = {"access_token": credential.token, "expires_at": credential.expires_at}
        try:
            if self._store_path.parent and not self._store_path.parent.exists():
                self._store_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._store_path.with_suffix(self._store_path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(document), encoding="utf-8")
            os.replace(tmp_path, self._store_path)
        except OSError as exc:
            logger.warning("Unable to persist Twitch token to %s: %s", self._store_path, exc)


__all__ = [
    "AccessCredential",
    "AccessTokenCache",
    "CredentialExchangeError",
    "EMPTY_CREDENTIAL",
]
