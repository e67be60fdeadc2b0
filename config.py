"""Application-wide configuration helpers and constants."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final
from urllib.parse import quote_plus

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")


logger = logging.getLogger(__name__)


def _clean_text(value: str | None) -> str:
    """Return ``value`` stripped of surrounding whitespace."""

    if value is None:
        return ""
    return value.strip()


def _path_from(env_value: str | None, default: str | Path) -> Path:
    """Resolve a filesystem path using an environment override when provided."""

    text = _clean_text(env_value)
    candidate = Path(text) if text else Path(default)
    candidate = candidate.expanduser()
    if candidate.is_absolute():
        try:
            return candidate.resolve()
        except (OSError, RuntimeError):  # pragma: no cover - fallback for exotic paths
            return candidate
    return candidate


def _coerce_positive_float(value: str | None, default: float) -> float:
    """Return ``value`` coerced to a positive float or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = float(text)
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_positive_int(value: str | None, default: int) -> int:
    """Return ``value`` coerced to a positive integer or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = int(float(text))
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_truthy_env(value: str | None) -> bool:
    """Return ``True`` when ``value`` represents an affirmative flag."""

    if value is None:
        return False
    text = value.strip().lower()
    return text in {"1", "true", "yes", "on"}


UPLOAD_DIR_PATH: Final[Path] = _path_from(os.environ.get("UPLOAD_DIR"), "uploads")
UPLOAD_DIR: Final[str] = os.fspath(UPLOAD_DIR_PATH)
MAX_UPLOAD_BYTES: Final[int] = _coerce_positive_int(
    os.environ.get("MAX_UPLOAD_BYTES"), 8 * 1024 * 1024
)

LOG_DIR_PATH: Final[Path] = _path_from(os.environ.get("LOG_DIR"), BASE_DIR / "logs")
LOG_DIR: Final[str] = os.fspath(LOG_DIR_PATH)
LOG_FILE_PATH: Final[Path] = _path_from(
    os.environ.get("LOG_FILE"), LOG_DIR_PATH / "app.log"
)
LOG_FILE: Final[str] = os.fspath(LOG_FILE_PATH)

DB_HOST: Final[str] = _clean_text(os.environ.get("DB_HOST")) or "localhost"
DB_PORT: Final[int] = _coerce_positive_int(os.environ.get("DB_PORT"), 5432)
DB_NAME: Final[str] = _clean_text(os.environ.get("DB_NAME")) or "gaming_lab"
DB_USER: Final[str] = _clean_text(os.environ.get("DB_USER"))
DB_PASSWORD: Final[str] = _clean_text(os.environ.get("DB_PASSWORD"))
DB_SSL: Final[bool] = _coerce_truthy_env(os.environ.get("DB_SSL"))
DB_CONNECT_TIMEOUT_SECONDS: Final[float] = _coerce_positive_float(
    os.environ.get("DB_CONNECT_TIMEOUT"), 10.0
)

TWITCH_CLIENT_ID: Final[str] = _clean_text(os.environ.get("TWITCH_CLIENT_ID"))
TWITCH_CLIENT_SECRET: Final[str] = _clean_text(os.environ.get("TWITCH_CLIENT_SECRET"))
TWITCH_ACCESS_TOKEN: Final[str] = _clean_text(os.environ.get("TWITCH_ACCESS_TOKEN"))
TWITCH_TOKEN_FILE_PATH: Final[Path] = _path_from(
    os.environ.get("TWITCH_TOKEN_FILE"), "twitch_token.json"
)
TWITCH_TOKEN_FILE: Final[str] = os.fspath(TWITCH_TOKEN_FILE_PATH)

DEFAULT_IGDB_USER_AGENT: Final[str] = "GamingLab/1.0 (support@example.com)"
IGDB_USER_AGENT: Final[str] = (
    _clean_text(os.environ.get("IGDB_USER_AGENT")) or DEFAULT_IGDB_USER_AGENT
)
IGDB_TIMEOUT_SECONDS: Final[float] = _coerce_positive_float(
    os.environ.get("IGDB_TIMEOUT"), 10.0
)
IGDB_ENABLED: bool = True

JWT_SECRET: Final[str] = _clean_text(os.environ.get("JWT_SECRET")) or "gaming-lab-development-signing-key"
JWT_EXP_SECONDS: Final[int] = _coerce_positive_int(
    os.environ.get("JWT_EXP_SECONDS"), 60 * 60
)

CORS_ORIGINS: Final[str] = _clean_text(os.environ.get("CORS_ORIGINS")) or "*"
PORT: Final[int] = _coerce_positive_int(os.environ.get("PORT"), 5000)


def get_db_dsn() -> str:
    """Return a database DSN constructed from environment configuration.

    PostgreSQL is used as soon as any ``DB_*`` connection variable is set;
    otherwise a SQLite file is resolved against the current directory.
    """

    postgres_overrides = {
        key: _clean_text(os.environ.get(key))
        for key in ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD")
    }
    if any(value for value in postgres_overrides.values()):
        auth = ""
        if DB_USER:
            password = quote_plus(DB_PASSWORD) if DB_PASSWORD else ""
            auth = DB_USER
            if password:
                auth = f"{auth}:{password}"
            auth = f"{auth}@"

        query_string = "?sslmode=require" if DB_SSL else ""
        return f"postgresql://{auth}{DB_HOST}:{DB_PORT}/{DB_NAME}{query_string}"

    sqlite_path = _path_from(os.environ.get("DB_PATH"), "gaming_lab.db").resolve()
    return f"sqlite:///{sqlite_path.as_posix()}"


def validate_igdb_credentials() -> bool:
    """Ensure Twitch credentials are configured and update ``IGDB_ENABLED``."""

    global IGDB_ENABLED

    missing = [
        name
        for name, value in (
            ("TWITCH_CLIENT_ID", TWITCH_CLIENT_ID),
            ("TWITCH_CLIENT_SECRET", TWITCH_CLIENT_SECRET),
        )
        if not value
    ]

    IGDB_ENABLED = not missing
    if missing:
        logger.error(
            "Missing required IGDB credentials; set %s.", " and ".join(missing)
        )

    return IGDB_ENABLED


def _validate_settings() -> None:
    """Sanity-check critical configuration values."""

    if not JWT_SECRET:
        raise RuntimeError("JWT_SECRET must not be empty")


_validate_settings()


__all__ = [
    "BASE_DIR",
    "CORS_ORIGINS",
    "DB_CONNECT_TIMEOUT_SECONDS",
    "DB_HOST",
    "DB_NAME",
    "DB_PASSWORD",
    "DB_PORT",
    "DB_SSL",
    "DB_USER",
    "DEFAULT_IGDB_USER_AGENT",
    "IGDB_ENABLED",
    "IGDB_TIMEOUT_SECONDS",
    "IGDB_USER_AGENT",
    "JWT_EXP_SECONDS",
    "JWT_SECRET",
    "LOG_DIR",
    "LOG_DIR_PATH",
    "LOG_FILE",
    "LOG_FILE_PATH",
    "MAX_UPLOAD_BYTES",
    "PORT",
    "TWITCH_ACCESS_TOKEN",
    "TWITCH_CLIENT_ID",
    "TWITCH_CLIENT_SECRET",
    "TWITCH_TOKEN_FILE",
    "TWITCH_TOKEN_FILE_PATH",
    "UPLOAD_DIR",
    "UPLOAD_DIR_PATH",
    "get_db_dsn",
    "validate_igdb_credentials",
]
