"""Application startup orchestration helpers."""

from __future__ import annotations

import logging
from typing import Callable

from db import schema
from db import utils as db_utils

logger = logging.getLogger(__name__)


def initialize_app(
    *,
    ensure_dirs: Callable[[], None],
    connection_factory: Callable[[], db_utils.DatabaseEngine],
    create_tables: bool = True,
) -> db_utils.DatabaseEngine:
    """Perform the core startup tasks required for the application.

    The initializer ensures filesystem directories exist, builds the database
    engine, creates any missing tables and registers the engine as the
    fallback used outside of a request context.

    Parameters mirror the helper functions in :mod:`app` so that the
    orchestration can remain testable and reusable from scripts.
    """

    ensure_dirs()

    handle = connection_factory()
    if create_tables:
        try:
            schema.create_all(handle.engine)
        except Exception:
            logger.exception("Failed to create database tables during startup")
            raise
    db_utils.set_fallback_connection(handle)
    logger.info("Database ready (%s)", handle.dialect_name)

    return handle


__all__ = ["initialize_app"]
