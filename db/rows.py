"""Row serialization shared by the service layers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping


def serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def row_to_dict(row: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Return a JSON-ready ``dict`` for a SQLAlchemy row mapping."""

    if row is None:
        return None
    return {key: serialize_value(value) for key, value in row.items()}


__all__ = ["row_to_dict", "serialize_value"]
