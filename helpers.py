"""General-purpose helper utilities shared across the application."""

from __future__ import annotations

import json
import numbers
from datetime import datetime, timezone
from typing import Any, Iterable


__all__ = [
    "_coerce_int",
    "_dedupe_preserve_order",
    "_encode_name_list",
    "_format_first_release_date",
    "_normalize_text",
    "_parse_id_list",
    "_parse_name_list",
]


def _normalize_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _coerce_int(value: Any) -> int | None:
    """Return ``value`` as an ``int`` or ``None`` when it is not integral."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        return int(value) if float(value).is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except (TypeError, ValueError):
        return None


def _dedupe_preserve_order(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value).strip()
        if not text:
            continue
        key = text.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def _parse_id_list(value: Any) -> list[int]:
    """Return unique integer ids from a comma-separated string or iterable."""

    if value in (None, ""):
        return []
    if isinstance(value, str):
        candidates: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        candidates = value
    else:
        candidates = [value]
    ids: list[int] = []
    seen: set[int] = set()
    for candidate in candidates:
        coerced = _coerce_int(candidate)
        if coerced is None or coerced in seen:
            continue
        seen.add(coerced)
        ids.append(coerced)
    return ids


def _parse_name_list(raw_value: Any) -> list[str]:
    """Decode a stored JSON list of names, tolerating legacy CSV text."""

    if raw_value in (None, ""):
        return []
    if isinstance(raw_value, str):
        text = raw_value.strip()
        if not text:
            return []
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            return _dedupe_preserve_order(text.split(","))
    else:
        value = raw_value
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return _dedupe_preserve_order(value)


def _encode_name_list(values: Any) -> str | None:
    if values is None:
        return None
    if isinstance(values, str):
        values = values.split(",")
    if not isinstance(values, (list, tuple)):
        return None
    return json.dumps(_dedupe_preserve_order(values), ensure_ascii=False)


def _format_first_release_date(value: Any) -> str:
    if value in (None, "", 0):
        return ""
    try:
        timestamp = float(value)
    except (TypeError, ValueError):
        try:
            timestamp = float(str(value).strip())
        except (TypeError, ValueError):
            return ""
    if timestamp <= 0:
        return ""
    try:
        dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return ""
    return dt.date().isoformat()
