"""Decoders for FreeIPA's JSON value encodings.

FreeIPA returns most LDAP attributes as single-element arrays
(``"uid": ["alice"]``) and datetimes through a class-hint object
(``{"__datetime__": "20230115120000Z"}``). The helpers here unwrap those
shapes at the ingestion boundary so records can hold plain Python values.
Nothing in this module raises on malformed input: a bad value degrades to
the type's empty default.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

IPA_DATETIME_FORMAT = "%Y%m%d%H%M%SZ"
DATETIME_HINT = "__datetime__"

ZERO_DATETIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def unwrap_scalar(value: Any, default: Any = "") -> Any:
    """Return element 0 of an array-wrapped scalar, or ``default`` when empty."""
    if value is None:
        return default
    if isinstance(value, (list, tuple)):
        if not value:
            return default
        first = value[0]
        return default if first is None else first
    return value


def unwrap_str(value: Any, default: str = "") -> str:
    scalar = unwrap_scalar(value, default)
    if isinstance(scalar, dict):
        return default
    return str(scalar)


def unwrap_int(value: Any, default: int = 0) -> int:
    scalar = unwrap_scalar(value, default)
    if isinstance(scalar, bool):
        return int(scalar)
    try:
        return int(scalar)
    except (TypeError, ValueError):
        return default


def unwrap_bool(value: Any, default: bool = False) -> bool:
    scalar = unwrap_scalar(value, default)
    if isinstance(scalar, bool):
        return scalar
    if isinstance(scalar, str):
        return scalar.strip().lower() == "true"
    if isinstance(scalar, (int, float)):
        return scalar != 0
    return default


def unwrap_list(value: Any) -> list[str]:
    """Decode a repeated-value field into an ordered list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value if item is not None and not isinstance(item, (dict, list))]


def parse_datetime(text: Any) -> datetime:
    """Parse a compact FreeIPA timestamp; failures yield ``ZERO_DATETIME``."""
    if not isinstance(text, str):
        return ZERO_DATETIME
    try:
        parsed = datetime.strptime(text.strip(), IPA_DATETIME_FORMAT)
    except ValueError:
        return ZERO_DATETIME
    return parsed.replace(tzinfo=timezone.utc)


def unwrap_datetime(value: Any) -> datetime:
    """Decode ``[{"__datetime__": "..."}]`` (or the bare object) into a UTC datetime."""
    tagged = unwrap_scalar(value, None)
    if not isinstance(tagged, dict):
        return ZERO_DATETIME
    return parse_datetime(tagged.get(DATETIME_HINT))


def is_zero_datetime(value: datetime | None) -> bool:
    return value is None or value == ZERO_DATETIME


def format_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(IPA_DATETIME_FORMAT)


def wrap_datetime(value: datetime) -> dict[str, str]:
    """Encode a datetime with FreeIPA's class hint for sending as an option."""
    return {DATETIME_HINT: format_datetime(value)}
