"""Shared payload coercion helpers for domain ``from_dict`` parsers.

Every helper raises ``ValueError`` with the dotted field path so that a malformed
persisted payload points at the exact offending field.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

try:
    from datetime import UTC
except ImportError:  # pragma: no cover - Python < 3.11 compatibility
    UTC = timezone.utc  # noqa: UP017

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

E = TypeVar("E", bound=Enum)


def expect_object(
    value: object,
    path: str,
    *,
    required: Collection[str],
    optional: Collection[str] = (),
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{path}: expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise ValueError(f"{path}: object keys must be strings")
        parsed[key] = item

    unknown = sorted(key for key in parsed if key not in required and key not in optional)
    if unknown:
        raise ValueError(f"{path}: unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        raise ValueError(f"{path}: missing required fields: {missing}")

    return parsed


def as_str(value: object, path: str, *, allow_empty: bool = True) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{path}: expected string, got {type(value).__name__}")
    if not allow_empty and not value.strip():
        raise ValueError(f"{path}: must not be empty")
    return value


def as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return as_str(value, path)


def as_bool(value: object, path: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{path}: expected boolean, got {type(value).__name__}")
    return value


def as_int(value: object, path: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{path}: expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ValueError(f"{path}: must be >= {minimum}")
    return value


def as_float(
    value: object,
    path: str,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{path}: expected number, got {type(value).__name__}")
    parsed = float(value)
    if not math.isfinite(parsed):
        raise ValueError(f"{path}: must be finite")
    if minimum is not None and parsed < minimum:
        raise ValueError(f"{path}: must be >= {minimum}")
    if maximum is not None and parsed > maximum:
        raise ValueError(f"{path}: must be <= {maximum}")
    return parsed


def as_optional_float(value: object, path: str) -> float | None:
    if value is None:
        return None
    return as_float(value, path)


def as_list(value: object, path: str) -> list[object]:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{path}: expected array, got {type(value).__name__}")
    return list(value)


def as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    items = as_list(value, path)
    return tuple(as_str(item, f"{path}[{index}]") for index, item in enumerate(items))


def as_enum(enum_type: type[E], value: object, path: str) -> E:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(str(member.value) for member in enum_type)
        raise ValueError(f"{path}: invalid value {value!r}; expected one of: {allowed}") from exc


def as_utc_datetime(value: object, path: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"{path}: invalid ISO-8601 datetime {value!r}") from exc
    else:
        raise ValueError(
            f"{path}: expected datetime or ISO-8601 string, got {type(value).__name__}"
        )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def iso8601z(value: datetime) -> str:
    normalized = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return normalized.astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(UTC)


__all__ = [
    "JSONScalar",
    "JSONValue",
    "UTC",
    "as_bool",
    "as_enum",
    "as_float",
    "as_int",
    "as_list",
    "as_optional_float",
    "as_optional_str",
    "as_str",
    "as_str_tuple",
    "as_utc_datetime",
    "expect_object",
    "iso8601z",
    "utc_now",
]
