"""Canonical ID generation and validation for report-intelligence entities."""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from typing import Final

CROCKFORD_BASE32_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH: Final[int] = 26
ULID_RANDOM_BYTES: Final[int] = 10
ULID_MAX_TIMESTAMP_MS: Final[int] = (1 << 48) - 1
_PREFIX_SEPARATOR: Final[str] = "-"

# Stable entity ID prefixes.
REPORT_ID_PREFIX: Final[str] = "rpt"
MAPPING_ID_PREFIX: Final[str] = "map"
VALIDATION_ID_PREFIX: Final[str] = "val"
FINDING_ID_PREFIX: Final[str] = "fnd"
GAP_ID_PREFIX: Final[str] = "gap"
VIOLATION_ID_PREFIX: Final[str] = "vio"
QUALITY_ISSUE_ID_PREFIX: Final[str] = "qis"
EVENT_ID_PREFIX: Final[str] = "evt"

_DECODE_TABLE: Final[dict[str, int]] = {
    char: index for index, char in enumerate(CROCKFORD_BASE32_ALPHABET)
}

_RandBytes = Callable[[int], bytes]

__all__ = [
    "CROCKFORD_BASE32_ALPHABET",
    "EVENT_ID_PREFIX",
    "FINDING_ID_PREFIX",
    "GAP_ID_PREFIX",
    "MAPPING_ID_PREFIX",
    "QUALITY_ISSUE_ID_PREFIX",
    "REPORT_ID_PREFIX",
    "ULID_LENGTH",
    "VALIDATION_ID_PREFIX",
    "VIOLATION_ID_PREFIX",
    "generate_event_id",
    "generate_finding_id",
    "generate_gap_id",
    "generate_mapping_id",
    "generate_prefixed_id",
    "generate_quality_issue_id",
    "generate_report_id",
    "generate_ulid",
    "generate_validation_id",
    "generate_violation_id",
    "validate_prefixed_id",
    "validate_ulid",
]


def generate_ulid(
    *,
    timestamp_ms: int | None = None,
    randbytes: _RandBytes | None = None,
) -> str:
    """Generate a ULID as a 26-character uppercase Crockford Base32 string."""
    ts_ms = time.time_ns() // 1_000_000 if timestamp_ms is None else timestamp_ms
    if isinstance(ts_ms, bool) or not isinstance(ts_ms, int):
        raise ValueError(f"timestamp_ms must be an int, got {type(ts_ms).__name__}")
    if not 0 <= ts_ms <= ULID_MAX_TIMESTAMP_MS:
        raise ValueError(f"timestamp_ms out of range: expected 0..{ULID_MAX_TIMESTAMP_MS}")

    source = secrets.token_bytes if randbytes is None else randbytes
    random_part = bytes(source(ULID_RANDOM_BYTES))
    if len(random_part) != ULID_RANDOM_BYTES:
        raise ValueError(f"randbytes must return exactly {ULID_RANDOM_BYTES} bytes")

    value = (ts_ms << 80) | int.from_bytes(random_part, "big")
    chars: list[str] = []
    for _ in range(ULID_LENGTH):
        chars.append(CROCKFORD_BASE32_ALPHABET[value & 0b11111])
        value >>= 5
    return "".join(reversed(chars))


def validate_ulid(value: str) -> None:
    """Validate a ULID and raise ``ValueError`` with precise context on failure."""
    if not isinstance(value, str):
        raise ValueError(f"ulid must be a string, got {type(value).__name__}")
    if len(value) != ULID_LENGTH:
        raise ValueError(f"ulid length must be {ULID_LENGTH}, got {len(value)}")
    for index, char in enumerate(value):
        if char.upper() not in _DECODE_TABLE:
            raise ValueError(f"invalid ULID character {char!r} at index {index}")
    if _DECODE_TABLE[value[0].upper()] > 7:
        raise ValueError("ulid overflow: value exceeds maximum 128-bit ULID")


def generate_prefixed_id(
    prefix: str,
    *,
    timestamp_ms: int | None = None,
    randbytes: _RandBytes | None = None,
) -> str:
    """Generate a stable prefixed ID in the form ``<prefix>-<ulid>``."""
    _validate_prefix(prefix)
    ulid = generate_ulid(timestamp_ms=timestamp_ms, randbytes=randbytes)
    return f"{prefix}{_PREFIX_SEPARATOR}{ulid}"


def validate_prefixed_id(id_str: str, expected_prefix: str) -> None:
    """Validate ``<prefix>-<ulid>`` format and enforce ``expected_prefix``."""
    _validate_prefix(expected_prefix)
    if not isinstance(id_str, str):
        raise ValueError(f"prefixed id must be a string, got {type(id_str).__name__}")

    expected_lead = f"{expected_prefix}{_PREFIX_SEPARATOR}"
    if not id_str.startswith(expected_lead):
        raise ValueError(f"expected prefix '{expected_lead}' in {id_str!r}")
    try:
        validate_ulid(id_str[len(expected_lead) :])
    except ValueError as exc:
        raise ValueError(f"invalid ULID part for prefix '{expected_prefix}': {exc}") from exc


def generate_report_id() -> str:
    return generate_prefixed_id(REPORT_ID_PREFIX)


def generate_mapping_id() -> str:
    return generate_prefixed_id(MAPPING_ID_PREFIX)


def generate_validation_id() -> str:
    return generate_prefixed_id(VALIDATION_ID_PREFIX)


def generate_finding_id() -> str:
    return generate_prefixed_id(FINDING_ID_PREFIX)


def generate_gap_id() -> str:
    return generate_prefixed_id(GAP_ID_PREFIX)


def generate_violation_id() -> str:
    return generate_prefixed_id(VIOLATION_ID_PREFIX)


def generate_quality_issue_id() -> str:
    return generate_prefixed_id(QUALITY_ISSUE_ID_PREFIX)


def generate_event_id() -> str:
    return generate_prefixed_id(EVENT_ID_PREFIX)


def _validate_prefix(prefix: str) -> None:
    if not isinstance(prefix, str):
        raise ValueError(f"prefix must be a string, got {type(prefix).__name__}")
    if not prefix:
        raise ValueError("prefix must be non-empty")
    if _PREFIX_SEPARATOR in prefix:
        raise ValueError(f"prefix must not contain '{_PREFIX_SEPARATOR}'")
