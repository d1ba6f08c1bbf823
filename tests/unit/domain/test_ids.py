"""Unit tests for prefixed ULID helpers."""

from __future__ import annotations

import pytest

from report_intelligence.domain import ids

pytestmark = pytest.mark.unit


def test_ulid_is_deterministic_for_fixed_inputs() -> None:
    value = ids.generate_ulid(timestamp_ms=0, randbytes=lambda size: bytes(size))

    assert value == "0" * ids.ULID_LENGTH
    ids.validate_ulid(value)


def test_ulids_sort_by_timestamp() -> None:
    fixed = bytes(range(10))
    earlier = ids.generate_ulid(timestamp_ms=1_000, randbytes=lambda _: fixed)
    later = ids.generate_ulid(timestamp_ms=2_000, randbytes=lambda _: fixed)

    assert earlier < later


@pytest.mark.parametrize(
    ("generator", "prefix"),
    [
        (ids.generate_report_id, ids.REPORT_ID_PREFIX),
        (ids.generate_mapping_id, ids.MAPPING_ID_PREFIX),
        (ids.generate_validation_id, ids.VALIDATION_ID_PREFIX),
        (ids.generate_finding_id, ids.FINDING_ID_PREFIX),
        (ids.generate_gap_id, ids.GAP_ID_PREFIX),
        (ids.generate_violation_id, ids.VIOLATION_ID_PREFIX),
        (ids.generate_quality_issue_id, ids.QUALITY_ISSUE_ID_PREFIX),
        (ids.generate_event_id, ids.EVENT_ID_PREFIX),
    ],
)
def test_entity_ids_carry_their_prefix(generator, prefix: str) -> None:
    value = generator()

    assert value.startswith(f"{prefix}-")
    ids.validate_prefixed_id(value, prefix)


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("0" * 25, "ulid length must be 26"),
        ("0" * 25 + "U", "invalid ULID character 'U' at index 25"),
        ("8" + "0" * 25, "ulid overflow"),
    ],
)
def test_invalid_ulids(value: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        ids.validate_ulid(value)


def test_prefixed_id_validation_errors() -> None:
    report_id = ids.generate_report_id()

    with pytest.raises(ValueError, match="expected prefix 'map-'"):
        ids.validate_prefixed_id(report_id, ids.MAPPING_ID_PREFIX)
    with pytest.raises(ValueError, match="invalid ULID part for prefix 'rpt'"):
        ids.validate_prefixed_id("rpt-short", ids.REPORT_ID_PREFIX)
    with pytest.raises(ValueError, match="must not contain '-'"):
        ids.generate_prefixed_id("a-b")
    with pytest.raises(ValueError, match="timestamp_ms out of range"):
        ids.generate_ulid(timestamp_ms=-1)
    with pytest.raises(ValueError, match="exactly 10 bytes"):
        ids.generate_ulid(randbytes=lambda _: b"short")
