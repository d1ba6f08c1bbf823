"""Repository tests for stored reports, mappings, validation results and rule sets."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from report_intelligence.persistence import (
    DecompiledReportRepo,
    RuleSetRepo,
    SchemaMappingRepo,
    StateDB,
    ValidationResultRepo,
)
from report_intelligence.validation import RuleSet, ValidationEngine

from .. import make_field, make_mapping, make_report, make_rule, make_section

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


@pytest.fixture
def db(tmp_path: Path) -> StateDB:
    return StateDB(tmp_path / "reports.sqlite3")


def test_report_round_trip_and_upsert(db: StateDB) -> None:
    repo = DecompiledReportRepo(db)
    report = make_report([make_section()], text="# Introduction\nHedges.")

    repo.save(report)
    assert repo.get(report.id) == report

    revised = replace(report, detected_report_type="bs5837-2012", confidence_score=0.9)
    repo.save(revised)

    assert repo.get(report.id) == revised
    assert len(repo.get_all()) == 1
    assert repo.get("dr_missing") is None


def test_find_by_source_hash_orders_oldest_first(db: StateDB) -> None:
    repo = DecompiledReportRepo(db)
    later = make_report(text="same text", seed=5)
    earlier = make_report(text="same text", seed=1)
    other = make_report(text="different", seed=2)
    for report in (later, earlier, other):
        repo.save(report)

    found = repo.find_by_source_hash(earlier.source_hash)

    assert [report.id for report in found] == [earlier.id, later.id]
    assert repo.find_by_source_hash("0" * 64) == []


def test_get_all_pages_and_validates_arguments(db: StateDB) -> None:
    repo = DecompiledReportRepo(db)
    reports = [make_report(text=f"report {index}", seed=index) for index in range(5)]
    for report in reports:
        repo.save(report)

    page = repo.get_all(limit=2, offset=1)

    assert [report.id for report in page] == [reports[1].id, reports[2].id]
    with pytest.raises(ValueError, match="limit must be in"):
        repo.get_all(limit=0)
    with pytest.raises(ValueError, match="offset must be >= 0"):
        repo.get_all(offset=-1)


def test_delete_reports_whether_a_row_existed(db: StateDB) -> None:
    repo = DecompiledReportRepo(db)
    report = repo.save(make_report())

    assert repo.delete(report.id) is True
    assert repo.delete(report.id) is False
    assert repo.get(report.id) is None


def test_mappings_and_results_are_listed_per_report(db: StateDB) -> None:
    report = make_report()
    mappings = SchemaMappingRepo(db)
    results = ValidationResultRepo(db)
    first = replace(
        make_mapping(mapped_fields=[make_field()], seed=1), decompiled_report_id=report.id
    )
    second = replace(make_mapping(seed=2), decompiled_report_id=report.id)
    unrelated = make_mapping(seed=3)
    for mapping in (second, unrelated, first):
        mappings.save(mapping)
    validation = ValidationEngine().validate(first)
    results.save(validation)

    assert [item.id for item in mappings.list_for_report(report.id)] == [first.id, second.id]
    assert mappings.get(first.id) == first
    assert results.list_for_report(report.id) == [validation]
    assert results.get(validation.id) == validation
    assert results.list_for_report(unrelated.decompiled_report_id) == []


def test_rule_sets_are_keyed_by_name(db: StateDB) -> None:
    repo = RuleSetRepo(db)
    rules = RuleSet([make_rule("qual_001")], name="house")

    repo.save(rules)
    rules.add(make_rule("qual_002"))
    repo.save(rules)

    stored = repo.get("house")
    assert stored is not None
    assert stored.name == "house"
    assert [rule.id for rule in stored] == ["qual_001", "qual_002"]
    assert len(repo.get_all()) == 1
    assert repo.delete("house")


@pytest.mark.asyncio
async def test_async_variants_match_sync_behavior(db: StateDB) -> None:
    reports = DecompiledReportRepo(db)
    mappings = SchemaMappingRepo(db)
    report = make_report(text="async body")
    mapping = replace(make_mapping(), decompiled_report_id=report.id)

    await reports.save_async(report)
    await mappings.save_async(mapping)

    assert await reports.get_async(report.id) == report
    assert await reports.find_by_source_hash_async(report.source_hash) == [report]
    assert await reports.get_all_async(limit=10) == [report]
    assert await mappings.list_for_report_async(report.id) == [mapping]
    assert await reports.delete_async(report.id) is True
    assert await reports.get_async(report.id) is None
