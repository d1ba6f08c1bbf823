"""Unit tests for report-type definitions and the YAML-backed registry."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from report_intelligence.errors import ReportTypeDefinitionError, UnknownReportTypeError
from report_intelligence.registry import (
    BUILTIN_DIR,
    ConditionalLogic,
    ConditionType,
    ReportTypeDefinition,
    ReportTypeRegistry,
)

from .. import make_definition

pytestmark = pytest.mark.unit

BUILTIN_IDS = (
    "arb-impact-assessment",
    "arb-method-statement",
    "bs5837-2012",
    "tree-condition-report",
    "mortgage-insurance-report",
    "tree-safety-report",
)

_MINIMAL_YAML = """\
id: hedge-survey
name: Hedge Survey
description: Survey of boundary hedges
category: survey
version: '0.1.0'
required_sections:
  - id: introduction
    name: Introduction
    description: Purpose of the survey
    required: true
tags: [hedge]
"""


def _write(directory: Path, name: str, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


def test_builtin_registry_loads_six_types_in_file_order() -> None:
    registry = ReportTypeRegistry.builtin()

    assert tuple(item.id for item in registry.list_all()) == BUILTIN_IDS
    assert len(registry) == 6
    assert [path.parent for path in registry.source_files] == [BUILTIN_DIR] * 6


def test_bs5837_definition_contents() -> None:
    definition = ReportTypeRegistry.builtin().require("bs5837-2012")

    assert definition.name == "BS5837:2012 Tree Survey"
    assert len(definition.required_sections) == 10
    assert {rule.standard for rule in definition.compliance_rules} == {"BS5837:2012"}
    assert "bs5837" in definition.tags
    planning = definition.conditional_sections[1].conditional_logic
    assert planning == ConditionalLogic(
        depends_on="introduction", condition=ConditionType.CONTAINS, value="planning"
    )


def test_extra_directories_extend_builtin_types(tmp_path: Path) -> None:
    _write(tmp_path / "types", "hedge.yaml", _MINIMAL_YAML)

    registry = ReportTypeRegistry.builtin(tmp_path / "types")

    assert "hedge-survey" in registry
    assert registry.list_all()[-1].id == "hedge-survey"
    assert registry.require("hedge-survey").required_sections[0].required


def test_duplicate_id_across_files_is_rejected(tmp_path: Path) -> None:
    _write(tmp_path, "a.yaml", _MINIMAL_YAML)
    _write(tmp_path, "b.yaml", _MINIMAL_YAML)

    with pytest.raises(ReportTypeDefinitionError, match="duplicate report type id 'hedge-survey'"):
        ReportTypeRegistry.load(tmp_path)


def test_invalid_yaml_and_shapes_are_reported(tmp_path: Path) -> None:
    broken = tmp_path / "broken"
    _write(broken, "bad.yaml", "id: [unclosed\n")
    with pytest.raises(ReportTypeDefinitionError, match="invalid YAML"):
        ReportTypeRegistry.load(broken)

    listing = tmp_path / "listing"
    _write(listing, "list.yaml", "- just\n- a list\n")
    with pytest.raises(ReportTypeDefinitionError, match="expected top-level YAML mapping"):
        ReportTypeRegistry.load(listing)

    missing_field = tmp_path / "missing"
    _write(missing_field, "hedge.yaml", _MINIMAL_YAML.replace("category: survey\n", ""))
    with pytest.raises(ReportTypeDefinitionError, match="category"):
        ReportTypeRegistry.load(missing_field)


def test_blank_fields_surface_every_problem(tmp_path: Path) -> None:
    blank = _MINIMAL_YAML.replace("name: Hedge Survey", "name: ''").replace(
        "version: '0.1.0'", "version: ''"
    )
    _write(tmp_path, "hedge.yaml", blank)

    with pytest.raises(ReportTypeDefinitionError) as excinfo:
        ReportTypeRegistry.load(tmp_path)

    assert excinfo.value.problems == ("name must not be empty", "version must not be empty")


def test_missing_directory_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ReportTypeRegistry.load(tmp_path / "absent")


def test_register_get_require_and_duplicates() -> None:
    registry = ReportTypeRegistry()
    stored = registry.register(make_definition())

    assert stored.created_at is not None
    assert stored.created_at == stored.updated_at
    assert registry.get("hedge-survey") == stored
    assert registry.get("nope") is None
    with pytest.raises(ReportTypeDefinitionError, match="already exists"):
        registry.register(make_definition())
    with pytest.raises(UnknownReportTypeError) as excinfo:
        registry.require("nope")
    assert excinfo.value.type_id == "nope"


def test_register_rejects_duplicate_section_ids() -> None:
    definition = make_definition(required=("Introduction",), optional=("Introduction",))

    with pytest.raises(ReportTypeDefinitionError, match="duplicate section id 'introduction'"):
        ReportTypeRegistry().register(definition)


def test_update_keeps_creation_time() -> None:
    registry = ReportTypeRegistry([make_definition()])
    original = registry.require("hedge-survey")

    updated = registry.update(replace(original, version="2.0.0"))

    assert updated.version == "2.0.0"
    assert updated.created_at == original.created_at
    with pytest.raises(UnknownReportTypeError):
        registry.update(make_definition("ghost"))


def test_deprecate_hides_type_from_active_listing() -> None:
    registry = ReportTypeRegistry([make_definition(), make_definition("orchard-survey")])

    deprecated = registry.deprecate("hedge-survey", "superseded")

    assert deprecated.deprecated
    assert deprecated.deprecated_reason == "superseded"
    assert [item.id for item in registry.list_active()] == ["orchard-survey"]
    assert len(registry.list_all()) == 2


def test_category_and_tag_queries() -> None:
    registry = ReportTypeRegistry.builtin()

    assert [item.id for item in registry.by_category("survey")] == ["bs5837-2012"]
    tagged = {item.id for item in registry.search_by_tags(["inspection", "subsidence"])}
    assert tagged == {
        "tree-condition-report",
        "mortgage-insurance-report",
        "tree-safety-report",
    }
    assert registry.search_by_tags([]) == ()


def test_compliance_rules_for_unknown_type_raises() -> None:
    registry = ReportTypeRegistry.builtin()

    assert len(registry.compliance_rules_for("bs5837-2012")) == 4
    with pytest.raises(UnknownReportTypeError):
        registry.compliance_rules_for("unknown")


def test_validate_structure_reports_missing_required_and_conditional() -> None:
    registry = ReportTypeRegistry.builtin()
    present = {
        "title-page": {},
        "introduction": {"content": "Supports a planning application."},
        "methodology": {},
        "tree-data": {},
    }

    result = registry.validate_structure("bs5837-2012", {"sections": present})

    assert not result.valid
    assert "executive-summary" in result.missing_sections
    assert "introduction" not in result.missing_sections
    assert "Missing required section: Executive Summary (executive-summary)" in result.errors
    assert result.warnings == (
        "Missing conditional section: Constraints Assessment (constraints-assessment)",
        "Missing conditional section: Planning Context (planning-context)",
    )


def test_validate_structure_passes_when_all_required_present() -> None:
    registry = ReportTypeRegistry([make_definition()])

    result = registry.validate_structure(
        "hedge-survey", {"sections": {"introduction": {}, "findings": {}}}
    )

    assert result.valid
    assert result.errors == ()


@pytest.mark.parametrize(
    ("term", "expected"),
    [("hedge", True), ("HEDGE", True), ("findings", True), ("survey", True), ("rpa", False)],
)
def test_covers_term_uses_tags_terminology_and_section_text(term: str, expected: bool) -> None:
    definition = make_definition(tags=("hedge",), terminology=("laying",))

    assert definition.covers_term(term) is expected
    assert not definition.covers_term("   ")


def test_definition_round_trips_through_dict() -> None:
    definition = ReportTypeRegistry.builtin().require("bs5837-2012")

    assert ReportTypeDefinition.from_dict(definition.to_dict()) == definition
