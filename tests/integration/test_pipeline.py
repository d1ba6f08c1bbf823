"""End-to-end pipeline runs from a config file through persistence and logging."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import TYPE_CHECKING

import pytest

from report_intelligence.config import load_config
from report_intelligence.domain.events import EventType
from report_intelligence.domain.validation import ValidationStatus
from report_intelligence.errors import RuleConfigurationError
from report_intelligence.observability import EventBus, shutdown_logging
from report_intelligence.persistence import (
    DecompiledReportRepo,
    RuleSetRepo,
    SchemaMappingRepo,
    ValidationResultRepo,
)
from report_intelligence.pipeline import AnalysisOutcome, ReportIntelligencePipeline

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.integration

SURVEY = """\
BS5837:2012 Tree Survey
Client: Meadow Lane Developments
Date: 12/03/2024

# Introduction
This survey supports a planning application and follows BS5837:2012 guidance.

# Methodology
Trees were inspected from ground level. Stem diameter was measured at 1.5m.

# Tree Data
- T1 English oak, category A, root protection area 120 m2
- T2 Ash, category C

# Recommendations
Protective fencing must be installed before works begin.

# Conclusions
The site can be developed while retaining the category A oak.
"""

_CONFIG = """\
[storage]
state_db = "state/reports.sqlite3"
persist_results = true

[observability]
log_dir = "logs"
log_to_stdout = false
"""


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    shutdown_logging()


def _config(tmp_path: Path, extra: str = "") -> dict[str, object]:
    path = tmp_path / "report_intelligence.toml"
    path.write_text(_CONFIG + extra, encoding="utf-8")
    return load_config(path, environ={})


def test_survey_is_decompiled_mapped_validated_and_stored(tmp_path: Path) -> None:
    bus = EventBus()
    with ReportIntelligencePipeline.from_config(
        _config(tmp_path), event_bus=bus, setup_logging=True
    ) as pipeline:
        outcome = pipeline.analyze(SURVEY, "markdown")
        db = pipeline.state_db

    report, mapping, validation = outcome.report, outcome.mapping, outcome.validation
    assert report.detected_report_type == "bs5837-2012"
    assert any(marker.standard == "BS5837:2012" for marker in report.compliance_markers)
    assert mapping.report_type_id == "bs5837-2012"
    assert mapping.decompiled_report_id == report.id
    missing = {item.section_id for item in mapping.missing_required_sections}
    assert {"executive-summary", "site-description"} <= missing
    assert "introduction" not in missing
    assert validation.schema_mapping_id == mapping.id
    assert validation.status is ValidationStatus.COMPLETED
    assert validation.rules_executed == len(pipeline.engine.rules())
    assert 0.0 <= validation.scores.overall <= 100.0

    assert db is not None
    assert DecompiledReportRepo(db).get(report.id) == report
    assert SchemaMappingRepo(db).list_for_report(report.id) == [mapping]
    assert ValidationResultRepo(db).list_for_report(report.id) == [validation]
    stored_rules = RuleSetRepo(db).get("default")
    assert stored_rules is not None
    assert len(stored_rules) == 7

    events = bus.replay()
    assert events[0].event_type is EventType.DECOMPILER_INGESTED
    assert events[-1].event_type is EventType.VALIDATION_COMPLETED
    assert bus.dispatch_errors() == ()

    log_file = tmp_path / "logs" / "report_intelligence.jsonl"
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    analyzed = [record for record in records if record["message"] == "report_analyzed"]
    assert len(analyzed) == 1
    assert analyzed[0]["report_id"] == report.id
    assert analyzed[0]["validation_id"] == validation.id


def test_outcome_round_trips_through_dict(tmp_path: Path) -> None:
    pipeline = ReportIntelligencePipeline.from_config(_config(tmp_path))

    outcome = pipeline.analyze(SURVEY)

    restored = AnalysisOutcome.from_dict(json.loads(json.dumps(outcome.to_dict())))
    assert restored == outcome


def test_custom_types_and_rules_from_config(tmp_path: Path) -> None:
    types_dir = tmp_path / "types"
    types_dir.mkdir()
    (types_dir / "hedge.yaml").write_text(
        "id: hedge-survey\n"
        "name: Hedgerow Survey\n"
        "description: Survey of boundary hedges\n"
        "category: survey\n"
        "version: '1.0.0'\n"
        "required_sections:\n"
        "  - id: hedge-schedule\n"
        "    name: Hedge Schedule\n"
        "    description: Table of surveyed hedges\n"
        "    required: true\n",
        encoding="utf-8",
    )
    (tmp_path / "rules.yaml").write_text(
        "name: hedges\n"
        "rules:\n"
        "  - id: comp_001\n"
        "    name: Required Sections Present\n"
        "    description: All required sections exist\n"
        "    type: compliance\n"
        "    severity: critical\n",
        encoding="utf-8",
    )
    config = _config(
        tmp_path,
        '\n[registry]\nload_builtin = false\nextra_dirs = ["types"]\n'
        '\n[validation]\nrules_file = "rules.yaml"\nstrict_evaluators = true\n',
    )

    pipeline = ReportIntelligencePipeline.from_config(config)
    outcome = pipeline.analyze("Hedgerow Survey\n\n# Hedge Schedule\nH1 hawthorn, 40m.\n")

    assert outcome.mapping.report_type_id == "hedge-survey"
    assert outcome.mapping.missing_required_sections == ()
    assert outcome.validation.rules_executed == 1
    snapshot = outcome.validation.report_type_snapshot
    assert snapshot is not None
    assert (snapshot.id, snapshot.required_sections_count) == ("hedge-survey", 1)
    assert pipeline.state_db is not None
    assert RuleSetRepo(pipeline.state_db).get("hedges") is not None


def test_strict_mode_rejects_rules_without_evaluators(tmp_path: Path) -> None:
    (tmp_path / "rules.yaml").write_text(
        "rules:\n"
        "  - id: custom_010\n"
        "    name: Custom\n"
        "    description: House rule\n"
        "    type: quality\n"
        "    severity: low\n",
        encoding="utf-8",
    )
    config = _config(
        tmp_path, '\n[validation]\nrules_file = "rules.yaml"\nstrict_evaluators = true\n'
    )

    with pytest.raises(RuleConfigurationError, match="custom_010"):
        ReportIntelligencePipeline.from_config(config)
