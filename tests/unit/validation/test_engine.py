"""Unit tests for rule evaluation, score computation and engine events."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from report_intelligence.domain.events import EventType
from report_intelligence.domain.mapping import SchemaMappingResult
from report_intelligence.domain.validation import (
    RuleType,
    Severity,
    ValidationResult,
    ValidationStatus,
)
from report_intelligence.errors import RuleConfigurationError, ValidationInputError
from report_intelligence.observability.events import EventBus
from report_intelligence.registry import ReportTypeRegistry
from report_intelligence.validation import (
    DEFAULT_RULES,
    EVALUATORS,
    RuleSet,
    ValidationEngine,
    overall_score,
)

from .. import (
    make_definition,
    make_field,
    make_gap,
    make_mapping,
    make_missing,
    make_rule,
    make_unknown_term,
)

pytestmark = pytest.mark.unit


def _clean_mapping(**overrides: object) -> SchemaMappingResult:
    return make_mapping(mapped_fields=[make_field()], **overrides)  # type: ignore[arg-type]


def _failing_mapping() -> SchemaMappingResult:
    return make_mapping(
        mapped_fields=[make_field("ab", value="short")],
        missing=[make_missing()],
        unknown=[make_unknown_term(f"term{index}") for index in range(5)],
        gaps=[make_gap() for _ in range(3)],
        completeness_score=40,
    )


def test_single_compliance_rule_with_missing_section() -> None:
    engine = ValidationEngine([DEFAULT_RULES[0]])
    mapping = _clean_mapping(missing=[make_missing()], completeness_score=90)

    result = engine.validate(mapping)

    assert result.rules_executed == 1
    assert result.rules_failed == 1
    assert result.scores.compliance == 70.0
    assert result.scores.quality == 85.0
    assert result.scores.completeness == 90.0
    assert result.scores.consistency == 90.0
    assert result.scores.overall == pytest.approx(81.5)
    (violation,) = result.compliance_violations
    assert violation.standard == "unknown"
    assert violation.requirement == "Required Sections Present"
    (finding,) = result.findings
    assert finding.title == "Required Sections Present"
    assert finding.severity is Severity.CRITICAL
    assert finding.requires_human_review


def test_clean_mapping_passes_every_default_rule() -> None:
    result = ValidationEngine().validate(_clean_mapping())

    assert result.status is ValidationStatus.COMPLETED
    assert (result.rules_executed, result.rules_passed) == (7, 7)
    assert result.findings == ()
    assert result.scores.compliance == 80.0
    assert result.scores.overall == pytest.approx(87.0)
    assert set(result.scores.by_rule_type.values()) == {100}
    assert result.completed_at is not None


def test_failing_mapping_fails_every_default_rule() -> None:
    result = ValidationEngine().validate(_failing_mapping())

    assert result.rules_failed == 7
    assert [finding.rule_id for finding in result.findings] == [rule.id for rule in DEFAULT_RULES]
    assert len(result.compliance_violations) == 2
    assert result.compliance_violations[1].standard == "BS5837:2012"
    assert len(result.quality_issues) == 2
    assert [issue.score_impact for issue in result.quality_issues] == [10, 10]
    assert result.scores.compliance == 60.0
    assert result.scores.quality == 75.0
    assert result.scores.consistency == 75.0
    assert result.scores.overall == pytest.approx(62.75)
    assert result.scores.by_severity[Severity.CRITICAL] == 1
    assert result.scores.by_severity[Severity.HIGH] == 2
    assert result.scores.by_severity[Severity.MEDIUM] == 4
    assert result.scores.by_rule_type[RuleType.COMPLIANCE] == 0


def test_rule_type_scores_share_the_engine_wide_pass_ratio() -> None:
    result = ValidationEngine().validate(_clean_mapping(missing=[make_missing()]))

    assert (result.rules_passed, result.rules_failed) == (6, 1)
    assert result.scores.by_rule_type == {
        RuleType.COMPLIANCE: 86,
        RuleType.QUALITY: 86,
        RuleType.COMPLETENESS: 86,
        RuleType.CONSISTENCY: 86,
        RuleType.TERMINOLOGY: 86,
    }
    assert RuleType.FORMATTING not in result.scores.by_rule_type


def test_raising_evaluator_is_counted_as_skipped() -> None:
    def explode(mapping: SchemaMappingResult) -> bool:
        raise RuntimeError("boom")

    engine = ValidationEngine(
        [make_rule("qual_001")], evaluators={(RuleType.QUALITY, "qual_001"): explode}
    )

    result = engine.validate(_clean_mapping())

    assert (result.rules_executed, result.rules_skipped, result.rules_passed) == (1, 1, 0)
    assert result.warnings == ("Rule qual_001 skipped: boom",)
    assert result.scores.compliance == 100.0
    assert result.scores.overall == pytest.approx(94.0)


def test_rules_without_evaluator_pass_unless_strict() -> None:
    lenient = ValidationEngine([make_rule("custom_999")])

    assert lenient.validate(_clean_mapping()).rules_passed == 1
    with pytest.raises(RuleConfigurationError, match="custom_999"):
        ValidationEngine([make_rule("custom_999")], strict_evaluators=True)

    strict = ValidationEngine(RuleSet.default(), strict_evaluators=True)
    assert strict.strict_evaluators
    with pytest.raises(RuleConfigurationError, match="no registered evaluator"):
        strict.add_rule(make_rule("custom_999"))


def test_no_applicable_rules_leaves_categories_uncomputed() -> None:
    engine = ValidationEngine(
        [make_rule("qual_001", applicable=("other-type",)), make_rule("term_001", enabled=False)]
    )

    result = engine.validate(_clean_mapping())

    assert result.rules_executed == 0
    assert result.scores.compliance is None
    assert result.scores.quality is None
    assert result.scores.completeness is None
    assert result.scores.consistency is None
    assert result.scores.overall == 0.0


def test_rules_scoped_to_the_mapped_type_apply() -> None:
    engine = ValidationEngine([make_rule("qual_001", applicable=("bs5837-2012",))])

    assert engine.validate(_clean_mapping()).rules_executed == 1
    assert engine.validate(_clean_mapping(report_type_id=None)).rules_executed == 0


def test_dict_payloads_are_accepted_and_bad_input_rejected() -> None:
    bus = EventBus()
    engine = ValidationEngine(event_bus=bus)

    from_payload = engine.validate(_clean_mapping().to_dict())
    assert from_payload.rules_passed == 7

    with pytest.raises(ValidationInputError, match="expected SchemaMappingResult, got int"):
        engine.validate(42)  # type: ignore[arg-type]
    with pytest.raises(ValidationInputError, match="invalid schema mapping payload"):
        engine.validate({"id": "map_x"})
    assert len(bus.replay(event_type=EventType.VALIDATION_ERROR)) == 2


def test_validation_events_follow_rule_then_category_order() -> None:
    bus = EventBus()
    seen: list[EventType] = []
    bus.subscribe(None, lambda event: seen.append(event.event_type))
    engine = ValidationEngine([DEFAULT_RULES[0], DEFAULT_RULES[2]], event_bus=bus)

    result = engine.validate(_clean_mapping())

    assert seen == [
        EventType.VALIDATION_STARTED,
        EventType.VALIDATION_RULE_PROCESSED,
        EventType.VALIDATION_RULE_PROCESSED,
        EventType.VALIDATION_COMPLIANCE_CHECKED,
        EventType.VALIDATION_QUALITY_CHECKED,
        EventType.VALIDATION_COMPLETENESS_CHECKED,
        EventType.VALIDATION_CONSISTENCY_CHECKED,
        EventType.VALIDATION_TERMINOLOGY_CHECKED,
        EventType.VALIDATION_COMPLETED,
    ]
    processed = bus.replay(event_type=EventType.VALIDATION_RULE_PROCESSED)
    assert [event.payload["rule_id"] for event in processed] == ["comp_001", "qual_001"]
    completed = bus.replay(event_type=EventType.VALIDATION_COMPLETED)[0]
    assert completed.payload["validation_id"] == result.id


def test_engine_owns_a_private_copy_of_its_rule_set() -> None:
    shared = RuleSet.default()
    engine = ValidationEngine(shared)

    shared.set_enabled("comp_001", False)
    engine.rule_set.set_enabled("qual_001", False)

    assert engine.get_rule("comp_001").enabled  # type: ignore[union-attr]
    assert engine.get_rule("qual_001").enabled  # type: ignore[union-attr]


def test_engine_rule_management_delegates_to_its_rule_set() -> None:
    engine = ValidationEngine()

    engine.update_rule("qual_001", severity=Severity.HIGH)
    engine.set_rule_enabled("term_001", False)

    assert [rule.id for rule in engine.rules_by_severity("high")] == [
        "comp_002",
        "qual_001",
        "cons_001",
    ]
    assert engine.rules_by_type(RuleType.TERMINOLOGY) == ()
    assert engine.validate(_clean_mapping()).rules_executed == 6


def test_result_round_trips_through_dict() -> None:
    result = ValidationEngine().validate(_failing_mapping())

    assert ValidationResult.from_dict(result.to_dict()) == result


def test_overall_score_normalizes_over_present_categories() -> None:
    assert overall_score({"compliance": 50.0, "quality": None}) == pytest.approx(50.0)
    assert overall_score({}) == 0.0
    assert set(EVALUATORS) == {(rule.type, rule.id) for rule in DEFAULT_RULES}


@settings(max_examples=50, derandomize=True, deadline=None)
@given(
    missing=st.integers(min_value=0, max_value=3),
    gaps=st.integers(min_value=0, max_value=5),
    unknown=st.integers(min_value=0, max_value=8),
    completeness=st.integers(min_value=0, max_value=100),
)
def test_scores_stay_in_range_and_counts_balance(
    missing: int, gaps: int, unknown: int, completeness: int
) -> None:
    mapping = make_mapping(
        mapped_fields=[make_field()],
        missing=[make_missing(f"section-{index}") for index in range(missing)],
        gaps=[make_gap() for _ in range(gaps)],
        unknown=[make_unknown_term(f"term{index}") for index in range(unknown)],
        completeness_score=completeness,
    )

    result = ValidationEngine().validate(mapping)

    assert 0.0 <= result.scores.overall <= 100.0
    assert result.rules_passed + result.rules_failed + result.rules_skipped == 7
    for value in (result.scores.compliance, result.scores.quality, result.scores.consistency):
        assert value is not None and 0.0 <= value <= 100.0


def test_updated_rule_with_string_enums_still_reports_violations() -> None:
    engine = ValidationEngine([DEFAULT_RULES[0]])

    updated = engine.update_rule("comp_001", type="compliance", severity="high")
    result = engine.validate(_clean_mapping(missing=[make_missing()]))

    assert updated.type is RuleType.COMPLIANCE
    assert updated.severity is Severity.HIGH
    assert len(result.compliance_violations) == 1
    assert result.scores.compliance == 70.0
    assert result.scores.by_rule_type == {RuleType.COMPLIANCE: 0}
    assert result.to_dict()["findings"][0]["severity"] == "high"  # type: ignore[index]


def test_evaluators_are_dispatched_by_rule_type_and_id() -> None:
    engine = ValidationEngine([make_rule("comp_001", rule_type=RuleType.FORMATTING)])

    result = engine.validate(_clean_mapping(missing=[make_missing()]))

    assert (result.rules_passed, result.rules_failed) == (1, 0)
    with pytest.raises(RuleConfigurationError, match=r"'comp_001' \(formatting\)"):
        ValidationEngine(
            [make_rule("comp_001", rule_type=RuleType.FORMATTING)], strict_evaluators=True
        )


def test_result_records_version_and_input_snapshots() -> None:
    registry = ReportTypeRegistry(
        [make_definition("bs5837-2012", optional=("Appendix",), standards=("BS5837:2012",))]
    )
    mapping = _clean_mapping(missing=[make_missing()], gaps=[make_gap()])

    result = ValidationEngine(registry=registry).validate(mapping)

    assert result.validator_version == "1.0.0"
    snapshot = result.mapping_snapshot
    assert snapshot is not None
    assert (snapshot.id, snapshot.report_type_id) == (mapping.id, "bs5837-2012")
    assert snapshot.mapped_fields_count == 1
    assert snapshot.missing_required_sections_count == 1
    assert snapshot.schema_gaps_count == 1
    assert snapshot.created_at == mapping.created_at
    type_snapshot = result.report_type_snapshot
    assert type_snapshot is not None
    assert (type_snapshot.id, type_snapshot.version) == ("bs5837-2012", "1.0.0")
    assert type_snapshot.required_sections_count == 2
    assert type_snapshot.optional_sections_count == 1
    assert type_snapshot.compliance_rules_count == 1
    assert ValidationResult.from_json(result.to_json()) == result


def test_report_type_snapshot_needs_a_registry_that_knows_the_type() -> None:
    registry = ReportTypeRegistry([make_definition()])

    assert ValidationEngine().validate(_clean_mapping()).report_type_snapshot is None
    unknown = ValidationEngine(registry=registry).validate(_clean_mapping())
    assert unknown.report_type_snapshot is None
    assert unknown.mapping_snapshot is not None
