"""
report-intelligence — validation engine

File: src/report_intelligence/validation/engine.py

Purpose
- Evaluate the enabled, applicable rules of one rule set against a
  ``SchemaMappingResult`` and summarize the outcome as a frozen ``ValidationResult``.

Functional requirements
- Input that is neither a mapping result nor a payload parseable as one raises
  ``ValidationInputError``; a ``validation.error`` event is published and nothing is
  persisted.
- Rules run in registration order. A failed rule yields one finding, plus a
  compliance violation or quality issue according to its type.
- A rule whose evaluator raises is counted as skipped and validation continues.
- Evaluators are looked up by rule type and id. Rules without an evaluator pass,
  unless the engine is strict, in which case they are rejected when added.
- Category scores are ``None`` when no rule applied; the overall score is the
  weight-normalized combination of the computed categories.
- Every result carries the validator version and a snapshot of the mapping; a
  report-type snapshot is added when the engine holds a registry that knows the type.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

import structlog

from report_intelligence.domain import ids
from report_intelligence.domain._coerce import JSONValue, utc_now
from report_intelligence.domain.events import EventType
from report_intelligence.domain.mapping import SchemaMappingResult
from report_intelligence.domain.validation import (
    ComplianceViolation,
    MappingSnapshot,
    QualityCategory,
    QualityIssue,
    ReportTypeSnapshot,
    RuleType,
    Severity,
    ValidationFinding,
    ValidationResult,
    ValidationRule,
    ValidationScores,
    ValidationStatus,
)
from report_intelligence.errors import RuleConfigurationError, ValidationInputError
from report_intelligence.observability.logging import correlation_scope
from report_intelligence.validation.evaluators import EVALUATORS, Evaluator, EvaluatorKey
from report_intelligence.validation.rules import RuleSet

if TYPE_CHECKING:
    from report_intelligence.observability.events import EventBus
    from report_intelligence.persistence.repositories import ValidationResultRepo
    from report_intelligence.registry.report_types import ReportTypeRegistry

FINDING_CONFIDENCE: Final[float] = 0.8
UNKNOWN_STANDARD: Final[str] = "unknown"

QUALITY_IMPACT: Final[Mapping[Severity, int]] = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
}
DEFAULT_QUALITY_IMPACT: Final[int] = 5

COMPLIANCE_BASE: Final[int] = 80
COMPLIANCE_PENALTY: Final[int] = 10
QUALITY_BASE: Final[int] = 85
QUALITY_PENALTY: Final[int] = 5
CONSISTENCY_BASE: Final[int] = 90
CONSISTENCY_PENALTY: Final[int] = 15

CATEGORY_WEIGHTS: Final[Mapping[str, float]] = {
    "compliance": 0.35,
    "quality": 0.30,
    "completeness": 0.20,
    "consistency": 0.15,
}


@dataclass(slots=True)
class _RunState:
    findings: list[ValidationFinding] = field(default_factory=list)
    violations: list[ComplianceViolation] = field(default_factory=list)
    quality_issues: list[QualityIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    passed: int = 0
    failed: int = 0
    skipped: int = 0


def overall_score(scores: Mapping[str, float | None]) -> float:
    """Weight-normalized combination of the computed category scores; 0.0 when none were."""

    weighted = 0.0
    total = 0.0
    for name, weight in CATEGORY_WEIGHTS.items():
        value = scores.get(name)
        if value is None:
            continue
        weighted += value * weight
        total += weight
    return weighted / total if total > 0 else 0.0


def compute_scores(
    *,
    applicable: Sequence[ValidationRule],
    passed: int,
    findings: Sequence[ValidationFinding],
    violations: Sequence[ComplianceViolation],
    quality_issues: Sequence[QualityIssue],
    completeness: int,
) -> ValidationScores:
    by_severity = {severity: 0 for severity in Severity}
    for finding in findings:
        by_severity[finding.severity] += 1

    by_rule_type: dict[RuleType, int] = {}
    if applicable:
        pass_rate = round(passed / len(applicable) * 100)
        for rule in applicable:
            by_rule_type[rule.type] = pass_rate

    if not applicable:
        return ValidationScores(by_rule_type=by_rule_type, by_severity=by_severity)

    has_compliance = any(rule.type is RuleType.COMPLIANCE for rule in applicable)
    consistency_findings = sum(1 for item in findings if item.type is RuleType.CONSISTENCY)
    categories: dict[str, float | None] = {
        "compliance": (
            float(max(0, COMPLIANCE_BASE - COMPLIANCE_PENALTY * len(violations)))
            if has_compliance
            else 100.0
        ),
        "quality": float(max(0, QUALITY_BASE - QUALITY_PENALTY * len(quality_issues))),
        "completeness": float(completeness),
        "consistency": float(
            max(0, CONSISTENCY_BASE - CONSISTENCY_PENALTY * consistency_findings)
        ),
    }
    return ValidationScores(
        compliance=categories["compliance"],
        quality=categories["quality"],
        completeness=categories["completeness"],
        consistency=categories["consistency"],
        overall=overall_score(categories),
        by_rule_type=by_rule_type,
        by_severity=by_severity,
    )


class ValidationEngine:
    """Owns one rule set and evaluates mapping results against it."""

    def __init__(
        self,
        rules: RuleSet | Iterable[ValidationRule] | None = None,
        *,
        evaluators: Mapping[EvaluatorKey, Evaluator] = EVALUATORS,
        strict_evaluators: bool = False,
        registry: ReportTypeRegistry | None = None,
        event_bus: EventBus | None = None,
        repository: ValidationResultRepo | None = None,
        logger: Any | None = None,
    ) -> None:
        if rules is None:
            rule_set = RuleSet.default()
        elif isinstance(rules, RuleSet):
            rule_set = rules.copy()
        else:
            rule_set = RuleSet(rules)
        self._evaluators = dict(evaluators)
        self._strict = bool(strict_evaluators)
        self._registry = registry
        self._event_bus = event_bus
        self._repository = repository
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        if self._strict:
            for rule in rule_set:
                self._check_evaluator(rule)
        self._rule_set = rule_set

    @property
    def strict_evaluators(self) -> bool:
        return self._strict

    @property
    def rule_set(self) -> RuleSet:
        """Snapshot of the owned rule set, suitable for persisting."""

        return self._rule_set.copy()

    def add_rule(self, rule: ValidationRule) -> ValidationRule:
        if self._strict:
            self._check_evaluator(rule)
        added = self._rule_set.add(rule)
        self._logger.info("validation_rule_added", rule_id=added.id, rule_type=added.type.value)
        return added

    def update_rule(self, rule_id: str, **changes: object) -> ValidationRule:
        updated = self._rule_set.update(rule_id, **changes)
        self._logger.info("validation_rule_updated", rule_id=rule_id, fields=sorted(changes))
        return updated

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> ValidationRule:
        return self._rule_set.set_enabled(rule_id, enabled)

    def get_rule(self, rule_id: str) -> ValidationRule | None:
        return self._rule_set.get(rule_id)

    def rules(self) -> tuple[ValidationRule, ...]:
        return self._rule_set.rules()

    def rules_by_type(self, rule_type: RuleType | str) -> tuple[ValidationRule, ...]:
        return self._rule_set.by_type(rule_type)

    def rules_by_severity(self, severity: Severity | str) -> tuple[ValidationRule, ...]:
        return self._rule_set.by_severity(severity)

    def validate(
        self, mapping: SchemaMappingResult | Mapping[str, object]
    ) -> ValidationResult:
        started = time.perf_counter()
        validation_id = ids.generate_validation_id()
        with correlation_scope(validation_id=validation_id):
            resolved = self._check_input(validation_id, mapping)

        with correlation_scope(
            report_id=resolved.decompiled_report_id,
            mapping_id=resolved.id,
            validation_id=validation_id,
        ):
            try:
                result = self._run(validation_id, resolved, started)
            except Exception as exc:
                self._emit(
                    EventType.VALIDATION_ERROR,
                    {
                        "validation_id": validation_id,
                        "schema_mapping_id": resolved.id,
                        "error": str(exc),
                    },
                )
                self._logger.exception("validation_failed", error=str(exc))
                raise

            if self._repository is not None:
                self._repository.save(result)
            self._logger.info(
                "report_validated",
                rules_executed=result.rules_executed,
                rules_failed=result.rules_failed,
                rules_skipped=result.rules_skipped,
                overall_score=result.scores.overall,
                processing_time_ms=result.processing_time_ms,
            )
        return result

    def _check_input(self, validation_id: str, mapping: object) -> SchemaMappingResult:
        if isinstance(mapping, SchemaMappingResult):
            return mapping

        failure: str
        cause: Exception | None = None
        if isinstance(mapping, Mapping):
            try:
                return SchemaMappingResult.from_dict(mapping)
            except ValueError as exc:
                failure = f"invalid schema mapping payload: {exc}"
                cause = exc
        else:
            failure = f"expected SchemaMappingResult, got {type(mapping).__name__}"

        error = ValidationInputError(failure)
        self._emit(EventType.VALIDATION_ERROR, {"validation_id": validation_id, "error": failure})
        self._logger.warning("validation_input_rejected", error=failure)
        raise error from cause

    def _run(
        self, validation_id: str, mapping: SchemaMappingResult, started: float
    ) -> ValidationResult:
        created_at = utc_now()
        self._emit(
            EventType.VALIDATION_STARTED,
            {
                "validation_id": validation_id,
                "schema_mapping_id": mapping.id,
                "report_type_id": mapping.report_type_id,
            },
        )

        applicable = self._rule_set.applicable(mapping.report_type_id)
        state = _RunState()
        for rule in applicable:
            self._process_rule(validation_id, rule, mapping, state)

        scores = compute_scores(
            applicable=applicable,
            passed=state.passed,
            findings=state.findings,
            violations=state.violations,
            quality_issues=state.quality_issues,
            completeness=mapping.completeness_score,
        )
        self._emit_category_events(validation_id, scores, state)

        result = ValidationResult(
            id=validation_id,
            schema_mapping_id=mapping.id,
            decompiled_report_id=mapping.decompiled_report_id,
            report_type_id=mapping.report_type_id,
            findings=tuple(state.findings),
            compliance_violations=tuple(state.violations),
            quality_issues=tuple(state.quality_issues),
            scores=scores,
            rules_executed=len(applicable),
            rules_passed=state.passed,
            rules_failed=state.failed,
            rules_skipped=state.skipped,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            status=ValidationStatus.COMPLETED,
            warnings=tuple(state.warnings),
            created_at=created_at,
            completed_at=utc_now(),
            mapping_snapshot=_mapping_snapshot(mapping),
            report_type_snapshot=self._report_type_snapshot(mapping.report_type_id),
        )
        self._emit(
            EventType.VALIDATION_COMPLETED,
            {
                "validation_id": validation_id,
                "overall_score": scores.overall,
                "finding_count": len(result.findings),
                "processing_time_ms": result.processing_time_ms,
            },
        )
        return result

    def _process_rule(
        self,
        validation_id: str,
        rule: ValidationRule,
        mapping: SchemaMappingResult,
        state: _RunState,
    ) -> None:
        evaluator = self._evaluators.get((rule.type, rule.id))
        if evaluator is None:
            self._logger.warning(
                "validation_rule_without_evaluator", rule_id=rule.id, rule_type=rule.type.value
            )
            passed = True
        else:
            try:
                passed = bool(evaluator(mapping))
            except Exception as exc:  # noqa: BLE001
                state.skipped += 1
                state.warnings.append(f"Rule {rule.id} skipped: {exc}")
                self._logger.warning("validation_rule_skipped", rule_id=rule.id, error=str(exc))
                return

        if passed:
            state.passed += 1
        else:
            state.failed += 1
            state.findings.append(_finding_for(rule))
            if rule.type is RuleType.COMPLIANCE:
                state.violations.append(_violation_for(rule))
            elif rule.type is RuleType.QUALITY:
                state.quality_issues.append(_quality_issue_for(rule))

        self._emit(
            EventType.VALIDATION_RULE_PROCESSED,
            {
                "validation_id": validation_id,
                "rule_id": rule.id,
                "rule_name": rule.name,
                "passed": passed,
                "severity": rule.severity.value,
            },
        )

    def _emit_category_events(
        self, validation_id: str, scores: ValidationScores, state: _RunState
    ) -> None:
        terminology = scores.by_rule_type.get(RuleType.TERMINOLOGY)
        for event_type, payload in (
            (
                EventType.VALIDATION_COMPLIANCE_CHECKED,
                {"compliance_score": scores.compliance, "violation_count": len(state.violations)},
            ),
            (
                EventType.VALIDATION_QUALITY_CHECKED,
                {"quality_score": scores.quality, "issue_count": len(state.quality_issues)},
            ),
            (
                EventType.VALIDATION_COMPLETENESS_CHECKED,
                {"completeness_score": scores.completeness},
            ),
            (
                EventType.VALIDATION_CONSISTENCY_CHECKED,
                {"consistency_score": scores.consistency},
            ),
            (EventType.VALIDATION_TERMINOLOGY_CHECKED, {"terminology_score": terminology}),
        ):
            self._emit(event_type, {"validation_id": validation_id, **payload})

    def _check_evaluator(self, rule: ValidationRule) -> None:
        if (rule.type, rule.id) not in self._evaluators:
            raise RuleConfigurationError(
                f"rule {rule.id!r} ({rule.type.value}) has no registered evaluator"
            )

    def _report_type_snapshot(self, report_type_id: str | None) -> ReportTypeSnapshot | None:
        if report_type_id is None or self._registry is None:
            return None
        definition = self._registry.get(report_type_id)
        if definition is None:
            return None
        return ReportTypeSnapshot(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            version=definition.version,
            required_sections_count=len(definition.required_sections),
            optional_sections_count=len(definition.optional_sections),
            conditional_sections_count=len(definition.conditional_sections),
            compliance_rules_count=len(definition.compliance_rules),
        )

    def _emit(self, event_type: EventType, payload: dict[str, JSONValue]) -> None:
        if self._event_bus is None:
            return
        _, errors = self._event_bus.emit(event_type, payload)
        for error in errors:
            self._logger.warning(
                "event_subscriber_failed",
                event_type=error.event_type,
                target=error.target,
                error=error.message,
            )


def _mapping_snapshot(mapping: SchemaMappingResult) -> MappingSnapshot:
    return MappingSnapshot(
        id=mapping.id,
        report_type_id=mapping.report_type_id,
        confidence_score=mapping.confidence_score,
        mapping_coverage=mapping.mapping_coverage,
        completeness_score=mapping.completeness_score,
        mapped_fields_count=len(mapping.mapped_fields),
        missing_required_sections_count=len(mapping.missing_required_sections),
        extra_sections_count=len(mapping.extra_sections),
        unknown_terminology_count=len(mapping.unknown_terminology),
        schema_gaps_count=len(mapping.schema_gaps),
        created_at=mapping.created_at,
    )


def _finding_for(rule: ValidationRule) -> ValidationFinding:
    return ValidationFinding(
        id=ids.generate_finding_id(),
        rule_id=rule.id,
        rule_name=rule.name,
        type=rule.type,
        severity=rule.severity,
        title=rule.name,
        description=f'Rule "{rule.name}" failed: {rule.description}',
        confidence=FINDING_CONFIDENCE,
        auto_fixable=rule.auto_fixable,
        requires_human_review=rule.requires_human_review,
        remediation=rule.remediation_guidance,
    )


def _violation_for(rule: ValidationRule) -> ComplianceViolation:
    return ComplianceViolation(
        id=ids.generate_violation_id(),
        standard=rule.regulation_standard or UNKNOWN_STANDARD,
        requirement=rule.name,
        severity=rule.severity,
        description=f"Violation of {rule.name}: {rule.description}",
    )


def _quality_issue_for(rule: ValidationRule) -> QualityIssue:
    return QualityIssue(
        id=ids.generate_quality_issue_id(),
        category=QualityCategory.CLARITY,
        severity=rule.severity,
        description=f"Quality issue: {rule.description}",
        score_impact=QUALITY_IMPACT.get(rule.severity, DEFAULT_QUALITY_IMPACT),
    )


__all__ = [
    "CATEGORY_WEIGHTS",
    "ValidationEngine",
    "compute_scores",
    "overall_score",
]
