"""
report-intelligence — validation domain model

File: src/report_intelligence/domain/validation.py

Purpose
- Declarative validation rules plus the findings, violations, quality issues and
  scores a validation run produces.

Functional requirements
- Rules are closed frozen dataclasses with strict parsing of persisted or
  YAML-authored payloads.
- ``ValidationScores`` keeps category scores optional so that "not computed" is
  distinguishable from a score of zero.

Non-functional requirements
- Domain layer stays free of IO side effects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Final

from report_intelligence.domain._coerce import (
    JSONValue,
    as_bool,
    as_enum,
    as_float,
    as_int,
    as_list,
    as_optional_float,
    as_optional_str,
    as_str,
    as_str_tuple,
    as_utc_datetime,
    expect_object,
    iso8601z,
    utc_now,
)

ALL_REPORT_TYPES: Final[str] = "all"
MIN_RULE_WEIGHT: Final[int] = 1
MAX_RULE_WEIGHT: Final[int] = 10
VALIDATOR_VERSION: Final[str] = "1.0.0"


class RuleType(StrEnum):
    COMPLIANCE = "compliance"
    QUALITY = "quality"
    COMPLETENESS = "completeness"
    CONSISTENCY = "consistency"
    TERMINOLOGY = "terminology"
    FORMATTING = "formatting"
    DATA_QUALITY = "data_quality"
    LOGICAL_COHERENCE = "logical_coherence"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class FindingStatus(StrEnum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ViolationStatus(StrEnum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    MITIGATED = "mitigated"
    RESOLVED = "resolved"


class QualityCategory(StrEnum):
    CLARITY = "clarity"
    ACCURACY = "accuracy"
    COMPLETENESS = "completeness"
    CONSISTENCY = "consistency"
    FORMATTING = "formatting"
    PROFESSIONALISM = "professionalism"


class ValidationStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ValidationRule:
    """Declarative check; its evaluation procedure is looked up by ``(type, id)``."""

    id: str
    name: str
    description: str
    type: RuleType
    severity: Severity
    applicable_report_types: tuple[str, ...] = (ALL_REPORT_TYPES,)
    message_template: str = ""
    remediation_guidance: str = ""
    weight: int = 5
    auto_fixable: bool = False
    requires_human_review: bool = False
    enabled: bool = True
    regulation_standard: str | None = None

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise ValueError("ValidationRule.id must not be empty")
        # Plain strings are accepted for the enum fields and normalized here.
        try:
            object.__setattr__(self, "type", RuleType(self.type))
            object.__setattr__(self, "severity", Severity(self.severity))
        except ValueError as exc:
            raise ValueError(f"ValidationRule {self.id}: {exc}") from exc
        object.__setattr__(
            self, "applicable_report_types", tuple(self.applicable_report_types)
        )
        if not MIN_RULE_WEIGHT <= self.weight <= MAX_RULE_WEIGHT:
            raise ValueError(
                f"ValidationRule {self.id}: weight must be in "
                f"[{MIN_RULE_WEIGHT}, {MAX_RULE_WEIGHT}], got {self.weight}"
            )

    def applies_to(self, report_type_id: str | None) -> bool:
        if not self.enabled:
            return False
        if ALL_REPORT_TYPES in self.applicable_report_types:
            return True
        return report_type_id is not None and report_type_id in self.applicable_report_types

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "severity": self.severity.value,
            "applicable_report_types": list(self.applicable_report_types),
            "message_template": self.message_template,
            "remediation_guidance": self.remediation_guidance,
            "weight": self.weight,
            "auto_fixable": self.auto_fixable,
            "requires_human_review": self.requires_human_review,
            "enabled": self.enabled,
            "regulation_standard": self.regulation_standard,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ValidationRule") -> ValidationRule:
        parsed = expect_object(
            data,
            path,
            required={"id", "name", "description", "type", "severity"},
            optional={
                "applicable_report_types",
                "message_template",
                "remediation_guidance",
                "weight",
                "auto_fixable",
                "requires_human_review",
                "enabled",
                "regulation_standard",
            },
        )
        applicable = as_str_tuple(
            parsed.get("applicable_report_types", [ALL_REPORT_TYPES]),
            f"{path}.applicable_report_types",
        )
        if not applicable:
            raise ValueError(f"{path}.applicable_report_types: must not be empty")
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            name=as_str(parsed["name"], f"{path}.name", allow_empty=False),
            description=as_str(parsed["description"], f"{path}.description"),
            type=as_enum(RuleType, parsed["type"], f"{path}.type"),
            severity=as_enum(Severity, parsed["severity"], f"{path}.severity"),
            applicable_report_types=applicable,
            message_template=as_str(parsed.get("message_template", ""), f"{path}.message_template"),
            remediation_guidance=as_str(
                parsed.get("remediation_guidance", ""), f"{path}.remediation_guidance"
            ),
            weight=as_int(parsed.get("weight", 5), f"{path}.weight", minimum=MIN_RULE_WEIGHT),
            auto_fixable=as_bool(parsed.get("auto_fixable", False), f"{path}.auto_fixable"),
            requires_human_review=as_bool(
                parsed.get("requires_human_review", False), f"{path}.requires_human_review"
            ),
            enabled=as_bool(parsed.get("enabled", True), f"{path}.enabled"),
            regulation_standard=as_optional_str(
                parsed.get("regulation_standard"), f"{path}.regulation_standard"
            ),
        )


@dataclass(frozen=True, slots=True)
class FindingLocation:
    section_id: str | None = None
    field_id: str | None = None
    line_number: int | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "section_id": self.section_id,
            "field_id": self.field_id,
            "line_number": self.line_number,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "FindingLocation") -> FindingLocation:
        parsed = expect_object(
            data, path, required=set(), optional={"section_id", "field_id", "line_number"}
        )
        line_number = parsed.get("line_number")
        return cls(
            section_id=as_optional_str(parsed.get("section_id"), f"{path}.section_id"),
            field_id=as_optional_str(parsed.get("field_id"), f"{path}.field_id"),
            line_number=None
            if line_number is None
            else as_int(line_number, f"{path}.line_number", minimum=0),
        )


@dataclass(frozen=True, slots=True)
class ValidationFinding:
    id: str
    rule_id: str
    rule_name: str
    type: RuleType
    severity: Severity
    title: str
    description: str
    confidence: float
    auto_fixable: bool = False
    requires_human_review: bool = False
    remediation: str = ""
    status: FindingStatus = FindingStatus.OPEN
    location: FindingLocation | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "auto_fixable": self.auto_fixable,
            "requires_human_review": self.requires_human_review,
            "remediation": self.remediation,
            "status": self.status.value,
            "location": None if self.location is None else self.location.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ValidationFinding") -> ValidationFinding:
        parsed = expect_object(
            data,
            path,
            required={
                "id",
                "rule_id",
                "rule_name",
                "type",
                "severity",
                "title",
                "description",
                "confidence",
            },
            optional={
                "auto_fixable",
                "requires_human_review",
                "remediation",
                "status",
                "location",
            },
        )
        location = parsed.get("location")
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            rule_id=as_str(parsed["rule_id"], f"{path}.rule_id", allow_empty=False),
            rule_name=as_str(parsed["rule_name"], f"{path}.rule_name"),
            type=as_enum(RuleType, parsed["type"], f"{path}.type"),
            severity=as_enum(Severity, parsed["severity"], f"{path}.severity"),
            title=as_str(parsed["title"], f"{path}.title"),
            description=as_str(parsed["description"], f"{path}.description"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
            auto_fixable=as_bool(parsed.get("auto_fixable", False), f"{path}.auto_fixable"),
            requires_human_review=as_bool(
                parsed.get("requires_human_review", False), f"{path}.requires_human_review"
            ),
            remediation=as_str(parsed.get("remediation", ""), f"{path}.remediation"),
            status=as_enum(
                FindingStatus, parsed.get("status", FindingStatus.OPEN.value), f"{path}.status"
            ),
            location=None
            if location is None
            else FindingLocation.from_dict(location, f"{path}.location"),
        )


@dataclass(frozen=True, slots=True)
class ComplianceViolation:
    id: str
    standard: str
    requirement: str
    severity: Severity
    description: str
    status: ViolationStatus = ViolationStatus.OPEN

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "standard": self.standard,
            "requirement": self.requirement,
            "severity": self.severity.value,
            "description": self.description,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ComplianceViolation") -> ComplianceViolation:
        parsed = expect_object(
            data,
            path,
            required={"id", "standard", "requirement", "severity", "description"},
            optional={"status"},
        )
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            standard=as_str(parsed["standard"], f"{path}.standard", allow_empty=False),
            requirement=as_str(parsed["requirement"], f"{path}.requirement"),
            severity=as_enum(Severity, parsed["severity"], f"{path}.severity"),
            description=as_str(parsed["description"], f"{path}.description"),
            status=as_enum(
                ViolationStatus, parsed.get("status", ViolationStatus.OPEN.value), f"{path}.status"
            ),
        )


@dataclass(frozen=True, slots=True)
class QualityIssue:
    id: str
    category: QualityCategory
    severity: Severity
    description: str
    score_impact: int

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "category": self.category.value,
            "severity": self.severity.value,
            "description": self.description,
            "score_impact": self.score_impact,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "QualityIssue") -> QualityIssue:
        parsed = expect_object(
            data, path, required={"id", "category", "severity", "description", "score_impact"}
        )
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            category=as_enum(QualityCategory, parsed["category"], f"{path}.category"),
            severity=as_enum(Severity, parsed["severity"], f"{path}.severity"),
            description=as_str(parsed["description"], f"{path}.description"),
            score_impact=as_int(parsed["score_impact"], f"{path}.score_impact", minimum=0),
        )


@dataclass(frozen=True, slots=True)
class MappingSnapshot:
    """Summary of the mapping result a validation run consumed."""

    id: str
    report_type_id: str | None
    confidence_score: float
    mapping_coverage: int
    completeness_score: int
    mapped_fields_count: int
    missing_required_sections_count: int
    extra_sections_count: int
    unknown_terminology_count: int
    schema_gaps_count: int
    created_at: datetime

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "report_type_id": self.report_type_id,
            "confidence_score": self.confidence_score,
            "mapping_coverage": self.mapping_coverage,
            "completeness_score": self.completeness_score,
            "mapped_fields_count": self.mapped_fields_count,
            "missing_required_sections_count": self.missing_required_sections_count,
            "extra_sections_count": self.extra_sections_count,
            "unknown_terminology_count": self.unknown_terminology_count,
            "schema_gaps_count": self.schema_gaps_count,
            "created_at": iso8601z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "MappingSnapshot") -> MappingSnapshot:
        counts = (
            "mapped_fields_count",
            "missing_required_sections_count",
            "extra_sections_count",
            "unknown_terminology_count",
            "schema_gaps_count",
        )
        parsed = expect_object(
            data,
            path,
            required={
                "id",
                "confidence_score",
                "mapping_coverage",
                "completeness_score",
                "created_at",
                *counts,
            },
            optional={"report_type_id"},
        )
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            report_type_id=as_optional_str(parsed.get("report_type_id"), f"{path}.report_type_id"),
            confidence_score=as_float(
                parsed["confidence_score"], f"{path}.confidence_score", minimum=0, maximum=1
            ),
            mapping_coverage=as_int(
                parsed["mapping_coverage"], f"{path}.mapping_coverage", minimum=0
            ),
            completeness_score=as_int(
                parsed["completeness_score"], f"{path}.completeness_score", minimum=0
            ),
            mapped_fields_count=as_int(
                parsed["mapped_fields_count"], f"{path}.mapped_fields_count", minimum=0
            ),
            missing_required_sections_count=as_int(
                parsed["missing_required_sections_count"],
                f"{path}.missing_required_sections_count",
                minimum=0,
            ),
            extra_sections_count=as_int(
                parsed["extra_sections_count"], f"{path}.extra_sections_count", minimum=0
            ),
            unknown_terminology_count=as_int(
                parsed["unknown_terminology_count"],
                f"{path}.unknown_terminology_count",
                minimum=0,
            ),
            schema_gaps_count=as_int(
                parsed["schema_gaps_count"], f"{path}.schema_gaps_count", minimum=0
            ),
            created_at=as_utc_datetime(parsed["created_at"], f"{path}.created_at"),
        )


@dataclass(frozen=True, slots=True)
class ReportTypeSnapshot:
    """Summary of the report-type definition in force when a validation ran."""

    id: str
    name: str
    description: str
    version: str
    required_sections_count: int = 0
    optional_sections_count: int = 0
    conditional_sections_count: int = 0
    compliance_rules_count: int = 0

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "required_sections_count": self.required_sections_count,
            "optional_sections_count": self.optional_sections_count,
            "conditional_sections_count": self.conditional_sections_count,
            "compliance_rules_count": self.compliance_rules_count,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ReportTypeSnapshot") -> ReportTypeSnapshot:
        counts = (
            "required_sections_count",
            "optional_sections_count",
            "conditional_sections_count",
            "compliance_rules_count",
        )
        parsed = expect_object(
            data, path, required={"id", "name", "description", "version"}, optional=set(counts)
        )
        count_values = {
            name: as_int(parsed.get(name, 0), f"{path}.{name}", minimum=0) for name in counts
        }
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            name=as_str(parsed["name"], f"{path}.name"),
            description=as_str(parsed["description"], f"{path}.description"),
            version=as_str(parsed["version"], f"{path}.version"),
            **count_values,
        )


@dataclass(frozen=True, slots=True)
class ValidationScores:
    """Category scores on a 0-100 scale; ``None`` marks a category that was not computed."""

    compliance: float | None = None
    quality: float | None = None
    completeness: float | None = None
    consistency: float | None = None
    overall: float = 0.0
    by_rule_type: dict[RuleType, int] = field(default_factory=dict)
    by_severity: dict[Severity, int] = field(
        default_factory=lambda: {severity: 0 for severity in Severity}
    )

    def __post_init__(self) -> None:
        if not 0.0 <= self.overall <= 100.0:
            raise ValueError(f"ValidationScores.overall must be in [0, 100], got {self.overall}")

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "compliance": self.compliance,
            "quality": self.quality,
            "completeness": self.completeness,
            "consistency": self.consistency,
            "overall": self.overall,
            "by_rule_type": {key.value: value for key, value in self.by_rule_type.items()},
            "by_severity": {key.value: value for key, value in self.by_severity.items()},
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ValidationScores") -> ValidationScores:
        parsed = expect_object(
            data,
            path,
            required={"overall"},
            optional={
                "compliance",
                "quality",
                "completeness",
                "consistency",
                "by_rule_type",
                "by_severity",
            },
        )
        by_rule_type = expect_object(
            parsed.get("by_rule_type", {}),
            f"{path}.by_rule_type",
            required=(),
            optional={member.value for member in RuleType},
        )
        by_severity = expect_object(
            parsed.get("by_severity", {}),
            f"{path}.by_severity",
            required=(),
            optional={member.value for member in Severity},
        )
        severity_counts = {severity: 0 for severity in Severity}
        for key, value in by_severity.items():
            severity_counts[Severity(key)] = as_int(value, f"{path}.by_severity.{key}", minimum=0)
        return cls(
            compliance=as_optional_float(parsed.get("compliance"), f"{path}.compliance"),
            quality=as_optional_float(parsed.get("quality"), f"{path}.quality"),
            completeness=as_optional_float(parsed.get("completeness"), f"{path}.completeness"),
            consistency=as_optional_float(parsed.get("consistency"), f"{path}.consistency"),
            overall=as_float(parsed["overall"], f"{path}.overall", minimum=0, maximum=100),
            by_rule_type={
                RuleType(key): as_int(value, f"{path}.by_rule_type.{key}", minimum=0)
                for key, value in by_rule_type.items()
            },
            by_severity=severity_counts,
        )


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Aggregate root for one validation run; frozen once returned by the engine."""

    id: str
    schema_mapping_id: str
    decompiled_report_id: str
    report_type_id: str | None = None
    findings: tuple[ValidationFinding, ...] = ()
    compliance_violations: tuple[ComplianceViolation, ...] = ()
    quality_issues: tuple[QualityIssue, ...] = ()
    scores: ValidationScores = field(default_factory=ValidationScores)
    rules_executed: int = 0
    rules_passed: int = 0
    rules_failed: int = 0
    rules_skipped: int = 0
    processing_time_ms: int = 0
    status: ValidationStatus = ValidationStatus.PENDING
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    validator_version: str = VALIDATOR_VERSION
    mapping_snapshot: MappingSnapshot | None = None
    report_type_snapshot: ReportTypeSnapshot | None = None

    def __post_init__(self) -> None:
        accounted = self.rules_passed + self.rules_failed + self.rules_skipped
        if accounted != self.rules_executed:
            raise ValueError(
                f"ValidationResult {self.id}: passed+failed+skipped ({accounted}) must equal "
                f"rules_executed ({self.rules_executed})"
            )

    def findings_by_severity(self, severity: Severity) -> tuple[ValidationFinding, ...]:
        return tuple(finding for finding in self.findings if finding.severity is severity)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "schema_mapping_id": self.schema_mapping_id,
            "decompiled_report_id": self.decompiled_report_id,
            "report_type_id": self.report_type_id,
            "findings": [item.to_dict() for item in self.findings],
            "compliance_violations": [item.to_dict() for item in self.compliance_violations],
            "quality_issues": [item.to_dict() for item in self.quality_issues],
            "scores": self.scores.to_dict(),
            "rules_executed": self.rules_executed,
            "rules_passed": self.rules_passed,
            "rules_failed": self.rules_failed,
            "rules_skipped": self.rules_skipped,
            "processing_time_ms": self.processing_time_ms,
            "status": self.status.value,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "created_at": iso8601z(self.created_at),
            "completed_at": None if self.completed_at is None else iso8601z(self.completed_at),
            "validator_version": self.validator_version,
            "mapping_snapshot": None
            if self.mapping_snapshot is None
            else self.mapping_snapshot.to_dict(),
            "report_type_snapshot": None
            if self.report_type_snapshot is None
            else self.report_type_snapshot.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: object) -> ValidationResult:
        path = "ValidationResult"
        parsed = expect_object(
            data,
            path,
            required={
                "id",
                "schema_mapping_id",
                "decompiled_report_id",
                "scores",
                "status",
                "created_at",
            },
            optional={
                "report_type_id",
                "findings",
                "compliance_violations",
                "quality_issues",
                "rules_executed",
                "rules_passed",
                "rules_failed",
                "rules_skipped",
                "processing_time_ms",
                "warnings",
                "errors",
                "completed_at",
                "validator_version",
                "mapping_snapshot",
                "report_type_snapshot",
            },
        )
        completed_at = parsed.get("completed_at")
        mapping_snapshot = parsed.get("mapping_snapshot")
        report_type_snapshot = parsed.get("report_type_snapshot")
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            schema_mapping_id=as_str(parsed["schema_mapping_id"], f"{path}.schema_mapping_id"),
            decompiled_report_id=as_str(
                parsed["decompiled_report_id"], f"{path}.decompiled_report_id"
            ),
            report_type_id=as_optional_str(parsed.get("report_type_id"), f"{path}.report_type_id"),
            findings=tuple(
                ValidationFinding.from_dict(item, f"{path}.findings[{index}]")
                for index, item in enumerate(
                    as_list(parsed.get("findings", []), f"{path}.findings")
                )
            ),
            compliance_violations=tuple(
                ComplianceViolation.from_dict(item, f"{path}.compliance_violations[{index}]")
                for index, item in enumerate(
                    as_list(
                        parsed.get("compliance_violations", []), f"{path}.compliance_violations"
                    )
                )
            ),
            quality_issues=tuple(
                QualityIssue.from_dict(item, f"{path}.quality_issues[{index}]")
                for index, item in enumerate(
                    as_list(parsed.get("quality_issues", []), f"{path}.quality_issues")
                )
            ),
            scores=ValidationScores.from_dict(parsed["scores"], f"{path}.scores"),
            rules_executed=as_int(
                parsed.get("rules_executed", 0), f"{path}.rules_executed", minimum=0
            ),
            rules_passed=as_int(parsed.get("rules_passed", 0), f"{path}.rules_passed", minimum=0),
            rules_failed=as_int(parsed.get("rules_failed", 0), f"{path}.rules_failed", minimum=0),
            rules_skipped=as_int(
                parsed.get("rules_skipped", 0), f"{path}.rules_skipped", minimum=0
            ),
            processing_time_ms=as_int(
                parsed.get("processing_time_ms", 0), f"{path}.processing_time_ms", minimum=0
            ),
            status=as_enum(ValidationStatus, parsed["status"], f"{path}.status"),
            warnings=as_str_tuple(parsed.get("warnings", []), f"{path}.warnings"),
            errors=as_str_tuple(parsed.get("errors", []), f"{path}.errors"),
            created_at=as_utc_datetime(parsed["created_at"], f"{path}.created_at"),
            completed_at=None
            if completed_at is None
            else as_utc_datetime(completed_at, f"{path}.completed_at"),
            validator_version=as_str(
                parsed.get("validator_version", VALIDATOR_VERSION),
                f"{path}.validator_version",
                allow_empty=False,
            ),
            mapping_snapshot=None
            if mapping_snapshot is None
            else MappingSnapshot.from_dict(mapping_snapshot, f"{path}.mapping_snapshot"),
            report_type_snapshot=None
            if report_type_snapshot is None
            else ReportTypeSnapshot.from_dict(
                report_type_snapshot, f"{path}.report_type_snapshot"
            ),
        )

    @classmethod
    def from_json(cls, raw: str) -> ValidationResult:
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ValidationResult: invalid JSON: {exc}") from exc
        return cls.from_dict(parsed)


__all__ = [
    "ALL_REPORT_TYPES",
    "MAX_RULE_WEIGHT",
    "MIN_RULE_WEIGHT",
    "VALIDATOR_VERSION",
    "ComplianceViolation",
    "FindingLocation",
    "FindingStatus",
    "MappingSnapshot",
    "QualityCategory",
    "QualityIssue",
    "ReportTypeSnapshot",
    "RuleType",
    "Severity",
    "ValidationFinding",
    "ValidationResult",
    "ValidationRule",
    "ValidationScores",
    "ValidationStatus",
    "ViolationStatus",
]
