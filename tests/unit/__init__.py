"""Shared deterministic builders for report-intelligence unit tests."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Final

from report_intelligence.domain import ids
from report_intelligence.domain.mapping import (
    FieldType,
    GapSeverity,
    GapType,
    MappedField,
    MappingMethod,
    MissingRequiredSection,
    SchemaGap,
    SchemaMappingResult,
    UnknownTerm,
)
from report_intelligence.domain.report import (
    ComplianceMarker,
    DecompiledReport,
    DetectedSection,
    DetectorKind,
    DetectorResults,
    ExtractedMetadata,
    InputFormat,
    MarkerType,
    SectionMetadata,
    SectionType,
    StructureMap,
    TermCategory,
    TerminologyEntry,
)
from report_intelligence.domain.validation import RuleType, Severity, ValidationRule
from report_intelligence.registry.report_types import (
    ComplianceRuleDefinition,
    ReportTypeDefinition,
    SectionDefinition,
)
from report_intelligence.utils.hashing import sha256_text

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

_BASE_TS: Final[datetime] = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)


def fixed_now(seed: int = 0) -> datetime:
    return _BASE_TS + timedelta(seconds=seed)


def make_section(
    section_id: str = "heading-0",
    *,
    title: str = "Introduction",
    content: str | None = None,
    section_type: SectionType = SectionType.HEADING,
    level: int = 1,
    source: DetectorKind = DetectorKind.HEADINGS,
    start_line: int = 0,
) -> DetectedSection:
    body = content if content is not None else f"# {title}"
    return DetectedSection(
        id=section_id,
        type=section_type,
        level=level,
        title=title,
        content=body,
        start_line=start_line,
        end_line=start_line,
        source_detector=source,
        metadata=SectionMetadata(
            word_count=len(body.split()), line_count=1, confidence=0.9
        ),
    )


def make_term(term: str, *, frequency: int = 1) -> TerminologyEntry:
    return TerminologyEntry(
        term=term,
        context=f"... {term} ...",
        frequency=frequency,
        category=TermCategory.GENERAL,
        confidence=0.8,
    )


def make_marker(standard: str = "BS5837:2012") -> ComplianceMarker:
    return ComplianceMarker(
        type=MarkerType.STANDARD,
        text=standard,
        standard=standard,
        context=f"in accordance with {standard}",
        confidence=0.8,
    )


def make_report(
    sections: Sequence[DetectedSection] = (),
    *,
    text: str = "",
    terminology: Sequence[TerminologyEntry] = (),
    markers: Sequence[ComplianceMarker] = (),
    detected_report_type: str | None = None,
    seed: int = 0,
) -> DecompiledReport:
    return DecompiledReport(
        id=ids.generate_report_id(),
        source_hash=sha256_text(text),
        raw_text=text,
        normalized_text=text,
        input_format=InputFormat.TEXT,
        sections=tuple(sections),
        metadata=ExtractedMetadata(word_count=len(text.split())),
        terminology=tuple(terminology),
        compliance_markers=tuple(markers),
        structure_map=StructureMap(section_count=len(sections)),
        detector_results=DetectorResults(),
        confidence_score=0.5,
        detected_report_type=detected_report_type,
        created_at=fixed_now(seed),
        processed_at=fixed_now(seed),
    )


def make_field(
    name: str = "Introduction",
    *,
    value: str = "x" * 80,
    confidence: float = 0.8,
) -> MappedField:
    return MappedField(
        field_id=name.lower().replace(" ", "-"),
        field_name=name,
        field_type=FieldType.SECTION,
        source_section_id=f"heading-{name.lower()}",
        source_section_title=name,
        mapped_value=value,
        mapping_confidence=confidence,
        mapping_method=MappingMethod.EXACT_MATCH,
    )


def make_missing(section_id: str = "executive-summary") -> MissingRequiredSection:
    return MissingRequiredSection(
        section_id=section_id,
        section_name=section_id.replace("-", " ").title(),
        description=f"The {section_id} section",
    )


def make_unknown_term(term: str) -> UnknownTerm:
    return UnknownTerm(
        term=term, context=term, frequency=1, category=TermCategory.GENERAL, confidence=0.8
    )


def make_gap(gap_type: GapType = GapType.MISMATCHED_SCHEMA) -> SchemaGap:
    return SchemaGap(
        gap_id=ids.generate_gap_id(),
        type=gap_type,
        description=f"{gap_type.value} gap",
        severity=GapSeverity.CRITICAL,
        suggested_fix="fix it",
        confidence=0.8,
    )


def make_mapping(
    *,
    report_type_id: str | None = "bs5837-2012",
    mapped_fields: Sequence[MappedField] = (),
    missing: Sequence[MissingRequiredSection] = (),
    unknown: Sequence[UnknownTerm] = (),
    gaps: Sequence[SchemaGap] = (),
    completeness_score: int = 100,
    seed: int = 0,
) -> SchemaMappingResult:
    return SchemaMappingResult(
        id=ids.generate_mapping_id(),
        decompiled_report_id=ids.generate_report_id(),
        report_type_id=report_type_id,
        mapped_fields=tuple(mapped_fields),
        missing_required_sections=tuple(missing),
        unknown_terminology=tuple(unknown),
        schema_gaps=tuple(gaps),
        confidence_score=0.7,
        mapping_coverage=100,
        completeness_score=completeness_score,
        created_at=fixed_now(seed),
    )


def make_rule(
    rule_id: str,
    *,
    rule_type: RuleType = RuleType.QUALITY,
    severity: Severity = Severity.MEDIUM,
    applicable: tuple[str, ...] = ("all",),
    enabled: bool = True,
) -> ValidationRule:
    return ValidationRule(
        id=rule_id,
        name=f"Rule {rule_id}",
        description=f"Checks {rule_id}",
        type=rule_type,
        severity=severity,
        applicable_report_types=applicable,
        enabled=enabled,
    )


def make_definition(
    type_id: str = "hedge-survey",
    *,
    name: str = "Hedge Survey",
    required: Sequence[str] = ("Introduction", "Findings"),
    optional: Sequence[str] = (),
    standards: Sequence[str] = (),
    tags: tuple[str, ...] = (),
    terminology: tuple[str, ...] = (),
) -> ReportTypeDefinition:
    def section(title: str, *, is_required: bool) -> SectionDefinition:
        return SectionDefinition(
            id=title.lower().replace(" ", "-"),
            name=title,
            description=f"{title} of the survey",
            required=is_required,
        )

    return ReportTypeDefinition(
        id=type_id,
        name=name,
        description=f"{name} definition",
        category="survey",
        version="1.0.0",
        required_sections=tuple(section(title, is_required=True) for title in required),
        optional_sections=tuple(section(title, is_required=False) for title in optional),
        compliance_rules=tuple(
            ComplianceRuleDefinition(
                id=f"{type_id}-rule-{index}",
                name=f"{standard} conformance",
                description=f"Follows {standard}",
                standard=standard,
                rule="must follow",
            )
            for index, standard in enumerate(standards)
        ),
        standards=tuple(standards),
        tags=tags,
        terminology=terminology,
    )


__all__ = [
    "fixed_now",
    "make_definition",
    "make_field",
    "make_gap",
    "make_mapping",
    "make_marker",
    "make_missing",
    "make_report",
    "make_rule",
    "make_section",
    "make_term",
    "make_unknown_term",
]
