"""
report-intelligence — schema mapper

File: src/report_intelligence/schema_mapper/mapper.py

Purpose
- Match the sections of a ``DecompiledReport`` against the section definitions of a
  registered report type and describe how well the document fits that schema.

Functional requirements
- The report type is the decompiler's detected type when the registry knows it,
  otherwise the best keyword-scored registered type (accepted at a score of 10).
- Every section yields exactly one mapped field: a schema field when some
  definition scores at least 0.5, otherwise a generic inferred field.
- Missing required sections, extra sections, unknown terminology and schema gaps
  are reported alongside coverage, completeness and an overall confidence.
- Lifecycle events are published on the injected ``EventBus`` when one is given;
  the result is saved through the injected repository when one is given.
"""

from __future__ import annotations

import re
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Final

import structlog

from report_intelligence.decompiler.classification import titles_overlap
from report_intelligence.domain import ids
from report_intelligence.domain._coerce import JSONValue, utc_now
from report_intelligence.domain.events import EventType
from report_intelligence.domain.mapping import (
    ExtraSection,
    FieldType,
    GapSeverity,
    GapType,
    MappedField,
    MappingMethod,
    MissingRequiredSection,
    SchemaGap,
    SchemaMappingResult,
    SectionPurpose,
    UnknownTerm,
    UnmappedReason,
    UnmappedSection,
)
from report_intelligence.domain.report import DecompiledReport, DetectedSection, SectionType
from report_intelligence.observability.logging import correlation_scope
from report_intelligence.registry.report_types import ReportTypeDefinition, SectionDefinition

if TYPE_CHECKING:
    from report_intelligence.observability.events import EventBus
    from report_intelligence.persistence.repositories import SchemaMappingRepo
    from report_intelligence.registry.report_types import ReportTypeRegistry

EXACT_TITLE_SCORE: Final[float] = 0.8
PARTIAL_TITLE_SCORE: Final[float] = 0.6
DESCRIPTION_WORD_SCORE: Final[float] = 0.2
MAX_DESCRIPTION_WORDS: Final[int] = 3
HEADING_TEMPLATE_SCORE: Final[float] = 0.1

CANDIDATE_THRESHOLD: Final[float] = 0.3
MAPPED_THRESHOLD: Final[float] = 0.5
EXACT_THRESHOLD: Final[float] = 0.8
GENERIC_FIELD_CONFIDENCE: Final[float] = 0.4

TYPE_NAME_SCORE: Final[int] = 15
TYPE_ID_SCORE: Final[int] = 20
TYPE_MARKER_SCORE: Final[int] = 10
TYPE_SECTION_SCORE: Final[int] = 5
TYPE_TERM_SCORE: Final[int] = 3
TYPE_ACCEPTANCE_SCORE: Final[int] = 10

PREVIEW_LENGTH: Final[int] = 100
MIN_MAPPED_RATIO: Final[float] = 0.3
MAX_UNKNOWN_TERMS: Final[int] = 10
MAX_EXTRA_SECTIONS: Final[int] = 5

_DATE_RE: Final[re.Pattern[str]] = re.compile(r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}")
_NUMBER_RE: Final[re.Pattern[str]] = re.compile(r"^\d+(\.\d+)?$")
_BOOLEAN_RE: Final[re.Pattern[str]] = re.compile(r"^(yes|no|true|false)$", re.IGNORECASE)
_NON_ALNUM_RE: Final[re.Pattern[str]] = re.compile(r"[^a-zA-Z0-9]")

_PURPOSE_KEYWORDS: Final[tuple[tuple[SectionPurpose, tuple[str, ...]], ...]] = (
    (SectionPurpose.INTRODUCTORY_CONTENT, ("introduction", "overview")),
    (SectionPurpose.METHODOLOGY_DESCRIPTION, ("method", "procedure", "approach")),
    (SectionPurpose.RESULTS_PRESENTATION, ("result", "finding", "observation")),
    (SectionPurpose.CONCLUSIONS_RECOMMENDATIONS, ("conclusion", "summary", "recommendation")),
    (SectionPurpose.REFERENCES, ("reference", "bibliography")),
    (SectionPurpose.APPENDIX_MATERIAL, ("appendix", "attachment")),
)


def match(section: DetectedSection, definition: SectionDefinition) -> float:
    """Confidence in [0, 1] that ``section`` realizes ``definition``."""

    title = section.title.lower()
    name = definition.name.lower()
    score = 0.0
    if title == name:
        score += EXACT_TITLE_SCORE
    elif titles_overlap(title, name):
        score += PARTIAL_TITLE_SCORE

    if definition.description:
        title_words = set(title.split())
        shared = [
            word
            for word in definition.description.lower().split()
            if len(word) > 3 and word in title_words
        ]
        if shared:
            score += DESCRIPTION_WORD_SCORE * min(len(shared), MAX_DESCRIPTION_WORDS)

    if "heading" in definition.template.lower() and section.type is SectionType.HEADING:
        score += HEADING_TEMPLATE_SCORE
    return min(score, 1.0)


def infer_field_type(section: DetectedSection) -> FieldType:
    if section.type is SectionType.TABLE:
        return FieldType.OBJECT
    if section.type is SectionType.LIST:
        return FieldType.ARRAY
    content = section.content.strip()
    if _DATE_RE.search(content.lower()):
        return FieldType.DATE
    if _NUMBER_RE.match(content):
        return FieldType.NUMBER
    if _BOOLEAN_RE.match(content):
        return FieldType.BOOLEAN
    return FieldType.TEXT


def infer_purpose(section: DetectedSection) -> SectionPurpose:
    title = section.title.lower()
    for purpose, keywords in _PURPOSE_KEYWORDS:
        if any(keyword in title for keyword in keywords):
            return purpose
    content = section.content.lower()
    if "table" in content or section.type is SectionType.TABLE:
        return SectionPurpose.DATA_TABLE
    if any(keyword in content for keyword in ("figure", "image", "diagram")):
        return SectionPurpose.VISUAL_CONTENT
    return SectionPurpose.GENERAL_CONTENT


def score_report_type_fit(report: DecompiledReport, definition: ReportTypeDefinition) -> int:
    """Keyword fit of a whole report against one report type."""

    text = report.normalized_text.lower()
    score = 0
    if definition.name and definition.name.lower() in text:
        score += TYPE_NAME_SCORE
    if definition.id.lower() in text:
        score += TYPE_ID_SCORE

    rule_standards = [rule.standard.lower() for rule in definition.compliance_rules]
    for marker in report.compliance_markers:
        standard = marker.standard.lower()
        if standard and any(standard in rule_standard for rule_standard in rule_standards):
            score += TYPE_MARKER_SCORE

    names = [section.name for section in definition.all_sections]
    for section in report.sections:
        if any(titles_overlap(section.title, name) for name in names):
            score += TYPE_SECTION_SCORE

    tags = [tag.lower() for tag in definition.tags if tag]
    for entry in report.terminology:
        term = entry.term.lower()
        if term and any(term in tag or tag in term for tag in tags):
            score += TYPE_TERM_SCORE
    return score


def _preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


class ReportSchemaMapper:
    """Maps decompiled reports onto report-type schemas held by a registry."""

    def __init__(
        self,
        *,
        registry: ReportTypeRegistry | None = None,
        event_bus: EventBus | None = None,
        repository: SchemaMappingRepo | None = None,
        logger: Any | None = None,
    ) -> None:
        self._registry = registry
        self._event_bus = event_bus
        self._repository = repository
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    match = staticmethod(match)

    def map(self, report: DecompiledReport) -> SchemaMappingResult:
        if not isinstance(report, DecompiledReport):
            raise TypeError(f"report must be DecompiledReport, got {type(report).__name__}")

        started = time.perf_counter()
        mapping_id = ids.generate_mapping_id()
        with correlation_scope(report_id=report.id, mapping_id=mapping_id):
            self._emit(
                EventType.SCHEMA_MAPPER_STARTED,
                {
                    "mapping_id": mapping_id,
                    "report_id": report.id,
                    "section_count": len(report.sections),
                },
            )
            try:
                result = self._run(mapping_id, report, started)
            except Exception as exc:
                self._emit(
                    EventType.SCHEMA_MAPPER_ERROR,
                    {"mapping_id": mapping_id, "report_id": report.id, "error": str(exc)},
                )
                self._logger.exception("schema_mapping_failed", error=str(exc))
                raise

            if self._repository is not None:
                self._repository.save(result)
            self._logger.info(
                "schema_mapped",
                report_type_id=result.report_type_id,
                mapped_field_count=len(result.mapped_fields),
                gap_count=len(result.schema_gaps),
                confidence_score=result.confidence_score,
                processing_time_ms=result.processing_time_ms,
            )
        return result

    def identify_report_type(self, report: DecompiledReport) -> ReportTypeDefinition | None:
        if self._registry is None:
            return None
        if report.detected_report_type:
            known = self._registry.get(report.detected_report_type)
            if known is not None:
                return known

        best: tuple[ReportTypeDefinition, int] | None = None
        for definition in self._registry.list_all():
            score = score_report_type_fit(report, definition)
            if score > 0 and (best is None or score > best[1]):
                best = (definition, score)
        if best is None or best[1] < TYPE_ACCEPTANCE_SCORE:
            return None
        return best[0]

    def _run(
        self, mapping_id: str, report: DecompiledReport, started: float
    ) -> SchemaMappingResult:
        warnings: list[str] = []
        try:
            report_type = self.identify_report_type(report)
        except Exception as exc:  # noqa: BLE001
            warnings.append(f"Report type identification failed: {exc}")
            self._logger.warning("report_type_identification_failed", error=str(exc))
            report_type = None

        if report_type is None:
            warnings.append("No report type identified; sections mapped generically")
        else:
            self._emit(
                EventType.SCHEMA_MAPPER_REPORT_TYPE_IDENTIFIED,
                {
                    "mapping_id": mapping_id,
                    "report_type_id": report_type.id,
                    "report_type_name": report_type.name,
                },
            )

        definitions = report_type.all_sections if report_type is not None else ()
        mapped: list[MappedField] = []
        unmapped: list[UnmappedSection] = []
        for section in report.sections:
            field_, leftover = self._map_section(section, definitions)
            mapped.append(field_)
            if leftover is not None:
                unmapped.append(leftover)

        missing = self._missing_required(report.sections, report_type)
        extra = self._extra_sections(report.sections, definitions, typed=report_type is not None)
        unknown = self._unknown_terminology(report, report_type)
        gaps = self._schema_gaps(report.sections, mapped, missing, extra, unknown)

        coverage = _coverage(report.sections, mapped)
        completeness = _completeness(report_type, missing)
        confidence = _mapping_confidence(coverage, completeness, mapped, gaps)

        result = SchemaMappingResult(
            id=mapping_id,
            decompiled_report_id=report.id,
            report_type_id=report_type.id if report_type is not None else None,
            report_type_name=report_type.name if report_type is not None else None,
            mapped_fields=tuple(mapped),
            unmapped_sections=tuple(unmapped),
            missing_required_sections=missing,
            extra_sections=extra,
            unknown_terminology=unknown,
            schema_gaps=gaps,
            confidence_score=confidence,
            mapping_coverage=coverage,
            completeness_score=completeness,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            warnings=tuple(warnings),
            created_at=utc_now(),
        )
        self._emit(
            EventType.SCHEMA_MAPPER_COMPLETED,
            {
                "mapping_id": mapping_id,
                "report_id": report.id,
                "report_type_id": result.report_type_id,
                "mapped_field_count": len(result.mapped_fields),
                "gap_count": len(result.schema_gaps),
                "confidence_score": result.confidence_score,
                "processing_time_ms": result.processing_time_ms,
            },
        )
        return result

    def _map_section(
        self, section: DetectedSection, definitions: Sequence[SectionDefinition]
    ) -> tuple[MappedField, UnmappedSection | None]:
        best: SectionDefinition | None = None
        best_score = 0.0
        for definition in definitions:
            score = match(section, definition)
            if score > CANDIDATE_THRESHOLD and score > best_score:
                best, best_score = definition, score

        if best is not None and best_score >= MAPPED_THRESHOLD:
            method = (
                MappingMethod.EXACT_MATCH
                if best_score >= EXACT_THRESHOLD
                else MappingMethod.FUZZY_MATCH
            )
            return (
                MappedField(
                    field_id=best.id,
                    field_name=best.name,
                    field_type=FieldType.SECTION,
                    source_section_id=section.id,
                    source_section_title=section.title,
                    mapped_value=section.content,
                    mapping_confidence=best_score,
                    mapping_method=method,
                    notes=f'Mapped from section "{section.title}"',
                ),
                None,
            )

        generic = MappedField(
            field_id=f"generic_{section.type.value}_{_NON_ALNUM_RE.sub('_', section.id)}",
            field_name=section.title or f"Untitled {section.type.value}",
            field_type=infer_field_type(section),
            source_section_id=section.id,
            source_section_title=section.title,
            mapped_value=section.content,
            mapping_confidence=GENERIC_FIELD_CONFIDENCE,
            mapping_method=MappingMethod.INFERRED,
            notes=f"Generic mapping for {section.type.value} section",
        )
        if not definitions:
            return generic, None
        leftover = UnmappedSection(
            section_id=section.id,
            section_title=section.title,
            section_type=section.type.value,
            content_preview=_preview(section.content),
            reason=(
                UnmappedReason.LOW_CONFIDENCE
                if best is not None
                else UnmappedReason.NO_MATCHING_FIELD
            ),
            confidence=best_score,
            suggested_field_id=best.id if best is not None else None,
            suggested_field_name=best.name if best is not None else None,
        )
        return generic, leftover

    def _missing_required(
        self,
        sections: Sequence[DetectedSection],
        report_type: ReportTypeDefinition | None,
    ) -> tuple[MissingRequiredSection, ...]:
        if report_type is None:
            return ()
        missing: list[MissingRequiredSection] = []
        for definition in report_type.required_sections:
            if any(match(section, definition) >= MAPPED_THRESHOLD for section in sections):
                continue
            missing.append(
                MissingRequiredSection(
                    section_id=definition.id,
                    section_name=definition.name,
                    description=definition.description,
                    suggested_content=definition.template or None,
                    ai_guidance=definition.ai_guidance,
                )
            )
        return tuple(missing)

    def _extra_sections(
        self,
        sections: Sequence[DetectedSection],
        definitions: Sequence[SectionDefinition],
        *,
        typed: bool,
    ) -> tuple[ExtraSection, ...]:
        extra: list[ExtraSection] = []
        for section in sections:
            if typed and any(
                match(section, definition) >= MAPPED_THRESHOLD for definition in definitions
            ):
                continue
            extra.append(
                ExtraSection(
                    section_id=section.id,
                    section_title=section.title,
                    section_type=section.type.value,
                    content_preview=_preview(section.content),
                    potential_purpose=infer_purpose(section),
                )
            )
        return tuple(extra)

    def _unknown_terminology(
        self, report: DecompiledReport, report_type: ReportTypeDefinition | None
    ) -> tuple[UnknownTerm, ...]:
        """Extracted terms outside the report type's vocabulary.

        Terms the type covers are deliberately left out, so the qual_002 and term_001
        thresholds count only foreign vocabulary rather than every extracted term.
        Without a resolved type every term is unknown.
        """

        return tuple(
            UnknownTerm(
                term=entry.term,
                context=entry.context,
                frequency=entry.frequency,
                category=entry.category,
                confidence=entry.confidence,
            )
            for entry in report.terminology
            if report_type is None or not report_type.covers_term(entry.term)
        )

    def _schema_gaps(
        self,
        sections: Sequence[DetectedSection],
        mapped: Sequence[MappedField],
        missing: Sequence[MissingRequiredSection],
        extra: Sequence[ExtraSection],
        unknown: Sequence[UnknownTerm],
    ) -> tuple[SchemaGap, ...]:
        gaps: list[SchemaGap] = []
        total = len(sections)
        if len(mapped) < total * MIN_MAPPED_RATIO:
            gaps.append(
                SchemaGap(
                    gap_id=ids.generate_gap_id(),
                    type=GapType.MISMATCHED_SCHEMA,
                    description=(
                        f"Only {len(mapped)} out of {total} sections were mapped to schema fields"
                    ),
                    severity=GapSeverity.CRITICAL,
                    suggested_fix="Review mapping rules and consider adding new field definitions",
                    confidence=0.8,
                    data={
                        "mapped_sections": len(mapped),
                        "total_sections": total,
                        "coverage_percentage": round(len(mapped) / total * 100),
                    },
                )
            )
        if len(unknown) > MAX_UNKNOWN_TERMS:
            gaps.append(
                SchemaGap(
                    gap_id=ids.generate_gap_id(),
                    type=GapType.UNKNOWN_TERMINOLOGY,
                    description=f"{len(unknown)} unknown terminology entries detected",
                    severity=GapSeverity.WARNING,
                    suggested_fix="Update terminology dictionary with new terms",
                    confidence=0.7,
                    data={
                        "unknown_terminology_count": len(unknown),
                        "sample_terms": [term.term for term in unknown[:3]],
                    },
                )
            )
        if missing:
            gaps.append(
                SchemaGap(
                    gap_id=ids.generate_gap_id(),
                    type=GapType.MISSING_SECTION,
                    description=f"{len(missing)} required sections are missing",
                    severity=GapSeverity.CRITICAL,
                    suggested_fix="Add missing required sections to the report",
                    confidence=1.0,
                    data={
                        "missing_sections": [item.section_name for item in missing],
                        "count": len(missing),
                    },
                )
            )
        if len(extra) > MAX_EXTRA_SECTIONS:
            gaps.append(
                SchemaGap(
                    gap_id=ids.generate_gap_id(),
                    type=GapType.UNKNOWN_SECTION,
                    description=f"{len(extra)} extra sections not defined in schema",
                    severity=GapSeverity.WARNING,
                    suggested_fix=(
                        "Review schema completeness and consider adding new section definitions"
                    ),
                    confidence=0.6,
                    data={
                        "extra_sections_count": len(extra),
                        "sample_titles": [item.section_title for item in extra[:3]],
                    },
                )
            )
        return tuple(gaps)

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


def _coverage(sections: Sequence[DetectedSection], mapped: Sequence[MappedField]) -> int:
    if not sections:
        return 0
    covered = {item.source_section_id for item in mapped}
    return min(100, round(len(covered) / len(sections) * 100))


def _completeness(
    report_type: ReportTypeDefinition | None, missing: Sequence[MissingRequiredSection]
) -> int:
    required = len(report_type.required_sections) if report_type is not None else 0
    if required == 0:
        return 100
    return round((required - len(missing)) / required * 100)


def _mapping_confidence(
    coverage: int,
    completeness: int,
    mapped: Sequence[MappedField],
    gaps: Sequence[SchemaGap],
) -> float:
    mean = sum(item.mapping_confidence for item in mapped) / len(mapped) if mapped else 0.0
    critical = sum(1 for gap in gaps if gap.severity is GapSeverity.CRITICAL)
    warning = sum(1 for gap in gaps if gap.severity is GapSeverity.WARNING)
    penalty = min(0.15 * critical + 0.05 * warning, 0.5)
    raw = (coverage / 100 * 0.4 + completeness / 100 * 0.3 + mean * 0.2 - penalty) / 0.9
    return max(0.0, min(1.0, raw))


__all__ = [
    "ReportSchemaMapper",
    "infer_field_type",
    "infer_purpose",
    "match",
    "score_report_type_fit",
]
