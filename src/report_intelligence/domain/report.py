"""
report-intelligence — decompiled report domain model

File: src/report_intelligence/domain/report.py

Purpose
- Typed, immutable document model produced by the decompiler: detected sections,
  extracted metadata, terminology, compliance markers, structure map and the
  per-detector result summary.

Functional requirements
- Sections from different detectors may overlap; each carries the detector that
  produced it so consumers can filter the multiset.
- Every entity round-trips through ``to_dict``/``from_dict`` for persistence.

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
from report_intelligence.utils.hashing import is_sha256_hex


class InputFormat(StrEnum):
    """Declared origin of the ingested text."""

    TEXT = "text"
    MARKDOWN = "markdown"
    PDF_TEXT = "pdf_text"
    PASTED = "pasted"


class SectionType(StrEnum):
    """Semantic classification of a detected section."""

    HEADING = "heading"
    SUBHEADING = "subheading"
    CONTENT_SECTION = "content_section"
    LIST = "list"
    TABLE = "table"
    APPENDIX = "appendix"
    METHODOLOGY = "methodology"
    DISCLAIMER = "disclaimer"
    LEGAL = "legal"
    UNKNOWN = "unknown"


class DetectorKind(StrEnum):
    """The eight detectors, in their fixed execution order."""

    HEADINGS = "headings"
    SECTIONS = "sections"
    LISTS = "lists"
    TABLES = "tables"
    METADATA = "metadata"
    TERMINOLOGY = "terminology"
    COMPLIANCE = "compliance"
    APPENDICES = "appendices"


class TermCategory(StrEnum):
    TECHNICAL = "technical"
    LEGAL = "legal"
    COMPLIANCE = "compliance"
    SPECIES = "species"
    MEASUREMENT = "measurement"
    GENERAL = "general"


class MarkerType(StrEnum):
    STANDARD = "standard"
    REGULATION = "regulation"
    REQUIREMENT = "requirement"
    GUIDELINE = "guideline"
    BEST_PRACTICE = "best_practice"


DETECTOR_ORDER: Final[tuple[DetectorKind, ...]] = tuple(DetectorKind)
HEADING_TYPES: Final[frozenset[SectionType]] = frozenset(
    {SectionType.HEADING, SectionType.SUBHEADING}
)
MAX_HEADING_LEVEL: Final[int] = 6


@dataclass(frozen=True, slots=True)
class SectionMetadata:
    word_count: int
    line_count: int
    has_numbers: bool = False
    has_bullets: bool = False
    has_tables: bool = False
    confidence: float = 0.0

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "word_count": self.word_count,
            "line_count": self.line_count,
            "has_numbers": self.has_numbers,
            "has_bullets": self.has_bullets,
            "has_tables": self.has_tables,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "SectionMetadata") -> SectionMetadata:
        parsed = expect_object(
            data,
            path,
            required={"word_count", "line_count", "confidence"},
            optional={"has_numbers", "has_bullets", "has_tables"},
        )
        return cls(
            word_count=as_int(parsed["word_count"], f"{path}.word_count", minimum=0),
            line_count=as_int(parsed["line_count"], f"{path}.line_count", minimum=0),
            has_numbers=as_bool(parsed.get("has_numbers", False), f"{path}.has_numbers"),
            has_bullets=as_bool(parsed.get("has_bullets", False), f"{path}.has_bullets"),
            has_tables=as_bool(parsed.get("has_tables", False), f"{path}.has_tables"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
        )


@dataclass(frozen=True, slots=True)
class DetectedSection:
    """A classified span of the normalized text, tagged with its source detector."""

    id: str
    type: SectionType
    level: int
    title: str
    content: str
    start_line: int
    end_line: int
    source_detector: DetectorKind
    metadata: SectionMetadata
    parent_id: str | None = None
    children_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("DetectedSection.id must not be empty")
        if self.start_line < 0 or self.start_line > self.end_line:
            raise ValueError(
                f"DetectedSection {self.id}: start_line ({self.start_line}) must be "
                f"between 0 and end_line ({self.end_line})"
            )
        if not 0 <= self.level <= MAX_HEADING_LEVEL:
            raise ValueError(
                f"DetectedSection {self.id}: level must be in [0, {MAX_HEADING_LEVEL}]"
            )

    @property
    def is_heading(self) -> bool:
        return self.type in HEADING_TYPES

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "type": self.type.value,
            "level": self.level,
            "title": self.title,
            "content": self.content,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "source_detector": self.source_detector.value,
            "metadata": self.metadata.to_dict(),
            "parent_id": self.parent_id,
            "children_ids": list(self.children_ids),
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "DetectedSection") -> DetectedSection:
        parsed = expect_object(
            data,
            path,
            required={
                "id",
                "type",
                "level",
                "title",
                "content",
                "start_line",
                "end_line",
                "source_detector",
                "metadata",
            },
            optional={"parent_id", "children_ids"},
        )
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            type=as_enum(SectionType, parsed["type"], f"{path}.type"),
            level=as_int(parsed["level"], f"{path}.level", minimum=0),
            title=as_str(parsed["title"], f"{path}.title"),
            content=as_str(parsed["content"], f"{path}.content"),
            start_line=as_int(parsed["start_line"], f"{path}.start_line", minimum=0),
            end_line=as_int(parsed["end_line"], f"{path}.end_line", minimum=0),
            source_detector=as_enum(
                DetectorKind, parsed["source_detector"], f"{path}.source_detector"
            ),
            metadata=SectionMetadata.from_dict(parsed["metadata"], f"{path}.metadata"),
            parent_id=as_optional_str(parsed.get("parent_id"), f"{path}.parent_id"),
            children_ids=as_str_tuple(parsed.get("children_ids", []), f"{path}.children_ids"),
        )


@dataclass(frozen=True, slots=True)
class ExtractedMetadata:
    title: str | None = None
    author: str | None = None
    date: str | None = None
    client: str | None = None
    site_address: str | None = None
    report_type: str | None = None
    word_count: int = 0
    keywords: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "title": self.title,
            "author": self.author,
            "date": self.date,
            "client": self.client,
            "site_address": self.site_address,
            "report_type": self.report_type,
            "word_count": self.word_count,
            "keywords": list(self.keywords),
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ExtractedMetadata") -> ExtractedMetadata:
        optional_text = ("title", "author", "date", "client", "site_address", "report_type")
        parsed = expect_object(
            data, path, required=set(), optional={*optional_text, "word_count", "keywords"}
        )
        text_fields = {
            name: as_optional_str(parsed.get(name), f"{path}.{name}") for name in optional_text
        }
        return cls(
            **text_fields,
            word_count=as_int(parsed.get("word_count", 0), f"{path}.word_count", minimum=0),
            keywords=as_str_tuple(parsed.get("keywords", []), f"{path}.keywords"),
        )


@dataclass(frozen=True, slots=True)
class TerminologyEntry:
    term: str
    context: str
    frequency: int
    category: TermCategory
    confidence: float

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "term": self.term,
            "context": self.context,
            "frequency": self.frequency,
            "category": self.category.value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "TerminologyEntry") -> TerminologyEntry:
        parsed = expect_object(
            data, path, required={"term", "context", "frequency", "category", "confidence"}
        )
        return cls(
            term=as_str(parsed["term"], f"{path}.term", allow_empty=False),
            context=as_str(parsed["context"], f"{path}.context"),
            frequency=as_int(parsed["frequency"], f"{path}.frequency", minimum=1),
            category=as_enum(TermCategory, parsed["category"], f"{path}.category"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
        )


@dataclass(frozen=True, slots=True)
class ComplianceMarker:
    type: MarkerType
    text: str
    standard: str
    context: str
    confidence: float

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "type": self.type.value,
            "text": self.text,
            "standard": self.standard,
            "context": self.context,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ComplianceMarker") -> ComplianceMarker:
        parsed = expect_object(
            data, path, required={"type", "text", "standard", "context", "confidence"}
        )
        return cls(
            type=as_enum(MarkerType, parsed["type"], f"{path}.type"),
            text=as_str(parsed["text"], f"{path}.text", allow_empty=False),
            standard=as_str(parsed["standard"], f"{path}.standard", allow_empty=False),
            context=as_str(parsed["context"], f"{path}.context"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
        )


@dataclass(frozen=True, slots=True)
class HierarchyNode:
    """One structure-map entry; ``children`` holds indices into the hierarchy."""

    id: str
    type: SectionType
    level: int
    title: str
    children: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "type": self.type.value,
            "level": self.level,
            "title": self.title,
            "children": list(self.children),
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "HierarchyNode") -> HierarchyNode:
        parsed = expect_object(data, path, required={"id", "type", "level", "title", "children"})
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            type=as_enum(SectionType, parsed["type"], f"{path}.type"),
            level=as_int(parsed["level"], f"{path}.level", minimum=0),
            title=as_str(parsed["title"], f"{path}.title"),
            children=tuple(
                as_int(item, f"{path}.children[{index}]", minimum=0)
                for index, item in enumerate(as_list(parsed["children"], f"{path}.children"))
            ),
        )


@dataclass(frozen=True, slots=True)
class StructureMap:
    hierarchy: tuple[HierarchyNode, ...] = ()
    depth: int = 0
    section_count: int = 0
    average_section_length: float = 0.0
    has_appendices: bool = False
    has_methodology: bool = False
    has_legal_sections: bool = False

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "hierarchy": [node.to_dict() for node in self.hierarchy],
            "depth": self.depth,
            "section_count": self.section_count,
            "average_section_length": self.average_section_length,
            "has_appendices": self.has_appendices,
            "has_methodology": self.has_methodology,
            "has_legal_sections": self.has_legal_sections,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "StructureMap") -> StructureMap:
        parsed = expect_object(
            data,
            path,
            required={
                "hierarchy",
                "depth",
                "section_count",
                "average_section_length",
                "has_appendices",
                "has_methodology",
                "has_legal_sections",
            },
        )
        return cls(
            hierarchy=tuple(
                HierarchyNode.from_dict(item, f"{path}.hierarchy[{index}]")
                for index, item in enumerate(as_list(parsed["hierarchy"], f"{path}.hierarchy"))
            ),
            depth=as_int(parsed["depth"], f"{path}.depth", minimum=0),
            section_count=as_int(parsed["section_count"], f"{path}.section_count", minimum=0),
            average_section_length=as_float(
                parsed["average_section_length"], f"{path}.average_section_length", minimum=0
            ),
            has_appendices=as_bool(parsed["has_appendices"], f"{path}.has_appendices"),
            has_methodology=as_bool(parsed["has_methodology"], f"{path}.has_methodology"),
            has_legal_sections=as_bool(parsed["has_legal_sections"], f"{path}.has_legal_sections"),
        )


@dataclass(frozen=True, slots=True)
class DetectorSummary:
    """Count and confidence for one detector; ``confidence`` is ``None`` when it failed."""

    count: int = 0
    confidence: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.confidence is not None

    def to_dict(self) -> dict[str, JSONValue]:
        return {"count": self.count, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: object, path: str = "DetectorSummary") -> DetectorSummary:
        parsed = expect_object(data, path, required={"count", "confidence"})
        return cls(
            count=as_int(parsed["count"], f"{path}.count", minimum=0),
            confidence=as_optional_float(parsed["confidence"], f"{path}.confidence"),
        )


@dataclass(frozen=True, slots=True)
class DetectorResults:
    headings: DetectorSummary = field(default_factory=DetectorSummary)
    sections: DetectorSummary = field(default_factory=DetectorSummary)
    lists: DetectorSummary = field(default_factory=DetectorSummary)
    tables: DetectorSummary = field(default_factory=DetectorSummary)
    metadata: DetectorSummary = field(default_factory=DetectorSummary)
    terminology: DetectorSummary = field(default_factory=DetectorSummary)
    compliance: DetectorSummary = field(default_factory=DetectorSummary)
    appendices: DetectorSummary = field(default_factory=DetectorSummary)

    def get(self, kind: DetectorKind) -> DetectorSummary:
        summary: DetectorSummary = getattr(self, kind.value)
        return summary

    def items(self) -> tuple[tuple[DetectorKind, DetectorSummary], ...]:
        return tuple((kind, self.get(kind)) for kind in DETECTOR_ORDER)

    def to_dict(self) -> dict[str, JSONValue]:
        return {kind.value: summary.to_dict() for kind, summary in self.items()}

    @classmethod
    def from_dict(cls, data: object, path: str = "DetectorResults") -> DetectorResults:
        names = {kind.value for kind in DETECTOR_ORDER}
        parsed = expect_object(data, path, required=names)
        return cls(
            **{name: DetectorSummary.from_dict(parsed[name], f"{path}.{name}") for name in names}
        )


@dataclass(frozen=True, slots=True)
class DecompiledReport:
    """Aggregate root for one ingested document; immutable once returned."""

    id: str
    source_hash: str
    raw_text: str
    normalized_text: str
    input_format: InputFormat
    sections: tuple[DetectedSection, ...]
    metadata: ExtractedMetadata
    terminology: tuple[TerminologyEntry, ...]
    compliance_markers: tuple[ComplianceMarker, ...]
    structure_map: StructureMap
    detector_results: DetectorResults
    confidence_score: float
    detected_report_type: str | None = None
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    processing_time_ms: int = 0
    created_at: datetime = field(default_factory=utc_now)
    processed_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(
                f"DecompiledReport.confidence_score must be in [0, 1], got {self.confidence_score}"
            )
        if not is_sha256_hex(self.source_hash):
            raise ValueError("DecompiledReport.source_hash must be a SHA-256 hex digest")

    def sections_by_detector(self, kind: DetectorKind) -> tuple[DetectedSection, ...]:
        """Filter the overlapping section multiset down to one detector's output."""

        return tuple(section for section in self.sections if section.source_detector is kind)

    def section_by_id(self, section_id: str) -> DetectedSection | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "source_hash": self.source_hash,
            "raw_text": self.raw_text,
            "normalized_text": self.normalized_text,
            "input_format": self.input_format.value,
            "detected_report_type": self.detected_report_type,
            "sections": [section.to_dict() for section in self.sections],
            "metadata": self.metadata.to_dict(),
            "terminology": [entry.to_dict() for entry in self.terminology],
            "compliance_markers": [marker.to_dict() for marker in self.compliance_markers],
            "structure_map": self.structure_map.to_dict(),
            "detector_results": self.detector_results.to_dict(),
            "confidence_score": self.confidence_score,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "processing_time_ms": self.processing_time_ms,
            "created_at": iso8601z(self.created_at),
            "processed_at": iso8601z(self.processed_at),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: object) -> DecompiledReport:
        path = "DecompiledReport"
        parsed = expect_object(
            data,
            path,
            required={
                "id",
                "source_hash",
                "raw_text",
                "normalized_text",
                "input_format",
                "sections",
                "metadata",
                "terminology",
                "compliance_markers",
                "structure_map",
                "detector_results",
                "confidence_score",
                "created_at",
                "processed_at",
            },
            optional={"detected_report_type", "warnings", "errors", "processing_time_ms"},
        )
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            source_hash=as_str(parsed["source_hash"], f"{path}.source_hash", allow_empty=False),
            raw_text=as_str(parsed["raw_text"], f"{path}.raw_text"),
            normalized_text=as_str(parsed["normalized_text"], f"{path}.normalized_text"),
            input_format=as_enum(InputFormat, parsed["input_format"], f"{path}.input_format"),
            detected_report_type=as_optional_str(
                parsed.get("detected_report_type"), f"{path}.detected_report_type"
            ),
            sections=tuple(
                DetectedSection.from_dict(item, f"{path}.sections[{index}]")
                for index, item in enumerate(as_list(parsed["sections"], f"{path}.sections"))
            ),
            metadata=ExtractedMetadata.from_dict(parsed["metadata"], f"{path}.metadata"),
            terminology=tuple(
                TerminologyEntry.from_dict(item, f"{path}.terminology[{index}]")
                for index, item in enumerate(as_list(parsed["terminology"], f"{path}.terminology"))
            ),
            compliance_markers=tuple(
                ComplianceMarker.from_dict(item, f"{path}.compliance_markers[{index}]")
                for index, item in enumerate(
                    as_list(parsed["compliance_markers"], f"{path}.compliance_markers")
                )
            ),
            structure_map=StructureMap.from_dict(parsed["structure_map"], f"{path}.structure_map"),
            detector_results=DetectorResults.from_dict(
                parsed["detector_results"], f"{path}.detector_results"
            ),
            confidence_score=as_float(
                parsed["confidence_score"], f"{path}.confidence_score", minimum=0, maximum=1
            ),
            warnings=as_str_tuple(parsed.get("warnings", []), f"{path}.warnings"),
            errors=as_str_tuple(parsed.get("errors", []), f"{path}.errors"),
            processing_time_ms=as_int(
                parsed.get("processing_time_ms", 0), f"{path}.processing_time_ms", minimum=0
            ),
            created_at=as_utc_datetime(parsed["created_at"], f"{path}.created_at"),
            processed_at=as_utc_datetime(parsed["processed_at"], f"{path}.processed_at"),
        )

    @classmethod
    def from_json(cls, raw: str) -> DecompiledReport:
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"DecompiledReport: invalid JSON: {exc}") from exc
        return cls.from_dict(parsed)


__all__ = [
    "DETECTOR_ORDER",
    "HEADING_TYPES",
    "MAX_HEADING_LEVEL",
    "ComplianceMarker",
    "DecompiledReport",
    "DetectedSection",
    "DetectorKind",
    "DetectorResults",
    "DetectorSummary",
    "ExtractedMetadata",
    "HierarchyNode",
    "InputFormat",
    "MarkerType",
    "SectionMetadata",
    "SectionType",
    "StructureMap",
    "TermCategory",
    "TerminologyEntry",
]
