"""Schema-mapping result model: mapped fields, gaps and mapping scores."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TypeVar

from report_intelligence.domain._coerce import (
    JSONValue,
    as_bool,
    as_enum,
    as_float,
    as_int,
    as_list,
    as_optional_str,
    as_str,
    as_str_tuple,
    as_utc_datetime,
    expect_object,
    iso8601z,
    utc_now,
)
from report_intelligence.domain.report import TermCategory

_T = TypeVar("_T")


class FieldType(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    SECTION = "section"


class MappingMethod(StrEnum):
    EXACT_MATCH = "exact_match"
    FUZZY_MATCH = "fuzzy_match"
    INFERRED = "inferred"


class UnmappedReason(StrEnum):
    NO_MATCHING_FIELD = "no_matching_field"
    LOW_CONFIDENCE = "low_confidence"


class MissingReason(StrEnum):
    NOT_PRESENT = "not_present"
    EMPTY = "empty"
    CONDITIONAL_NOT_MET = "conditional_not_met"


class SectionPurpose(StrEnum):
    INTRODUCTORY_CONTENT = "introductory_content"
    METHODOLOGY_DESCRIPTION = "methodology_description"
    RESULTS_PRESENTATION = "results_presentation"
    CONCLUSIONS_RECOMMENDATIONS = "conclusions_recommendations"
    REFERENCES = "references"
    APPENDIX_MATERIAL = "appendix_material"
    DATA_TABLE = "data_table"
    VISUAL_CONTENT = "visual_content"
    GENERAL_CONTENT = "general_content"


class SuggestedAction(StrEnum):
    IGNORE = "ignore"
    ADD_TO_SCHEMA = "add_to_schema"
    MAP_TO_EXISTING = "map_to_existing"
    FLAG_FOR_REVIEW = "flag_for_review"


class GapType(StrEnum):
    MISSING_FIELD = "missing_field"
    MISSING_SECTION = "missing_section"
    UNKNOWN_SECTION = "unknown_section"
    UNKNOWN_TERMINOLOGY = "unknown_terminology"
    UNSUPPORTED_STRUCTURE = "unsupported_structure"
    MISMATCHED_SCHEMA = "mismatched_schema"


class GapSeverity(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True, slots=True)
class MappedField:
    field_id: str
    field_name: str
    field_type: FieldType
    source_section_id: str
    source_section_title: str
    mapped_value: str
    mapping_confidence: float
    mapping_method: MappingMethod
    notes: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "field_id": self.field_id,
            "field_name": self.field_name,
            "field_type": self.field_type.value,
            "source_section_id": self.source_section_id,
            "source_section_title": self.source_section_title,
            "mapped_value": self.mapped_value,
            "mapping_confidence": self.mapping_confidence,
            "mapping_method": self.mapping_method.value,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "MappedField") -> MappedField:
        parsed = expect_object(
            data,
            path,
            required={
                "field_id",
                "field_name",
                "field_type",
                "source_section_id",
                "source_section_title",
                "mapped_value",
                "mapping_confidence",
                "mapping_method",
            },
            optional={"notes"},
        )
        return cls(
            field_id=as_str(parsed["field_id"], f"{path}.field_id", allow_empty=False),
            field_name=as_str(parsed["field_name"], f"{path}.field_name"),
            field_type=as_enum(FieldType, parsed["field_type"], f"{path}.field_type"),
            source_section_id=as_str(parsed["source_section_id"], f"{path}.source_section_id"),
            source_section_title=as_str(
                parsed["source_section_title"], f"{path}.source_section_title"
            ),
            mapped_value=as_str(parsed["mapped_value"], f"{path}.mapped_value"),
            mapping_confidence=as_float(
                parsed["mapping_confidence"], f"{path}.mapping_confidence", minimum=0, maximum=1
            ),
            mapping_method=as_enum(
                MappingMethod, parsed["mapping_method"], f"{path}.mapping_method"
            ),
            notes=as_optional_str(parsed.get("notes"), f"{path}.notes"),
        )


@dataclass(frozen=True, slots=True)
class UnmappedSection:
    section_id: str
    section_title: str
    section_type: str
    content_preview: str
    reason: UnmappedReason
    confidence: float
    suggested_field_id: str | None = None
    suggested_field_name: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "section_id": self.section_id,
            "section_title": self.section_title,
            "section_type": self.section_type,
            "content_preview": self.content_preview,
            "reason": self.reason.value,
            "confidence": self.confidence,
            "suggested_field_id": self.suggested_field_id,
            "suggested_field_name": self.suggested_field_name,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "UnmappedSection") -> UnmappedSection:
        parsed = expect_object(
            data,
            path,
            required={
                "section_id",
                "section_title",
                "section_type",
                "content_preview",
                "reason",
                "confidence",
            },
            optional={"suggested_field_id", "suggested_field_name"},
        )
        return cls(
            section_id=as_str(parsed["section_id"], f"{path}.section_id", allow_empty=False),
            section_title=as_str(parsed["section_title"], f"{path}.section_title"),
            section_type=as_str(parsed["section_type"], f"{path}.section_type"),
            content_preview=as_str(parsed["content_preview"], f"{path}.content_preview"),
            reason=as_enum(UnmappedReason, parsed["reason"], f"{path}.reason"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
            suggested_field_id=as_optional_str(
                parsed.get("suggested_field_id"), f"{path}.suggested_field_id"
            ),
            suggested_field_name=as_optional_str(
                parsed.get("suggested_field_name"), f"{path}.suggested_field_name"
            ),
        )


@dataclass(frozen=True, slots=True)
class MissingRequiredSection:
    section_id: str
    section_name: str
    description: str
    reason: MissingReason = MissingReason.NOT_PRESENT
    required: bool = True
    suggested_content: str | None = None
    ai_guidance: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "section_id": self.section_id,
            "section_name": self.section_name,
            "description": self.description,
            "reason": self.reason.value,
            "required": self.required,
            "suggested_content": self.suggested_content,
            "ai_guidance": self.ai_guidance,
        }

    @classmethod
    def from_dict(
        cls, data: object, path: str = "MissingRequiredSection"
    ) -> MissingRequiredSection:
        parsed = expect_object(
            data,
            path,
            required={"section_id", "section_name", "description"},
            optional={"reason", "required", "suggested_content", "ai_guidance"},
        )
        return cls(
            section_id=as_str(parsed["section_id"], f"{path}.section_id", allow_empty=False),
            section_name=as_str(parsed["section_name"], f"{path}.section_name"),
            description=as_str(parsed["description"], f"{path}.description"),
            reason=as_enum(
                MissingReason,
                parsed.get("reason", MissingReason.NOT_PRESENT.value),
                f"{path}.reason",
            ),
            required=as_bool(parsed.get("required", True), f"{path}.required"),
            suggested_content=as_optional_str(
                parsed.get("suggested_content"), f"{path}.suggested_content"
            ),
            ai_guidance=as_optional_str(parsed.get("ai_guidance"), f"{path}.ai_guidance"),
        )


@dataclass(frozen=True, slots=True)
class ExtraSection:
    section_id: str
    section_title: str
    section_type: str
    content_preview: str
    potential_purpose: SectionPurpose
    suggested_action: SuggestedAction = SuggestedAction.FLAG_FOR_REVIEW
    confidence: float = 0.5

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "section_id": self.section_id,
            "section_title": self.section_title,
            "section_type": self.section_type,
            "content_preview": self.content_preview,
            "potential_purpose": self.potential_purpose.value,
            "suggested_action": self.suggested_action.value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "ExtraSection") -> ExtraSection:
        parsed = expect_object(
            data,
            path,
            required={
                "section_id",
                "section_title",
                "section_type",
                "content_preview",
                "potential_purpose",
            },
            optional={"suggested_action", "confidence"},
        )
        return cls(
            section_id=as_str(parsed["section_id"], f"{path}.section_id", allow_empty=False),
            section_title=as_str(parsed["section_title"], f"{path}.section_title"),
            section_type=as_str(parsed["section_type"], f"{path}.section_type"),
            content_preview=as_str(parsed["content_preview"], f"{path}.content_preview"),
            potential_purpose=as_enum(
                SectionPurpose, parsed["potential_purpose"], f"{path}.potential_purpose"
            ),
            suggested_action=as_enum(
                SuggestedAction,
                parsed.get("suggested_action", SuggestedAction.FLAG_FOR_REVIEW.value),
                f"{path}.suggested_action",
            ),
            confidence=as_float(
                parsed.get("confidence", 0.5), f"{path}.confidence", minimum=0, maximum=1
            ),
        )


@dataclass(frozen=True, slots=True)
class UnknownTerm:
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
    def from_dict(cls, data: object, path: str = "UnknownTerm") -> UnknownTerm:
        parsed = expect_object(
            data, path, required={"term", "context", "frequency", "category", "confidence"}
        )
        return cls(
            term=as_str(parsed["term"], f"{path}.term", allow_empty=False),
            context=as_str(parsed["context"], f"{path}.context"),
            frequency=as_int(parsed["frequency"], f"{path}.frequency", minimum=0),
            category=as_enum(TermCategory, parsed["category"], f"{path}.category"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
        )


@dataclass(frozen=True, slots=True)
class SchemaGap:
    gap_id: str
    type: GapType
    description: str
    severity: GapSeverity
    suggested_fix: str
    confidence: float
    data: dict[str, JSONValue] = field(default_factory=dict)
    affected_section_id: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "gap_id": self.gap_id,
            "type": self.type.value,
            "description": self.description,
            "severity": self.severity.value,
            "suggested_fix": self.suggested_fix,
            "confidence": self.confidence,
            "data": dict(self.data),
            "affected_section_id": self.affected_section_id,
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "SchemaGap") -> SchemaGap:
        parsed = expect_object(
            data,
            path,
            required={"gap_id", "type", "description", "severity", "suggested_fix", "confidence"},
            optional={"data", "affected_section_id"},
        )
        extra = parsed.get("data", {})
        if not isinstance(extra, dict):
            raise ValueError(f"{path}.data: expected object, got {type(extra).__name__}")
        return cls(
            gap_id=as_str(parsed["gap_id"], f"{path}.gap_id", allow_empty=False),
            type=as_enum(GapType, parsed["type"], f"{path}.type"),
            description=as_str(parsed["description"], f"{path}.description"),
            severity=as_enum(GapSeverity, parsed["severity"], f"{path}.severity"),
            suggested_fix=as_str(parsed["suggested_fix"], f"{path}.suggested_fix"),
            confidence=as_float(parsed["confidence"], f"{path}.confidence", minimum=0, maximum=1),
            data=dict(extra),
            affected_section_id=as_optional_str(
                parsed.get("affected_section_id"), f"{path}.affected_section_id"
            ),
        )


@dataclass(frozen=True, slots=True)
class SchemaMappingResult:
    """Output of the schema mapper and sole input of the validation engine."""

    id: str
    decompiled_report_id: str
    report_type_id: str | None = None
    report_type_name: str | None = None
    mapped_fields: tuple[MappedField, ...] = ()
    unmapped_sections: tuple[UnmappedSection, ...] = ()
    missing_required_sections: tuple[MissingRequiredSection, ...] = ()
    extra_sections: tuple[ExtraSection, ...] = ()
    unknown_terminology: tuple[UnknownTerm, ...] = ()
    schema_gaps: tuple[SchemaGap, ...] = ()
    confidence_score: float = 0.0
    mapping_coverage: int = 0
    completeness_score: int = 100
    processing_time_ms: int = 0
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError("SchemaMappingResult.confidence_score must be in [0, 1]")
        for name in ("mapping_coverage", "completeness_score"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"SchemaMappingResult.{name} must be in [0, 100], got {value}")

    def gaps_of_type(self, gap_type: GapType) -> tuple[SchemaGap, ...]:
        return tuple(gap for gap in self.schema_gaps if gap.type is gap_type)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "decompiled_report_id": self.decompiled_report_id,
            "report_type_id": self.report_type_id,
            "report_type_name": self.report_type_name,
            "mapped_fields": [item.to_dict() for item in self.mapped_fields],
            "unmapped_sections": [item.to_dict() for item in self.unmapped_sections],
            "missing_required_sections": [
                item.to_dict() for item in self.missing_required_sections
            ],
            "extra_sections": [item.to_dict() for item in self.extra_sections],
            "unknown_terminology": [item.to_dict() for item in self.unknown_terminology],
            "schema_gaps": [item.to_dict() for item in self.schema_gaps],
            "confidence_score": self.confidence_score,
            "mapping_coverage": self.mapping_coverage,
            "completeness_score": self.completeness_score,
            "processing_time_ms": self.processing_time_ms,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "created_at": iso8601z(self.created_at),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: object) -> SchemaMappingResult:
        path = "SchemaMappingResult"
        parsed = expect_object(
            data,
            path,
            required={"id", "decompiled_report_id"},
            optional={
                "report_type_id",
                "report_type_name",
                "mapped_fields",
                "unmapped_sections",
                "missing_required_sections",
                "extra_sections",
                "unknown_terminology",
                "schema_gaps",
                "confidence_score",
                "mapping_coverage",
                "completeness_score",
                "processing_time_ms",
                "warnings",
                "errors",
                "created_at",
            },
        )

        created_raw = parsed.get("created_at")
        return cls(
            id=as_str(parsed["id"], f"{path}.id", allow_empty=False),
            decompiled_report_id=as_str(
                parsed["decompiled_report_id"], f"{path}.decompiled_report_id", allow_empty=False
            ),
            report_type_id=as_optional_str(parsed.get("report_type_id"), f"{path}.report_type_id"),
            report_type_name=as_optional_str(
                parsed.get("report_type_name"), f"{path}.report_type_name"
            ),
            mapped_fields=_parse_items(parsed, "mapped_fields", path, MappedField.from_dict),
            unmapped_sections=_parse_items(
                parsed, "unmapped_sections", path, UnmappedSection.from_dict
            ),
            missing_required_sections=_parse_items(
                parsed, "missing_required_sections", path, MissingRequiredSection.from_dict
            ),
            extra_sections=_parse_items(parsed, "extra_sections", path, ExtraSection.from_dict),
            unknown_terminology=_parse_items(
                parsed, "unknown_terminology", path, UnknownTerm.from_dict
            ),
            schema_gaps=_parse_items(parsed, "schema_gaps", path, SchemaGap.from_dict),
            confidence_score=as_float(
                parsed.get("confidence_score", 0.0),
                f"{path}.confidence_score",
                minimum=0,
                maximum=1,
            ),
            mapping_coverage=as_int(
                parsed.get("mapping_coverage", 0), f"{path}.mapping_coverage", minimum=0
            ),
            completeness_score=as_int(
                parsed.get("completeness_score", 100), f"{path}.completeness_score", minimum=0
            ),
            processing_time_ms=as_int(
                parsed.get("processing_time_ms", 0), f"{path}.processing_time_ms", minimum=0
            ),
            warnings=as_str_tuple(parsed.get("warnings", []), f"{path}.warnings"),
            errors=as_str_tuple(parsed.get("errors", []), f"{path}.errors"),
            created_at=utc_now()
            if created_raw is None
            else as_utc_datetime(created_raw, f"{path}.created_at"),
        )

    @classmethod
    def from_json(cls, raw: str) -> SchemaMappingResult:
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"SchemaMappingResult: invalid JSON: {exc}") from exc
        return cls.from_dict(parsed)


def _parse_items(
    parsed: dict[str, object],
    key: str,
    path: str,
    parser: Callable[[object, str], _T],
) -> tuple[_T, ...]:
    return tuple(
        parser(item, f"{path}.{key}[{index}]")
        for index, item in enumerate(as_list(parsed.get(key, []), f"{path}.{key}"))
    )


__all__ = [
    "ExtraSection",
    "FieldType",
    "GapSeverity",
    "GapType",
    "MappedField",
    "MappingMethod",
    "MissingReason",
    "MissingRequiredSection",
    "SchemaGap",
    "SchemaMappingResult",
    "SectionPurpose",
    "SuggestedAction",
    "UnknownTerm",
    "UnmappedReason",
    "UnmappedSection",
]
