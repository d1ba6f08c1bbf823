"""
report-intelligence — domain layer

File: src/report_intelligence/domain/__init__.py

Purpose
- Typed, immutable models shared by the decompiler, schema mapper, validation
  engine and persistence layer.

Functional requirements
- Domain objects serialize with ``to_dict`` and parse with ``from_dict``.

Non-functional requirements
- Domain layer is free of IO side effects and has no third-party dependencies.
"""

from report_intelligence.domain.events import EventType, PipelineEvent
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
    UnmappedSection,
)
from report_intelligence.domain.report import (
    ComplianceMarker,
    DecompiledReport,
    DetectedSection,
    DetectorKind,
    DetectorResults,
    DetectorSummary,
    ExtractedMetadata,
    HierarchyNode,
    InputFormat,
    MarkerType,
    SectionMetadata,
    SectionType,
    StructureMap,
    TermCategory,
    TerminologyEntry,
)
from report_intelligence.domain.validation import (
    ComplianceViolation,
    MappingSnapshot,
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

__all__ = [
    "ComplianceMarker",
    "ComplianceViolation",
    "DecompiledReport",
    "DetectedSection",
    "DetectorKind",
    "DetectorResults",
    "DetectorSummary",
    "EventType",
    "ExtraSection",
    "ExtractedMetadata",
    "FieldType",
    "GapSeverity",
    "GapType",
    "HierarchyNode",
    "InputFormat",
    "MappedField",
    "MappingSnapshot",
    "MappingMethod",
    "MarkerType",
    "MissingRequiredSection",
    "PipelineEvent",
    "QualityIssue",
    "ReportTypeSnapshot",
    "RuleType",
    "SchemaGap",
    "SchemaMappingResult",
    "SectionMetadata",
    "SectionPurpose",
    "SectionType",
    "Severity",
    "StructureMap",
    "TermCategory",
    "TerminologyEntry",
    "UnknownTerm",
    "UnmappedSection",
    "ValidationFinding",
    "ValidationResult",
    "ValidationRule",
    "ValidationScores",
    "ValidationStatus",
]
