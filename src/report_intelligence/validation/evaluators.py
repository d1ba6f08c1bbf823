"""Pass/fail predicates for the built-in rules, keyed by rule type and rule id."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Final

from report_intelligence.domain.mapping import GapType, SchemaMappingResult
from report_intelligence.domain.validation import RuleType

Evaluator = Callable[[SchemaMappingResult], bool]
EvaluatorKey = tuple[RuleType, str]

MIN_TITLE_LENGTH: Final[int] = 3
MIN_CONTENT_LENGTH: Final[int] = 50
MAX_SCHEMA_GAPS: Final[int] = 3
MAX_INCONSISTENT_TERMS: Final[int] = 5
MAX_NONSTANDARD_TERMS: Final[int] = 3


def required_sections_present(mapping: SchemaMappingResult) -> bool:
    return not mapping.missing_required_sections


def compliance_standard_references(mapping: SchemaMappingResult) -> bool:
    return len(mapping.schema_gaps) < MAX_SCHEMA_GAPS


def section_clarity(mapping: SchemaMappingResult) -> bool:
    return not any(
        len(item.field_name) < MIN_TITLE_LENGTH or item.field_name == "Untitled"
        for item in mapping.mapped_fields
    )


def terminology_consistency(mapping: SchemaMappingResult) -> bool:
    return len(mapping.unknown_terminology) < MAX_INCONSISTENT_TERMS


def section_completeness(mapping: SchemaMappingResult) -> bool:
    # Only string payloads are length-checked.
    return not any(
        isinstance(item.mapped_value, str) and len(item.mapped_value) < MIN_CONTENT_LENGTH
        for item in mapping.mapped_fields
    )


def date_consistency(mapping: SchemaMappingResult) -> bool:
    return not mapping.gaps_of_type(GapType.MISMATCHED_SCHEMA)


def standard_terminology(mapping: SchemaMappingResult) -> bool:
    return len(mapping.unknown_terminology) < MAX_NONSTANDARD_TERMS


EVALUATORS: Final[Mapping[EvaluatorKey, Evaluator]] = MappingProxyType(
    {
        (RuleType.COMPLIANCE, "comp_001"): required_sections_present,
        (RuleType.COMPLIANCE, "comp_002"): compliance_standard_references,
        (RuleType.QUALITY, "qual_001"): section_clarity,
        (RuleType.QUALITY, "qual_002"): terminology_consistency,
        (RuleType.COMPLETENESS, "comp_003"): section_completeness,
        (RuleType.CONSISTENCY, "cons_001"): date_consistency,
        (RuleType.TERMINOLOGY, "term_001"): standard_terminology,
    }
)


__all__ = [
    "EVALUATORS",
    "Evaluator",
    "EvaluatorKey",
    "compliance_standard_references",
    "date_consistency",
    "required_sections_present",
    "section_clarity",
    "section_completeness",
    "standard_terminology",
    "terminology_consistency",
]
