"""Report-type registry and its packaged definitions."""

from report_intelligence.registry.report_types import (
    BUILTIN_DIR,
    ComplianceRuleDefinition,
    ConditionalLogic,
    ConditionType,
    ReportTypeDefinition,
    ReportTypeRegistry,
    SectionDefinition,
    StructureValidation,
)

__all__ = [
    "BUILTIN_DIR",
    "ComplianceRuleDefinition",
    "ConditionType",
    "ConditionalLogic",
    "ReportTypeDefinition",
    "ReportTypeRegistry",
    "SectionDefinition",
    "StructureValidation",
]
