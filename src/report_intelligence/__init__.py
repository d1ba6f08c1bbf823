"""
report-intelligence — package root

File: src/report_intelligence/__init__.py

Purpose
- Package root. Decompiles unstructured report text into a structured model, maps it
  onto registered report types and validates the mapping against weighted rules.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
- Heavy submodules are imported by callers directly, e.g.
  ``from report_intelligence.pipeline import ReportIntelligencePipeline``.
"""

from report_intelligence.errors import (
    ConfigLoadError,
    ConfigValidationError,
    DecompilationError,
    ReportIntelligenceError,
    ReportTypeDefinitionError,
    RuleConfigurationError,
    StateDBError,
    UnknownReportTypeError,
    ValidationInputError,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "DecompilationError",
    "ReportIntelligenceError",
    "ReportTypeDefinitionError",
    "RuleConfigurationError",
    "StateDBError",
    "UnknownReportTypeError",
    "ValidationInputError",
    "__version__",
]
