"""
report-intelligence — error taxonomy

File: src/report_intelligence/errors.py

Purpose
- Single root exception for every failure the package raises deliberately.

Functional requirements
- Fatal pre-pipeline and pre-validation failures carry the context a caller needs
  to report them (input format, text length, offending payload path).
- Configuration and persistence errors keep their conventional builtin bases
  (``ValueError`` / ``RuntimeError``) so existing ``except`` clauses still match.
"""

from __future__ import annotations

from collections.abc import Sequence


class ReportIntelligenceError(Exception):
    """Base class for all report-intelligence errors."""


class DecompilationError(ReportIntelligenceError, ValueError):
    """Raised when raw input is rejected before any detector runs."""

    def __init__(self, message: str, *, input_format: object, text_length: int | None) -> None:
        super().__init__(message)
        self.input_format = input_format
        self.text_length = text_length

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (input_format={self.input_format!r}, text_length={self.text_length})"


class ValidationInputError(ReportIntelligenceError, ValueError):
    """Raised when the validation engine receives something that is not a mapping result."""


class RuleConfigurationError(ReportIntelligenceError, ValueError):
    """Raised for duplicate/unknown rule ids or, in strict mode, rules without an evaluator."""


class UnknownReportTypeError(ReportIntelligenceError, KeyError):
    """Raised when a report-type id is not registered."""

    def __init__(self, type_id: str) -> None:
        super().__init__(type_id)
        self.type_id = type_id

    def __str__(self) -> str:
        return f"report type {self.type_id!r} not found"


class ReportTypeDefinitionError(ReportIntelligenceError, ValueError):
    """Raised when a report-type definition is invalid; ``problems`` lists every issue."""

    def __init__(self, message: str, problems: tuple[str, ...] | list[str] = ()) -> None:
        self.problems = tuple(problems)
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)


class ConfigLoadError(ReportIntelligenceError, ValueError):
    """Raised when a configuration file cannot be read or parsed."""


class ConfigValidationError(ReportIntelligenceError, ValueError):
    """Raised when merged configuration fails validation; ``issues`` lists each problem."""

    def __init__(self, issues: Sequence[object]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class StateDBError(ReportIntelligenceError, RuntimeError):
    """Base class for persistence database errors."""


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
]
