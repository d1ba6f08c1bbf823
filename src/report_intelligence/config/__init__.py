"""
report-intelligence config package public API.

File: src/report_intelligence/config/__init__.py

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``report_intelligence.toml`` + ``RI_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from report_intelligence.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    dump_effective_config,
    load_config,
    normalize_paths,
)
from report_intelligence.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    PATH_LIST_FIELDS,
    ConfigValidationIssue,
    ConfigValidationResult,
    ReportIntelligenceConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)
from report_intelligence.errors import ConfigLoadError, ConfigValidationError

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PATH_FIELDS",
    "PATH_LIST_FIELDS",
    "ReportIntelligenceConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "normalize_paths",
    "validate_config",
]
