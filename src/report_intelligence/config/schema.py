"""
report-intelligence — configuration schema and validation.

File: src/report_intelligence/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules.

Functional requirements
- Validate config payloads and return structured issues (field path + message).
- Unknown sections and fields are rejected rather than ignored.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict

from report_intelligence.errors import ConfigValidationError

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("storage", "state_db"),
    ("validation", "rules_file"),
    ("observability", "log_dir"),
)
PATH_LIST_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("registry", "extra_dirs"),)


class StorageConfig(TypedDict):
    state_db: str
    persist_results: bool


class RegistryConfig(TypedDict):
    load_builtin: bool
    extra_dirs: list[str]


class ValidationConfig(TypedDict):
    strict_evaluators: bool
    rules_file: str


class ObservabilityConfig(TypedDict):
    log_level: str
    log_format: str
    log_dir: str
    log_to_stdout: bool


class ReportIntelligenceConfig(TypedDict):
    storage: StorageConfig
    registry: RegistryConfig
    validation: ValidationConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ReportIntelligenceConfig] = {
    "storage": {
        "state_db": "state/report_intelligence.sqlite3",
        "persist_results": False,
    },
    "registry": {
        "load_builtin": True,
        "extra_dirs": [],
    },
    "validation": {
        "strict_evaluators": False,
        "rules_file": "",
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "json",
        "log_dir": "logs",
        "log_to_stdout": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> ReportIntelligenceConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``; lists are replaced."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    sections = {
        "storage": _validate_storage,
        "registry": _validate_registry,
        "validation": _validate_validation,
        "observability": _validate_observability,
    }
    _reject_unknown_keys(root, set(sections), "", issues)

    normalized: dict[str, Any] = {}
    for name, validator in sections.items():
        if name not in root:
            issues.add(name, "missing required section")
            continue
        section = _as_object(root[name], name, issues)
        if section is not None:
            normalized[name] = validator(section, name, issues)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_storage(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"state_db", "persist_results"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "state_db" in payload:
        parsed = _as_path_text(payload["state_db"], _join(path, "state_db"), issues)
        if parsed is not None:
            out["state_db"] = parsed
    if "persist_results" in payload:
        persist = _as_bool(payload["persist_results"], _join(path, "persist_results"), issues)
        if persist is not None:
            out["persist_results"] = persist
    return out


def _validate_registry(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"load_builtin", "extra_dirs"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "load_builtin" in payload:
        load_builtin = _as_bool(payload["load_builtin"], _join(path, "load_builtin"), issues)
        if load_builtin is not None:
            out["load_builtin"] = load_builtin
    if "extra_dirs" in payload:
        raw_dirs = payload["extra_dirs"]
        dirs_path = _join(path, "extra_dirs")
        if not isinstance(raw_dirs, Sequence) or isinstance(raw_dirs, str):
            issues.add(dirs_path, f"expected list, got {type(raw_dirs).__name__}")
        else:
            parsed_dirs = [
                _as_path_text(item, f"{dirs_path}[{index}]", issues)
                for index, item in enumerate(raw_dirs)
            ]
            out["extra_dirs"] = [item for item in parsed_dirs if item is not None]
    return out


def _validate_validation(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"strict_evaluators", "rules_file"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "strict_evaluators" in payload:
        strict = _as_bool(payload["strict_evaluators"], _join(path, "strict_evaluators"), issues)
        if strict is not None:
            out["strict_evaluators"] = strict
    if "rules_file" in payload:
        rules_file = _as_optional_path_text(
            payload["rules_file"], _join(path, "rules_file"), issues
        )
        if rules_file is not None:
            out["rules_file"] = rules_file
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_format", "log_dir", "log_to_stdout"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        level = payload["log_level"]
        parsed_level = _as_enum(
            level.upper() if isinstance(level, str) else level,
            _join(path, "log_level"),
            issues,
            allowed_values=LOG_LEVELS,
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level
    if "log_format" in payload:
        parsed_format = _as_enum(
            payload["log_format"], _join(path, "log_format"), issues, allowed_values=LOG_FORMATS
        )
        if parsed_format is not None:
            out["log_format"] = parsed_format
    if "log_dir" in payload:
        log_dir = _as_optional_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if log_dir is not None:
            out["log_dir"] = log_dir
    if "log_to_stdout" in payload:
        to_stdout = _as_bool(payload["log_to_stdout"], _join(path, "log_to_stdout"), issues)
        if to_stdout is not None:
            out["log_to_stdout"] = to_stdout
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_optional_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    """Like ``_as_path_text`` but an empty string means "unset" and is kept as ``""``."""

    if isinstance(value, str) and not value.strip():
        return ""
    return _as_path_text(value, path, issues)


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(value[key]) for key in sorted(value)}


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "PATH_LIST_FIELDS",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ObservabilityConfig",
    "RegistryConfig",
    "ReportIntelligenceConfig",
    "StorageConfig",
    "ValidationConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
