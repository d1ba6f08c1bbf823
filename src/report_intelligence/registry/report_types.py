"""
report-intelligence — report-type registry

File: src/report_intelligence/registry/report_types.py

Purpose
- Authoritative in-memory catalogue of report-type definitions: the sections a
  report of each type must, may, or conditionally should contain, and the
  compliance rules it is held to.

Functional requirements
- Definitions load deterministically from ``*.yaml`` files (sorted by file name).
- Every problem in a definition is reported at once, not just the first.
- Registration order is preserved and is the tie-break order for type detection.
- Deprecation never removes a definition; it only drops out of ``list_active``.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Final, TypeAlias, cast

import structlog
import yaml

from report_intelligence.domain._coerce import (
    JSONValue,
    as_bool,
    as_enum,
    as_list,
    as_optional_str,
    as_str,
    as_str_tuple,
    as_utc_datetime,
    expect_object,
    iso8601z,
    utc_now,
)
from report_intelligence.domain.validation import Severity
from report_intelligence.errors import ReportTypeDefinitionError, UnknownReportTypeError

PathLike: TypeAlias = str | os.PathLike[str]

BUILTIN_DIR: Final[Path] = Path(__file__).resolve().parent / "builtin"


class ConditionType(StrEnum):
    PRESENT = "present"
    ABSENT = "absent"
    VALUE = "value"
    CONTAINS = "contains"


@dataclass(frozen=True, slots=True)
class ConditionalLogic:
    """When a conditional section is expected, expressed against another section."""

    depends_on: str
    condition: ConditionType
    value: str | None = None

    def is_triggered(self, sections: Mapping[str, Mapping[str, object]]) -> bool:
        dependency = sections.get(self.depends_on)
        if self.condition is ConditionType.PRESENT:
            return dependency is not None
        if self.condition is ConditionType.ABSENT:
            return dependency is None
        if dependency is None:
            return False
        if self.condition is ConditionType.VALUE:
            return dependency.get("value") == self.value
        content = dependency.get("content")
        return isinstance(content, str) and self.value is not None and self.value in content

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "depends_on": self.depends_on,
            "condition": self.condition.value,
        }
        if self.value is not None:
            payload["value"] = self.value
        return payload

    @classmethod
    def from_dict(cls, data: object, path: str = "ConditionalLogic") -> ConditionalLogic:
        parsed = expect_object(
            data, path, required={"depends_on", "condition"}, optional={"value"}
        )
        return cls(
            depends_on=as_str(parsed["depends_on"], f"{path}.depends_on", allow_empty=False),
            condition=as_enum(ConditionType, parsed["condition"], f"{path}.condition"),
            value=as_optional_str(parsed.get("value"), f"{path}.value"),
        )


@dataclass(frozen=True, slots=True)
class SectionDefinition:
    id: str
    name: str
    description: str
    required: bool = False
    template: str = ""
    validation_rules: tuple[str, ...] = ()
    ai_guidance: str | None = None
    conditional_logic: ConditionalLogic | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }
        if self.template:
            payload["template"] = self.template
        if self.validation_rules:
            payload["validation_rules"] = list(self.validation_rules)
        if self.ai_guidance is not None:
            payload["ai_guidance"] = self.ai_guidance
        if self.conditional_logic is not None:
            payload["conditional_logic"] = self.conditional_logic.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: object, path: str = "SectionDefinition") -> SectionDefinition:
        parsed = expect_object(
            data,
            path,
            required={"id", "name"},
            optional={
                "description",
                "required",
                "template",
                "validation_rules",
                "ai_guidance",
                "conditional_logic",
            },
        )
        logic_raw = parsed.get("conditional_logic")
        return cls(
            id=as_str(parsed["id"], f"{path}.id"),
            name=as_str(parsed["name"], f"{path}.name"),
            description=as_str(parsed.get("description", ""), f"{path}.description"),
            required=as_bool(parsed.get("required", False), f"{path}.required"),
            template=as_str(parsed.get("template", ""), f"{path}.template"),
            validation_rules=as_str_tuple(
                parsed.get("validation_rules", []), f"{path}.validation_rules"
            ),
            ai_guidance=as_optional_str(parsed.get("ai_guidance"), f"{path}.ai_guidance"),
            conditional_logic=(
                None
                if logic_raw is None
                else ConditionalLogic.from_dict(logic_raw, f"{path}.conditional_logic")
            ),
        )


@dataclass(frozen=True, slots=True)
class ComplianceRuleDefinition:
    id: str
    name: str
    description: str
    standard: str
    rule: str
    severity: Severity = Severity.CRITICAL

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "standard": self.standard,
            "rule": self.rule,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(
        cls, data: object, path: str = "ComplianceRuleDefinition"
    ) -> ComplianceRuleDefinition:
        parsed = expect_object(
            data,
            path,
            required={"id", "name", "standard"},
            optional={"description", "rule", "severity"},
        )
        return cls(
            id=as_str(parsed["id"], f"{path}.id"),
            name=as_str(parsed["name"], f"{path}.name"),
            description=as_str(parsed.get("description", ""), f"{path}.description"),
            standard=as_str(parsed["standard"], f"{path}.standard"),
            rule=as_str(parsed.get("rule", ""), f"{path}.rule"),
            severity=as_enum(Severity, parsed.get("severity", "critical"), f"{path}.severity"),
        )


@dataclass(frozen=True, slots=True)
class ReportTypeDefinition:
    """Expected structure and compliance obligations of one kind of report."""

    id: str
    name: str
    description: str
    category: str
    version: str
    required_sections: tuple[SectionDefinition, ...] = ()
    optional_sections: tuple[SectionDefinition, ...] = ()
    conditional_sections: tuple[SectionDefinition, ...] = ()
    compliance_rules: tuple[ComplianceRuleDefinition, ...] = ()
    standards: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    terminology: tuple[str, ...] = ()
    deprecated: bool = False
    deprecated_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def all_sections(self) -> tuple[SectionDefinition, ...]:
        """Required, optional and conditional definitions, in that order."""

        return self.required_sections + self.optional_sections + self.conditional_sections

    def covers_term(self, term: str) -> bool:
        """Whether ``term`` belongs to this type's vocabulary.

        The vocabulary is the tags, the declared terminology, and the words of
        every section name and description.
        """

        needle = term.strip().lower()
        if not needle:
            return False
        if needle in {item.lower() for item in self.tags + self.terminology}:
            return True
        return any(
            needle in section.name.lower() or needle in section.description.lower()
            for section in self.all_sections
        )

    def problems(self) -> tuple[str, ...]:
        """Return every structural problem with this definition (empty when valid)."""

        found: list[str] = []
        for attr in ("id", "name", "description", "category", "version"):
            if not getattr(self, attr).strip():
                found.append(f"{attr} must not be empty")

        seen: set[str] = set()
        for section in self.all_sections:
            if not section.id.strip():
                found.append(f"section {section.name!r} has an empty id")
                continue
            if not section.name.strip():
                found.append(f"section {section.id!r} has an empty name")
            if section.id in seen:
                found.append(f"duplicate section id {section.id!r}")
            seen.add(section.id)

        for index, rule in enumerate(self.compliance_rules):
            for attr in ("id", "name", "standard"):
                if not getattr(rule, attr).strip():
                    found.append(f"compliance_rules[{index}].{attr} must not be empty")
        return tuple(found)

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "version": self.version,
            "required_sections": [item.to_dict() for item in self.required_sections],
            "optional_sections": [item.to_dict() for item in self.optional_sections],
            "conditional_sections": [item.to_dict() for item in self.conditional_sections],
            "compliance_rules": [item.to_dict() for item in self.compliance_rules],
            "standards": list(self.standards),
            "tags": list(self.tags),
            "terminology": list(self.terminology),
            "deprecated": self.deprecated,
        }
        if self.deprecated_reason is not None:
            payload["deprecated_reason"] = self.deprecated_reason
        if self.created_at is not None:
            payload["created_at"] = iso8601z(self.created_at)
        if self.updated_at is not None:
            payload["updated_at"] = iso8601z(self.updated_at)
        return payload

    @classmethod
    def from_dict(cls, data: object, path: str = "ReportTypeDefinition") -> ReportTypeDefinition:
        parsed = expect_object(
            data,
            path,
            required={"id", "name", "description", "category", "version"},
            optional={
                "required_sections",
                "optional_sections",
                "conditional_sections",
                "compliance_rules",
                "standards",
                "tags",
                "terminology",
                "deprecated",
                "deprecated_reason",
                "created_at",
                "updated_at",
            },
        )

        def sections(key: str) -> tuple[SectionDefinition, ...]:
            return tuple(
                SectionDefinition.from_dict(item, f"{path}.{key}[{index}]")
                for index, item in enumerate(as_list(parsed.get(key, []), f"{path}.{key}"))
            )

        created_raw = parsed.get("created_at")
        updated_raw = parsed.get("updated_at")
        return cls(
            id=as_str(parsed["id"], f"{path}.id"),
            name=as_str(parsed["name"], f"{path}.name"),
            description=as_str(parsed["description"], f"{path}.description"),
            category=as_str(parsed["category"], f"{path}.category"),
            version=as_str(parsed["version"], f"{path}.version"),
            required_sections=sections("required_sections"),
            optional_sections=sections("optional_sections"),
            conditional_sections=sections("conditional_sections"),
            compliance_rules=tuple(
                ComplianceRuleDefinition.from_dict(item, f"{path}.compliance_rules[{index}]")
                for index, item in enumerate(
                    as_list(parsed.get("compliance_rules", []), f"{path}.compliance_rules")
                )
            ),
            standards=as_str_tuple(parsed.get("standards", []), f"{path}.standards"),
            tags=as_str_tuple(parsed.get("tags", []), f"{path}.tags"),
            terminology=as_str_tuple(parsed.get("terminology", []), f"{path}.terminology"),
            deprecated=as_bool(parsed.get("deprecated", False), f"{path}.deprecated"),
            deprecated_reason=as_optional_str(
                parsed.get("deprecated_reason"), f"{path}.deprecated_reason"
            ),
            created_at=(
                None if created_raw is None else as_utc_datetime(created_raw, f"{path}.created_at")
            ),
            updated_at=(
                None if updated_raw is None else as_utc_datetime(updated_raw, f"{path}.updated_at")
            ),
        )


@dataclass(frozen=True, slots=True)
class StructureValidation:
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    missing_sections: tuple[str, ...] = ()


class ReportTypeRegistry:
    """Ordered, mutable catalogue of report types keyed by id."""

    __slots__ = ("_logger", "_source_files", "_types")

    def __init__(
        self,
        definitions: Iterable[ReportTypeDefinition] = (),
        *,
        source_files: Sequence[Path] = (),
        logger: Any | None = None,
    ) -> None:
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._types: dict[str, ReportTypeDefinition] = {}
        self._source_files = tuple(source_files)
        for definition in definitions:
            self.register(definition)

    @classmethod
    def load(
        cls,
        *directories: PathLike,
        logger: Any | None = None,
    ) -> ReportTypeRegistry:
        """Load every ``*.yaml`` definition from ``directories`` in deterministic order."""

        definitions: list[ReportTypeDefinition] = []
        files: list[Path] = []
        seen_ids: dict[str, Path] = {}

        for directory in directories:
            root = Path(directory).expanduser()
            if not root.exists():
                raise FileNotFoundError(f"report type directory does not exist: {root}")
            if not root.is_dir():
                raise NotADirectoryError(f"report type path is not a directory: {root}")

            for source_file in sorted(
                root.glob("*.yaml"), key=lambda path: (path.name, path.as_posix())
            ):
                definition = _load_definition_file(source_file)
                first_seen_path = seen_ids.get(definition.id)
                if first_seen_path is not None:
                    raise ReportTypeDefinitionError(
                        f"duplicate report type id {definition.id!r} across files: "
                        f"{first_seen_path.name} and {source_file.name}"
                    )
                seen_ids[definition.id] = source_file
                definitions.append(definition)
                files.append(source_file)

        return cls(definitions, source_files=files, logger=logger)

    @classmethod
    def builtin(cls, *extra_dirs: PathLike, logger: Any | None = None) -> ReportTypeRegistry:
        """Registry of the packaged definitions, optionally extended from ``extra_dirs``."""

        return cls.load(BUILTIN_DIR, *extra_dirs, logger=logger)

    @property
    def source_files(self) -> tuple[Path, ...]:
        return self._source_files

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types

    def register(self, definition: ReportTypeDefinition) -> ReportTypeDefinition:
        _check_definition(definition)
        if definition.id in self._types:
            raise ReportTypeDefinitionError(f"report type {definition.id!r} already exists")

        now = utc_now()
        stored = replace(definition, created_at=now, updated_at=now)
        self._types[stored.id] = stored
        self._logger.info(
            "report_type_registered", report_type_id=stored.id, type_name=stored.name
        )
        return stored

    def get(self, type_id: str) -> ReportTypeDefinition | None:
        return self._types.get(type_id)

    def require(self, type_id: str) -> ReportTypeDefinition:
        definition = self._types.get(type_id)
        if definition is None:
            raise UnknownReportTypeError(type_id)
        return definition

    def list_all(self) -> tuple[ReportTypeDefinition, ...]:
        return tuple(self._types.values())

    def list_active(self) -> tuple[ReportTypeDefinition, ...]:
        return tuple(item for item in self._types.values() if not item.deprecated)

    def by_category(self, category: str) -> tuple[ReportTypeDefinition, ...]:
        return tuple(item for item in self._types.values() if item.category == category)

    def search_by_tags(self, tags: Iterable[str]) -> tuple[ReportTypeDefinition, ...]:
        """Types carrying at least one of ``tags``."""

        wanted = set(tags)
        return tuple(item for item in self._types.values() if wanted.intersection(item.tags))

    def update(self, definition: ReportTypeDefinition) -> ReportTypeDefinition:
        _check_definition(definition)
        existing = self._types.get(definition.id)
        if existing is None:
            raise UnknownReportTypeError(definition.id)

        stored = replace(definition, created_at=existing.created_at, updated_at=utc_now())
        self._types[stored.id] = stored
        self._logger.info("report_type_updated", report_type_id=stored.id, version=stored.version)
        return stored

    def deprecate(self, type_id: str, reason: str) -> ReportTypeDefinition:
        existing = self.require(type_id)
        stored = replace(
            existing, deprecated=True, deprecated_reason=reason, updated_at=utc_now()
        )
        self._types[type_id] = stored
        self._logger.info("report_type_deprecated", report_type_id=type_id, reason=reason)
        return stored

    def compliance_rules_for(self, type_id: str) -> tuple[ComplianceRuleDefinition, ...]:
        return self.require(type_id).compliance_rules

    def validate_structure(
        self, type_id: str, structure: Mapping[str, object]
    ) -> StructureValidation:
        """Check a section-id keyed ``structure`` against the type's declared sections.

        ``structure`` looks like ``{"sections": {"<section-id>": {"content": ..., "value": ...}}}``.
        Missing required sections are errors; a conditional section whose
        condition holds but which is absent is a warning.
        """

        definition = self.require(type_id)
        raw_sections = structure.get("sections", {})
        sections: dict[str, Mapping[str, object]] = {}
        if isinstance(raw_sections, Mapping):
            for key, value in raw_sections.items():
                sections[str(key)] = value if isinstance(value, Mapping) else {}

        errors: list[str] = []
        warnings: list[str] = []
        missing: list[str] = []
        for section in definition.required_sections:
            if section.id not in sections:
                errors.append(f"Missing required section: {section.name} ({section.id})")
                missing.append(section.id)

        for section in definition.conditional_sections:
            logic = section.conditional_logic
            if logic is None or section.id in sections:
                continue
            if logic.is_triggered(sections):
                warnings.append(f"Missing conditional section: {section.name} ({section.id})")

        return StructureValidation(
            valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            missing_sections=tuple(missing),
        )


def _check_definition(definition: ReportTypeDefinition) -> None:
    problems = definition.problems()
    if problems:
        raise ReportTypeDefinitionError(
            f"invalid report type definition {definition.id!r}", problems
        )


def _load_definition_file(path: Path) -> ReportTypeDefinition:
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = cast("object", yaml.safe_load(handle))
    except yaml.YAMLError as exc:
        raise ReportTypeDefinitionError(f"{path}: invalid YAML ({exc})") from exc

    if not isinstance(loaded, Mapping):
        raise ReportTypeDefinitionError(
            f"{path}: expected top-level YAML mapping, got {type(loaded).__name__}"
        )
    try:
        definition = ReportTypeDefinition.from_dict(loaded, path.name)
    except ValueError as exc:
        raise ReportTypeDefinitionError(str(exc)) from exc

    problems = definition.problems()
    if problems:
        raise ReportTypeDefinitionError(f"{path.name}: invalid report type definition", problems)
    return definition


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
