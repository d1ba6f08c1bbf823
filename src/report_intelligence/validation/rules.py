"""
report-intelligence — validation rule sets

File: src/report_intelligence/validation/rules.py

Purpose
- Default rule taxonomy and the ordered, named ``RuleSet`` collection an engine owns.

Functional requirements
- Rules keep registration order; ids are unique within a set.
- Adding a duplicate id or updating an unknown id raises ``RuleConfigurationError``.
- Rule sets load from YAML (``name`` plus a ``rules`` list) and round-trip through
  ``to_dict``/``from_dict`` for persistence.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Final, TypeAlias, cast

import yaml

from report_intelligence.domain._coerce import JSONValue, as_list, as_str, expect_object
from report_intelligence.domain.validation import RuleType, Severity, ValidationRule
from report_intelligence.errors import RuleConfigurationError

PathLike: TypeAlias = str | os.PathLike[str]

DEFAULT_RULE_SET_NAME: Final[str] = "default"

DEFAULT_RULES: Final[tuple[ValidationRule, ...]] = (
    ValidationRule(
        id="comp_001",
        name="Required Sections Present",
        description="Check that all required sections are present in the report",
        type=RuleType.COMPLIANCE,
        severity=Severity.CRITICAL,
        message_template="Missing required section: {section_name}",
        remediation_guidance="Add the missing required section to the report",
        weight=10,
        requires_human_review=True,
    ),
    ValidationRule(
        id="comp_002",
        name="Compliance Standard References",
        description="Check that required compliance standards are referenced",
        type=RuleType.COMPLIANCE,
        severity=Severity.HIGH,
        message_template="Missing reference to compliance standard: {standard}",
        remediation_guidance="Add reference to the required compliance standard",
        weight=8,
        requires_human_review=True,
        regulation_standard="BS5837:2012",
    ),
    ValidationRule(
        id="qual_001",
        name="Section Clarity",
        description="Check that sections have clear, descriptive titles",
        type=RuleType.QUALITY,
        severity=Severity.MEDIUM,
        message_template='Section title "{title}" is unclear or non-descriptive',
        remediation_guidance="Use clear, descriptive titles for all sections",
        weight=5,
    ),
    ValidationRule(
        id="qual_002",
        name="Terminology Consistency",
        description="Check that terminology is used consistently throughout the report",
        type=RuleType.QUALITY,
        severity=Severity.MEDIUM,
        message_template="Inconsistent terminology usage: {term} used as {variations}",
        remediation_guidance="Use consistent terminology throughout the report",
        weight=6,
    ),
    ValidationRule(
        id="comp_003",
        name="Section Completeness",
        description="Check that sections have sufficient content",
        type=RuleType.COMPLETENESS,
        severity=Severity.MEDIUM,
        message_template='Section "{section_name}" has insufficient content ({word_count} words)',
        remediation_guidance="Add more detailed content to the section",
        weight=7,
    ),
    ValidationRule(
        id="cons_001",
        name="Date Consistency",
        description="Check that dates are consistent throughout the report",
        type=RuleType.CONSISTENCY,
        severity=Severity.HIGH,
        message_template="Inconsistent date format or logic: {issue}",
        remediation_guidance="Use consistent date formats and ensure logical consistency",
        weight=8,
        requires_human_review=True,
    ),
    ValidationRule(
        id="term_001",
        name="Standard Terminology",
        description="Check that standard terminology is used where appropriate",
        type=RuleType.TERMINOLOGY,
        severity=Severity.MEDIUM,
        message_template="Non-standard terminology used: {term} (suggested: {suggestion})",
        remediation_guidance="Use standard terminology from the approved glossary",
        weight=6,
        auto_fixable=True,
    ),
)


class RuleSet:
    """Named, ordered collection of validation rules keyed by id."""

    __slots__ = ("_name", "_rules")

    def __init__(
        self, rules: Iterable[ValidationRule] = (), *, name: str = DEFAULT_RULE_SET_NAME
    ) -> None:
        if not isinstance(name, str) or not name.strip():
            raise RuleConfigurationError("rule set name must be a non-empty string")
        self._name = name.strip()
        self._rules: dict[str, ValidationRule] = {}
        for rule in rules:
            self.add(rule)

    @classmethod
    def default(cls) -> RuleSet:
        return cls(DEFAULT_RULES)

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[ValidationRule]:
        return iter(tuple(self._rules.values()))

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def add(self, rule: ValidationRule) -> ValidationRule:
        if not isinstance(rule, ValidationRule):
            raise RuleConfigurationError(
                f"rule must be ValidationRule, got {type(rule).__name__}"
            )
        if rule.id in self._rules:
            raise RuleConfigurationError(f"duplicate rule id {rule.id!r}")
        self._rules[rule.id] = rule
        return rule

    def update(self, rule_id: str, **changes: object) -> ValidationRule:
        """Replace fields of an existing rule; its position in the set is kept."""

        current = self.require(rule_id)
        if "id" in changes and changes["id"] != rule_id:
            raise RuleConfigurationError(f"rule {rule_id!r}: id cannot be changed")
        try:
            updated = replace(current, **changes)
        except (TypeError, ValueError) as exc:
            raise RuleConfigurationError(f"rule {rule_id!r}: invalid update ({exc})") from exc
        self._rules[rule_id] = updated
        return updated

    def set_enabled(self, rule_id: str, enabled: bool) -> ValidationRule:
        return self.update(rule_id, enabled=bool(enabled))

    def get(self, rule_id: str) -> ValidationRule | None:
        return self._rules.get(rule_id)

    def require(self, rule_id: str) -> ValidationRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleConfigurationError(f"unknown rule id {rule_id!r}")
        return rule

    def rules(self) -> tuple[ValidationRule, ...]:
        return tuple(self._rules.values())

    def applicable(self, report_type_id: str | None) -> tuple[ValidationRule, ...]:
        return tuple(rule for rule in self._rules.values() if rule.applies_to(report_type_id))

    def by_type(self, rule_type: RuleType | str) -> tuple[ValidationRule, ...]:
        wanted = RuleType(rule_type)
        return tuple(
            rule for rule in self._rules.values() if rule.enabled and rule.type is wanted
        )

    def by_severity(self, severity: Severity | str) -> tuple[ValidationRule, ...]:
        wanted = Severity(severity)
        return tuple(
            rule for rule in self._rules.values() if rule.enabled and rule.severity is wanted
        )

    def copy(self, *, name: str | None = None) -> RuleSet:
        return RuleSet(self._rules.values(), name=self._name if name is None else name)

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self._name, "rules": [rule.to_dict() for rule in self._rules.values()]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: object, path: str = "RuleSet") -> RuleSet:
        parsed = expect_object(data, path, required={"rules"}, optional={"name"})
        name = as_str(parsed.get("name", DEFAULT_RULE_SET_NAME), f"{path}.name", allow_empty=False)
        rules = [
            ValidationRule.from_dict(item, f"{path}.rules[{index}]")
            for index, item in enumerate(as_list(parsed["rules"], f"{path}.rules"))
        ]
        return cls(rules, name=name)

    @classmethod
    def from_json(cls, raw: str) -> RuleSet:
        return cls.from_dict(json.loads(raw))


def load_rules_yaml(path: PathLike) -> RuleSet:
    """Parse a YAML rule-set file; every problem surfaces as ``RuleConfigurationError``."""

    source = Path(path).expanduser()
    if not source.is_file():
        raise FileNotFoundError(f"rule set file does not exist: {source}")

    try:
        with source.open("r", encoding="utf-8") as handle:
            loaded = cast("object", yaml.safe_load(handle))
    except yaml.YAMLError as exc:
        raise RuleConfigurationError(f"{source}: invalid YAML ({exc})") from exc

    if not isinstance(loaded, Mapping):
        raise RuleConfigurationError(
            f"{source}: expected top-level YAML mapping, got {type(loaded).__name__}"
        )
    payload = dict(loaded)
    payload.setdefault("name", source.stem)
    try:
        return RuleSet.from_dict(payload, source.name)
    except ValueError as exc:
        if isinstance(exc, RuleConfigurationError):
            raise
        raise RuleConfigurationError(str(exc)) from exc


__all__ = [
    "DEFAULT_RULES",
    "DEFAULT_RULE_SET_NAME",
    "RuleSet",
    "load_rules_yaml",
]
