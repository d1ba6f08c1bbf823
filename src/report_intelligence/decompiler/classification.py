"""Keyword scoring of a decompiled document against registered report types."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Final

from report_intelligence.domain.report import ComplianceMarker, DetectedSection
from report_intelligence.registry.report_types import ReportTypeDefinition

NAME_MATCH_SCORE: Final[int] = 10
ID_MATCH_SCORE: Final[int] = 15
MARKER_MATCH_SCORE: Final[int] = 5
SECTION_MATCH_SCORE: Final[int] = 2
ACCEPTANCE_THRESHOLD: Final[int] = 5


@dataclass(frozen=True, slots=True)
class TypeScore:
    report_type_id: str
    score: int


def titles_overlap(left: str, right: str) -> bool:
    """Case-insensitive containment in either direction; empty titles never match."""

    a = left.strip().lower()
    b = right.strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def score_report_type(
    definition: ReportTypeDefinition,
    *,
    text: str,
    sections: Sequence[DetectedSection],
    markers: Sequence[ComplianceMarker],
) -> int:
    lowered = text.lower()
    score = 0
    if definition.name and definition.name.lower() in lowered:
        score += NAME_MATCH_SCORE
    if definition.id.lower() in lowered:
        score += ID_MATCH_SCORE

    rule_standards = [rule.standard.lower() for rule in definition.compliance_rules]
    for marker in markers:
        standard = marker.standard.lower()
        if standard and any(standard in rule_standard for rule_standard in rule_standards):
            score += MARKER_MATCH_SCORE

    declared_names = [section.name for section in definition.all_sections]
    for section in sections:
        if any(titles_overlap(section.title, name) for name in declared_names):
            score += SECTION_MATCH_SCORE
    return score


def detect_report_type(
    candidates: Iterable[ReportTypeDefinition],
    *,
    text: str,
    sections: Sequence[DetectedSection],
    markers: Sequence[ComplianceMarker],
) -> TypeScore | None:
    """Best-scoring candidate, or ``None`` when nothing reaches the acceptance threshold.

    Only a strictly higher score displaces the current best, so ties go to the
    candidate registered first.
    """

    best: TypeScore | None = None
    for definition in candidates:
        score = score_report_type(definition, text=text, sections=sections, markers=markers)
        if score > 0 and (best is None or score > best.score):
            best = TypeScore(report_type_id=definition.id, score=score)
    if best is None or best.score < ACCEPTANCE_THRESHOLD:
        return None
    return best


__all__ = [
    "ACCEPTANCE_THRESHOLD",
    "TypeScore",
    "detect_report_type",
    "score_report_type",
    "titles_overlap",
]
