"""Section hierarchy reconstruction, structure map and confidence aggregation."""

from __future__ import annotations

from dataclasses import replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from report_intelligence.domain.report import (
    DetectedSection,
    DetectorKind,
    DetectorResults,
    HierarchyNode,
    SectionType,
    StructureMap,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

# Lists and tables carry no weight in the overall decompilation confidence.
CONFIDENCE_WEIGHTS: Final[Mapping[DetectorKind, float]] = MappingProxyType(
    {
        DetectorKind.HEADINGS: 0.2,
        DetectorKind.SECTIONS: 0.3,
        DetectorKind.LISTS: 0.0,
        DetectorKind.TABLES: 0.0,
        DetectorKind.METADATA: 0.15,
        DetectorKind.TERMINOLOGY: 0.1,
        DetectorKind.COMPLIANCE: 0.15,
        DetectorKind.APPENDICES: 0.1,
    }
)

_LEGAL_TITLE_TERMS: Final[tuple[str, ...]] = ("legal", "compliance", "regulation")


def link_hierarchy(sections: Sequence[DetectedSection]) -> tuple[DetectedSection, ...]:
    """Return ``sections`` in their original order with parent/children ids filled in.

    Sections are visited by start line (stable, so detector order breaks ties). A
    heading closes every open heading of the same or deeper level and nests
    under whatever remains open; any other section nests under the innermost
    open heading.
    """

    ordered = sorted(range(len(sections)), key=lambda index: sections[index].start_line)
    parents: dict[int, int] = {}
    children: dict[int, list[int]] = {index: [] for index in range(len(sections))}
    open_headings: list[int] = []

    for index in ordered:
        section = sections[index]
        if section.is_heading:
            while open_headings and sections[open_headings[-1]].level >= section.level:
                open_headings.pop()
        if open_headings:
            parent = open_headings[-1]
            parents[index] = parent
            children[parent].append(index)
        if section.is_heading:
            open_headings.append(index)

    linked: list[DetectedSection] = []
    for index, section in enumerate(sections):
        parent_index = parents.get(index)
        linked.append(
            replace(
                section,
                parent_id=None if parent_index is None else sections[parent_index].id,
                children_ids=tuple(sections[child].id for child in children[index]),
            )
        )
    return tuple(linked)


def build_structure_map(sections: Sequence[DetectedSection]) -> StructureMap:
    by_id: dict[str, int] = {}
    for index, section in enumerate(sections):
        by_id.setdefault(section.id, index)

    hierarchy = tuple(
        HierarchyNode(
            id=section.id,
            type=section.type,
            level=section.level,
            title=section.title,
            children=tuple(by_id[child] for child in section.children_ids if child in by_id),
        )
        for section in sections
    )
    titles = [section.title.lower() for section in sections]
    total_words = sum(section.metadata.word_count for section in sections)
    return StructureMap(
        hierarchy=hierarchy,
        depth=max((section.level for section in sections), default=0),
        section_count=len(sections),
        average_section_length=total_words / len(sections) if sections else 0.0,
        has_appendices=any(
            section.type is SectionType.APPENDIX or "appendix" in title
            for section, title in zip(sections, titles, strict=True)
        ),
        has_methodology=any("methodology" in title for title in titles),
        has_legal_sections=any(
            term in title for title in titles for term in _LEGAL_TITLE_TERMS
        ),
    )


def aggregate_confidence(results: DetectorResults) -> float:
    """Weighted mean of the confidences detectors actually produced; 0.0 if none."""

    weighted = 0.0
    total_weight = 0.0
    for kind, summary in results.items():
        weight = CONFIDENCE_WEIGHTS[kind]
        if summary.confidence is None or weight <= 0:
            continue
        weighted += summary.confidence * weight
        total_weight += weight
    if total_weight <= 0:
        return 0.0
    return min(1.0, max(0.0, weighted / total_weight))


__all__ = [
    "CONFIDENCE_WEIGHTS",
    "aggregate_confidence",
    "build_structure_map",
    "link_hierarchy",
]
