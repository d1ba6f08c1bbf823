"""Unit tests for hierarchy linking, structure maps and confidence aggregation."""

from __future__ import annotations

import pytest

from report_intelligence.decompiler.structure import (
    CONFIDENCE_WEIGHTS,
    aggregate_confidence,
    build_structure_map,
    link_hierarchy,
)
from report_intelligence.domain.report import (
    DetectorKind,
    DetectorResults,
    DetectorSummary,
    SectionType,
)

from .. import make_section

pytestmark = pytest.mark.unit


def test_headings_close_same_or_deeper_levels() -> None:
    sections = [
        make_section("heading-0", title="Scope", level=1, start_line=0),
        make_section(
            "heading-1",
            title="Site",
            level=2,
            section_type=SectionType.SUBHEADING,
            start_line=2,
        ),
        make_section("heading-2", title="Findings", level=1, start_line=5),
    ]

    linked = link_hierarchy(sections)

    assert [section.parent_id for section in linked] == [None, "heading-0", None]
    assert linked[0].children_ids == ("heading-1",)
    assert linked[2].children_ids == ()


def test_non_heading_sections_attach_to_innermost_open_heading() -> None:
    sections = [
        make_section("heading-0", title="Scope", level=1, start_line=0),
        make_section(
            "list-1",
            title="List 1",
            level=0,
            section_type=SectionType.LIST,
            source=DetectorKind.LISTS,
            start_line=1,
        ),
        make_section(
            "appendix-1",
            title="Appendix A",
            level=0,
            section_type=SectionType.APPENDIX,
            source=DetectorKind.APPENDICES,
            start_line=3,
        ),
    ]

    linked = link_hierarchy(sections)

    assert linked[1].parent_id == "heading-0"
    assert linked[2].parent_id == "heading-0"
    assert linked[0].children_ids == ("list-1", "appendix-1")


def test_link_hierarchy_preserves_input_order() -> None:
    later = make_section("heading-1", title="Later", start_line=9)
    earlier = make_section("heading-0", title="Earlier", start_line=0)

    linked = link_hierarchy([later, earlier])

    assert [section.id for section in linked] == ["heading-1", "heading-0"]


def test_structure_map_flags_and_counts() -> None:
    sections = link_hierarchy(
        [
            make_section("heading-0", title="Methodology", content="one two", start_line=0),
            make_section("heading-1", title="Legal Notes", content="one two three", start_line=4),
            make_section(
                "appendix-1",
                title="Annex",
                level=0,
                section_type=SectionType.APPENDIX,
                source=DetectorKind.APPENDICES,
                start_line=8,
            ),
        ]
    )

    structure = build_structure_map(sections)

    assert structure.section_count == 3
    assert structure.depth == 1
    assert structure.has_methodology
    assert structure.has_legal_sections
    assert structure.has_appendices
    assert structure.hierarchy[1].children == (2,)


def test_empty_structure_map() -> None:
    structure = build_structure_map(())

    assert structure.section_count == 0
    assert structure.average_section_length == 0.0
    assert structure.depth == 0
    assert not structure.has_appendices


def test_aggregate_confidence_skips_failed_and_unweighted_detectors() -> None:
    results = DetectorResults(
        headings=DetectorSummary(count=2, confidence=0.8),
        sections=DetectorSummary(),
        lists=DetectorSummary(count=5, confidence=0.1),
        metadata=DetectorSummary(count=1, confidence=0.6),
    )

    expected = (0.8 * 0.2 + 0.6 * 0.15) / (0.2 + 0.15)
    assert aggregate_confidence(results) == pytest.approx(expected)


def test_aggregate_confidence_is_zero_when_every_detector_failed() -> None:
    assert aggregate_confidence(DetectorResults()) == 0.0


def test_confidence_weights_sum_to_one() -> None:
    assert sum(CONFIDENCE_WEIGHTS.values()) == pytest.approx(1.0)
    assert CONFIDENCE_WEIGHTS[DetectorKind.LISTS] == 0.0
