"""Unit tests for section matching, gap analysis and mapping scores."""

from __future__ import annotations

import pytest

from report_intelligence.domain.events import EventType
from report_intelligence.domain.mapping import (
    FieldType,
    GapType,
    MappingMethod,
    SectionPurpose,
    UnmappedReason,
)
from report_intelligence.domain.report import DetectorKind, SectionType
from report_intelligence.observability.events import EventBus
from report_intelligence.registry import ReportTypeRegistry
from report_intelligence.schema_mapper import (
    ReportSchemaMapper,
    infer_field_type,
    infer_purpose,
    match,
    score_report_type_fit,
)

from .. import make_definition, make_report, make_section, make_term

pytestmark = pytest.mark.unit


def _mapper(*definitions, bus: EventBus | None = None) -> ReportSchemaMapper:
    return ReportSchemaMapper(registry=ReportTypeRegistry(definitions), event_bus=bus)


def test_exact_title_with_description_word_scores_full_confidence() -> None:
    definition = make_definition().required_sections[0]

    assert match(make_section(title="Introduction"), definition) == pytest.approx(1.0)
    assert match(make_section(title="Intro"), definition) == pytest.approx(0.6)
    assert match(make_section(title="Weather"), definition) == 0.0


def test_typed_mapping_reports_missing_sections_and_scores() -> None:
    report = make_report(
        [make_section("heading-0", title="Introduction")],
        detected_report_type="hedge-survey",
    )

    result = _mapper(make_definition()).map(report)

    assert result.report_type_id == "hedge-survey"
    assert result.report_type_name == "Hedge Survey"
    (field,) = result.mapped_fields
    assert field.field_id == "introduction"
    assert field.mapping_method is MappingMethod.EXACT_MATCH
    assert field.notes == 'Mapped from section "Introduction"'
    assert [item.section_id for item in result.missing_required_sections] == ["findings"]
    assert result.mapping_coverage == 100
    assert result.completeness_score == 50
    assert [gap.type for gap in result.schema_gaps] == [GapType.MISSING_SECTION]
    assert result.confidence_score == pytest.approx(0.6 / 0.9)
    assert result.extra_sections == ()
    assert result.warnings == ()


def test_without_registry_every_section_is_mapped_generically() -> None:
    report = make_report(
        [
            make_section("heading-0", title="Weather"),
            make_section(
                "list-1",
                title="List 1",
                content="- dry",
                level=0,
                section_type=SectionType.LIST,
                source=DetectorKind.LISTS,
                start_line=1,
            ),
        ]
    )

    result = ReportSchemaMapper().map(report)

    assert result.report_type_id is None
    assert result.warnings == ("No report type identified; sections mapped generically",)
    assert [field.field_id for field in result.mapped_fields] == [
        "generic_heading_heading_0",
        "generic_list_list_1",
    ]
    assert result.mapped_fields[1].field_type is FieldType.ARRAY
    assert all(field.mapping_method is MappingMethod.INFERRED for field in result.mapped_fields)
    assert result.unmapped_sections == ()
    assert len(result.extra_sections) == 2
    assert result.completeness_score == 100
    assert result.missing_required_sections == ()


def test_weak_and_absent_matches_are_listed_as_unmapped() -> None:
    definition = make_definition(required=("Tree Schedule",))
    report = make_report(
        [
            make_section("heading-0", title="schedule survey notes"),
            make_section("heading-1", title="Weather", start_line=3),
        ],
        detected_report_type="hedge-survey",
    )

    result = _mapper(definition).map(report)

    weak, absent = result.unmapped_sections
    assert weak.reason is UnmappedReason.LOW_CONFIDENCE
    assert weak.confidence == pytest.approx(0.4)
    assert weak.suggested_field_id == "tree-schedule"
    assert absent.reason is UnmappedReason.NO_MATCHING_FIELD
    assert absent.suggested_field_id is None
    assert len(result.mapped_fields) == 2
    assert {item.section_id for item in result.extra_sections} == {"heading-0", "heading-1"}


def test_unknown_terminology_excludes_terms_the_type_covers() -> None:
    report = make_report(
        [make_section(title="Introduction")],
        terminology=[make_term("hedge"), make_term("rpa", frequency=3)],
        detected_report_type="hedge-survey",
    )

    typed = _mapper(make_definition(tags=("hedge",))).map(report)
    untyped = ReportSchemaMapper().map(report)

    assert [term.term for term in typed.unknown_terminology] == ["rpa"]
    assert typed.unknown_terminology[0].frequency == 3
    assert [term.term for term in untyped.unknown_terminology] == ["hedge", "rpa"]


def test_type_is_identified_by_scoring_when_detected_type_is_unknown() -> None:
    report = make_report(
        [make_section(title="Findings")],
        text="issued as hedge-survey for the estate",
        detected_report_type="ghost-type",
    )
    definition = make_definition()

    assert score_report_type_fit(report, definition) == 25
    result = _mapper(make_definition("orchard-survey", name="Orchard"), definition).map(report)
    assert result.report_type_id == "hedge-survey"


def test_low_fit_scores_leave_report_untyped() -> None:
    report = make_report([make_section(title="Introduction")], text="plain")

    result = _mapper(make_definition()).map(report)

    assert result.report_type_id is None


def test_many_extra_sections_and_unknown_terms_raise_warning_gaps() -> None:
    sections = [
        make_section(f"heading-{index}", title=f"Part {index}", start_line=index * 2)
        for index in range(6)
    ]
    terms = [make_term(f"term{index}") for index in range(11)]

    result = ReportSchemaMapper().map(make_report(sections, terminology=terms))

    gap_types = [gap.type for gap in result.schema_gaps]
    assert gap_types == [GapType.UNKNOWN_TERMINOLOGY, GapType.UNKNOWN_SECTION]
    unknown_gap = result.gaps_of_type(GapType.UNKNOWN_TERMINOLOGY)[0]
    assert unknown_gap.data["sample_terms"] == ["term0", "term1", "term2"]


def test_mapping_lifecycle_events() -> None:
    bus = EventBus()
    seen: list[EventType] = []
    bus.subscribe(None, lambda event: seen.append(event.event_type))
    report = make_report([make_section(title="Introduction")], detected_report_type="hedge-survey")

    result = _mapper(make_definition(), bus=bus).map(report)

    assert seen == [
        EventType.SCHEMA_MAPPER_STARTED,
        EventType.SCHEMA_MAPPER_REPORT_TYPE_IDENTIFIED,
        EventType.SCHEMA_MAPPER_COMPLETED,
    ]
    completed = bus.replay(event_type=EventType.SCHEMA_MAPPER_COMPLETED)[0]
    assert completed.payload["mapping_id"] == result.id


def test_non_report_input_is_a_type_error() -> None:
    with pytest.raises(TypeError, match="report must be DecompiledReport"):
        ReportSchemaMapper().map({"sections": []})  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("section_type", "content", "expected"),
    [
        (SectionType.TABLE, "| a | b |", FieldType.OBJECT),
        (SectionType.LIST, "- item", FieldType.ARRAY),
        (SectionType.CONTENT_SECTION, "Surveyed on 12/03/2024", FieldType.DATE),
        (SectionType.CONTENT_SECTION, "42.5", FieldType.NUMBER),
        (SectionType.CONTENT_SECTION, "Yes", FieldType.BOOLEAN),
        (SectionType.CONTENT_SECTION, "free text", FieldType.TEXT),
    ],
)
def test_infer_field_type(section_type: SectionType, content: str, expected: FieldType) -> None:
    section = make_section(title="Value", content=content, section_type=section_type, level=0)

    assert infer_field_type(section) is expected


@pytest.mark.parametrize(
    ("title", "content", "expected"),
    [
        ("Overview", "", SectionPurpose.INTRODUCTORY_CONTENT),
        ("Survey Method", "", SectionPurpose.METHODOLOGY_DESCRIPTION),
        ("Key Findings", "", SectionPurpose.RESULTS_PRESENTATION),
        ("Summary", "", SectionPurpose.CONCLUSIONS_RECOMMENDATIONS),
        ("Misc", "see the table below", SectionPurpose.DATA_TABLE),
        ("Misc", "figure 3 shows", SectionPurpose.VISUAL_CONTENT),
        ("Misc", "words", SectionPurpose.GENERAL_CONTENT),
    ],
)
def test_infer_purpose(title: str, content: str, expected: SectionPurpose) -> None:
    assert infer_purpose(make_section(title=title, content=content)) is expected
