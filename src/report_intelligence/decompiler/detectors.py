"""
report-intelligence — structural detectors

File: src/report_intelligence/decompiler/detectors.py

Purpose
- Eight independent heuristic analyzers over normalized report text: headings,
  content sections, list items, table rows, front-matter metadata, domain
  terminology, compliance markers and appendices.

Functional requirements
- Each detector is a pure function ``detect_x(text, lines) -> DetectionResult``
  and shares no state with the others.
- Lines are stripped before matching; line numbers are 0-based indices into the
  normalized text.
- Every detector reports a confidence even when it finds nothing.

Non-functional requirements
- Pattern matching only; no statistical models.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Final

from report_intelligence.decompiler.text import context_window, count_words
from report_intelligence.domain.report import (
    ComplianceMarker,
    DetectedSection,
    DetectorKind,
    ExtractedMetadata,
    MarkerType,
    SectionMetadata,
    SectionType,
    TermCategory,
    TerminologyEntry,
)

_MARKDOWN_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^(#{1,6})\s")
_CAPS_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Z][A-Z\s]{10,}$")
_ROMAN_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^[IVX]+\.\s")
_NUMBERED_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^\d+\.\d+\s")

_BULLET_ITEM_RE: Final[re.Pattern[str]] = re.compile(r"^[-*•]\s")
_ORDINAL_ITEM_RE: Final[re.Pattern[str]] = re.compile(r"^(?:\d+[.)]|\(\d+\))\s")
_LETTER_ITEM_RE: Final[re.Pattern[str]] = re.compile(r"^\([a-z]\)\s")

_COLUMN_GAP_RE: Final[re.Pattern[str]] = re.compile(r"\s{2,}")
_MIN_SPACED_COLUMNS: Final[int] = 3

_DIGIT_RE: Final[re.Pattern[str]] = re.compile(r"\d")
_DATE_RE: Final[re.Pattern[str]] = re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}")
_LABEL_PREFIX_RE: Final[re.Pattern[str]] = re.compile(r".*[:]\s*")
_NON_WORD_RE: Final[re.Pattern[str]] = re.compile(r"[^\w]")

METADATA_SCAN_LINES: Final[int] = 20
MAX_KEYWORDS: Final[int] = 10
STOP_WORDS: Final[frozenset[str]] = frozenset(
    {"the", "and", "for", "with", "that", "this", "are", "was", "were", "from"}
)

# Substring labels per metadata field, matched case-insensitively.
_METADATA_LABELS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("author", ("author:", "prepared by:")),
    ("date", ("date:",)),
    ("client", ("client:", "prepared for:")),
    ("site_address", ("site:", "location:", "address:")),
    ("report_type", ("report type:", "type of report:")),
)

TERMINOLOGY_VOCABULARY: Final[tuple[str, ...]] = (
    "arboricultural",
    "bs5837",
    "rpa",
    "dbh",
    "canopy",
    "root",
    "protection",
    "mitigation",
    "assessment",
    "methodology",
    "compliance",
    "category",
    "species",
    "condition",
    "hazard",
    "risk",
    "inspection",
    "survey",
)

# Checked in order; the first group with a fragment contained in the term wins.
_TERM_CATEGORY_FRAGMENTS: Final[tuple[tuple[TermCategory, tuple[str, ...]], ...]] = (
    (
        TermCategory.TECHNICAL,
        ("arboricultural", "methodology", "assessment", "inspection", "survey"),
    ),
    (TermCategory.LEGAL, ("legal", "regulation", "statute")),
    (TermCategory.COMPLIANCE, ("compliance", "standard", "requirement")),
    (TermCategory.SPECIES, ("species", "tree", "canopy", "root")),
    (TermCategory.MEASUREMENT, ("dbh", "height", "diameter", "measurement")),
)


@dataclass(frozen=True, slots=True)
class CompliancePattern:
    pattern: re.Pattern[str]
    standard: str
    marker_type: MarkerType


COMPLIANCE_PATTERNS: Final[tuple[CompliancePattern, ...]] = (
    CompliancePattern(
        re.compile(r"BS\s*5837[:]?\s*2012", re.IGNORECASE), "BS5837:2012", MarkerType.STANDARD
    ),
    CompliancePattern(
        re.compile(r"Arboricultural\s+Association", re.IGNORECASE),
        "Arboricultural Association",
        MarkerType.GUIDELINE,
    ),
    CompliancePattern(
        re.compile(r"RPA\s*\(Registered\s+Practitioner\)", re.IGNORECASE),
        "RPA",
        MarkerType.REQUIREMENT,
    ),
    CompliancePattern(re.compile(r"ISO\s*14001", re.IGNORECASE), "ISO14001", MarkerType.STANDARD),
    CompliancePattern(
        re.compile(r"Tree\s+Preservation\s+Order", re.IGNORECASE), "TPO", MarkerType.REGULATION
    ),
    CompliancePattern(
        re.compile(r"Conservation\s+Area", re.IGNORECASE),
        "Conservation Area",
        MarkerType.REGULATION,
    ),
)

APPENDIX_KEYWORDS: Final[tuple[str, ...]] = ("appendix", "annex", "attachment", "schedule")

HEADING_SECTION_CONFIDENCE: Final[float] = 0.9
CONTENT_SECTION_CONFIDENCE: Final[float] = 0.7
LIST_ITEM_CONFIDENCE: Final[float] = 0.9
TABLE_ROW_CONFIDENCE: Final[float] = 0.7
APPENDIX_CONFIDENCE: Final[float] = 0.9
TERM_CONFIDENCE: Final[float] = 0.8
MARKER_CONFIDENCE: Final[float] = 0.8
METADATA_CONFIDENCE: Final[float] = 0.6


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """Partial output of one detector: sections and/or payload plus its confidence."""

    kind: DetectorKind
    confidence: float
    count: int = 0
    sections: tuple[DetectedSection, ...] = ()
    metadata: ExtractedMetadata | None = None
    terminology: tuple[TerminologyEntry, ...] = ()
    compliance_markers: tuple[ComplianceMarker, ...] = ()


Detector = Callable[[str, Sequence[str]], DetectionResult]


def is_heading_line(line: str) -> bool:
    return bool(
        _MARKDOWN_HEADING_RE.match(line)
        or _CAPS_HEADING_RE.match(line)
        or _ROMAN_HEADING_RE.match(line)
        or _NUMBERED_HEADING_RE.match(line)
    )


def heading_level(line: str) -> int:
    """Markdown hash count, 2 for roman numerals, 3 for ``1.1`` numbering, else 1."""

    markdown = _MARKDOWN_HEADING_RE.match(line)
    if markdown is not None:
        return len(markdown.group(1))
    if _ROMAN_HEADING_RE.match(line):
        return 2
    if _NUMBERED_HEADING_RE.match(line):
        return 3
    return 1


def heading_title(line: str) -> str:
    title = re.sub(r"^#{1,6}\s", "", line)
    title = _ROMAN_HEADING_RE.sub("", title)
    title = _NUMBERED_HEADING_RE.sub("", title)
    return title.strip()


def detect_headings(text: str, lines: Sequence[str]) -> DetectionResult:
    sections: list[DetectedSection] = []
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not is_heading_line(line):
            continue
        level = heading_level(line)
        title = heading_title(line)
        sections.append(
            DetectedSection(
                id=f"heading-{len(sections)}",
                type=SectionType.HEADING if level == 1 else SectionType.SUBHEADING,
                level=level,
                title=title,
                content=line,
                start_line=index,
                end_line=index,
                source_detector=DetectorKind.HEADINGS,
                metadata=SectionMetadata(
                    word_count=count_words(title),
                    line_count=1,
                    has_numbers=bool(_DIGIT_RE.search(line)),
                    confidence=HEADING_SECTION_CONFIDENCE,
                ),
            )
        )
    return DetectionResult(
        kind=DetectorKind.HEADINGS,
        confidence=0.8 if sections else 0.3,
        count=len(sections),
        sections=tuple(sections),
    )


@dataclass(slots=True)
class _OpenSection:
    ordinal: int
    start_line: int
    end_line: int
    content_lines: list[str] = field(default_factory=list)

    def close(self, lines: Sequence[str]) -> DetectedSection:
        content = "\n".join(self.content_lines)
        span = [line.strip() for line in lines[self.start_line : self.end_line + 1]]
        return DetectedSection(
            id=f"section-{self.ordinal}",
            type=SectionType.CONTENT_SECTION,
            level=0,
            title=f"Section {self.ordinal + 1}",
            content=content,
            start_line=self.start_line,
            end_line=self.end_line,
            source_detector=DetectorKind.SECTIONS,
            metadata=SectionMetadata(
                word_count=count_words(" ".join(span)),
                line_count=self.end_line - self.start_line + 1,
                has_numbers=bool(_DIGIT_RE.search(content)),
                has_bullets=any(_BULLET_ITEM_RE.match(line) for line in self.content_lines),
                confidence=CONTENT_SECTION_CONFIDENCE,
            ),
        )


def detect_sections(text: str, lines: Sequence[str]) -> DetectionResult:
    """Group non-heading lines into content sections; only a heading closes one."""

    sections: list[DetectedSection] = []
    current: _OpenSection | None = None
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if is_heading_line(line):
            if current is not None:
                sections.append(current.close(lines))
                current = None
            continue
        if not line:
            continue
        if current is None:
            current = _OpenSection(ordinal=len(sections), start_line=index, end_line=index)
        current.content_lines.append(line)
        current.end_line = index
    if current is not None:
        sections.append(current.close(lines))

    return DetectionResult(
        kind=DetectorKind.SECTIONS,
        confidence=0.7 if sections else 0.3,
        count=len(sections),
        sections=tuple(sections),
    )


def _is_list_line(line: str) -> bool:
    return bool(
        _BULLET_ITEM_RE.match(line) or _ORDINAL_ITEM_RE.match(line) or _LETTER_ITEM_RE.match(line)
    )


def detect_lists(text: str, lines: Sequence[str]) -> DetectionResult:
    sections: list[DetectedSection] = []
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not _is_list_line(line):
            continue
        ordinal = len(sections) + 1
        sections.append(
            DetectedSection(
                id=f"list-{ordinal}",
                type=SectionType.LIST,
                level=0,
                title=f"List {ordinal}",
                content=line,
                start_line=index,
                end_line=index,
                source_detector=DetectorKind.LISTS,
                metadata=SectionMetadata(
                    word_count=count_words(line),
                    line_count=1,
                    has_numbers=bool(_ORDINAL_ITEM_RE.match(line)),
                    has_bullets=bool(_BULLET_ITEM_RE.match(line)),
                    confidence=LIST_ITEM_CONFIDENCE,
                ),
            )
        )
    return DetectionResult(
        kind=DetectorKind.LISTS,
        confidence=0.8 if sections else 0.5,
        count=len(sections),
        sections=tuple(sections),
    )


def _is_table_line(line: str) -> bool:
    if "|" in line and len(line.split("|")) > 2:
        return True
    if "\t" in line and len(line.split("\t")) > 2:
        return True
    columns = [column for column in _COLUMN_GAP_RE.split(line) if column]
    return len(columns) >= _MIN_SPACED_COLUMNS


def detect_tables(text: str, lines: Sequence[str]) -> DetectionResult:
    sections: list[DetectedSection] = []
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not line or not _is_table_line(line):
            continue
        ordinal = len(sections) + 1
        sections.append(
            DetectedSection(
                id=f"table-{ordinal}",
                type=SectionType.TABLE,
                level=0,
                title=f"Table {ordinal}",
                content=line,
                start_line=index,
                end_line=index,
                source_detector=DetectorKind.TABLES,
                metadata=SectionMetadata(
                    word_count=count_words(line),
                    line_count=1,
                    has_numbers=bool(_DIGIT_RE.search(line)),
                    has_tables=True,
                    confidence=TABLE_ROW_CONFIDENCE,
                ),
            )
        )
    return DetectionResult(
        kind=DetectorKind.TABLES,
        confidence=0.6 if sections else 0.4,
        count=len(sections),
        sections=tuple(sections),
    )


def _label_value(line: str) -> str:
    return _LABEL_PREFIX_RE.sub("", line, count=1).strip()


def extract_keywords(text: str, *, limit: int = MAX_KEYWORDS) -> tuple[str, ...]:
    """Most frequent content words; ties keep first-seen order."""

    counts: Counter[str] = Counter()
    for word in text.lower().split():
        cleaned = _NON_WORD_RE.sub("", word)
        if len(cleaned) > 3 and cleaned not in STOP_WORDS:
            counts[cleaned] += 1
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return tuple(word for word, _ in ranked[:limit])


def detect_metadata(text: str, lines: Sequence[str]) -> DetectionResult:
    found: dict[str, str] = {}
    for index, raw_line in enumerate(lines[:METADATA_SCAN_LINES]):
        line = raw_line.strip()
        lowered = line.lower()
        if index == 0 and 10 < len(line) < 200:
            found["title"] = line
        for field_name, labels in _METADATA_LABELS:
            matched = any(label in lowered for label in labels)
            if field_name == "date" and _DATE_RE.search(line):
                matched = True
            if matched:
                found[field_name] = _label_value(line)

    metadata = ExtractedMetadata(
        title=found.get("title"),
        author=found.get("author"),
        date=found.get("date"),
        client=found.get("client"),
        site_address=found.get("site_address"),
        report_type=found.get("report_type"),
        word_count=count_words(text),
        keywords=extract_keywords(text),
    )
    return DetectionResult(
        kind=DetectorKind.METADATA,
        confidence=METADATA_CONFIDENCE,
        count=len(found),
        metadata=metadata,
    )


def categorize_term(term: str) -> TermCategory:
    for category, fragments in _TERM_CATEGORY_FRAGMENTS:
        if any(fragment in term for fragment in fragments):
            return category
    return TermCategory.GENERAL


def detect_terminology(text: str, lines: Sequence[str]) -> DetectionResult:
    entries: list[TerminologyEntry] = []
    for term in TERMINOLOGY_VOCABULARY:
        pattern = re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)
        matches = list(pattern.finditer(text))
        if not matches:
            continue
        first = matches[0]
        entries.append(
            TerminologyEntry(
                term=term,
                context=context_window(text, first.start(), len(term)),
                frequency=len(matches),
                category=categorize_term(term),
                confidence=TERM_CONFIDENCE,
            )
        )
    return DetectionResult(
        kind=DetectorKind.TERMINOLOGY,
        confidence=0.7 if entries else 0.3,
        count=len(entries),
        terminology=tuple(entries),
    )


def detect_compliance_markers(text: str, lines: Sequence[str]) -> DetectionResult:
    markers: list[ComplianceMarker] = []
    for candidate in COMPLIANCE_PATTERNS:
        match = candidate.pattern.search(text)
        if match is None:
            continue
        markers.append(
            ComplianceMarker(
                type=candidate.marker_type,
                text=match.group(0),
                standard=candidate.standard,
                context=context_window(text, match.start(), len(match.group(0))),
                confidence=MARKER_CONFIDENCE,
            )
        )
    return DetectionResult(
        kind=DetectorKind.COMPLIANCE,
        confidence=0.7 if markers else 0.3,
        count=len(markers),
        compliance_markers=tuple(markers),
    )


def detect_appendices(text: str, lines: Sequence[str]) -> DetectionResult:
    sections: list[DetectedSection] = []
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        lowered = line.lower()
        if not any(keyword in lowered for keyword in APPENDIX_KEYWORDS):
            continue
        ordinal = len(sections) + 1
        sections.append(
            DetectedSection(
                id=f"appendix-{ordinal}",
                type=SectionType.APPENDIX,
                level=0,
                title=line,
                content=line,
                start_line=index,
                end_line=index,
                source_detector=DetectorKind.APPENDICES,
                metadata=SectionMetadata(
                    word_count=count_words(line),
                    line_count=1,
                    has_numbers=bool(_DIGIT_RE.search(line)),
                    confidence=APPENDIX_CONFIDENCE,
                ),
            )
        )
    return DetectionResult(
        kind=DetectorKind.APPENDICES,
        confidence=0.8 if sections else 0.5,
        count=len(sections),
        sections=tuple(sections),
    )


DETECTORS: Final[tuple[tuple[DetectorKind, Detector], ...]] = (
    (DetectorKind.HEADINGS, detect_headings),
    (DetectorKind.SECTIONS, detect_sections),
    (DetectorKind.LISTS, detect_lists),
    (DetectorKind.TABLES, detect_tables),
    (DetectorKind.METADATA, detect_metadata),
    (DetectorKind.TERMINOLOGY, detect_terminology),
    (DetectorKind.COMPLIANCE, detect_compliance_markers),
    (DetectorKind.APPENDICES, detect_appendices),
)


__all__ = [
    "APPENDIX_KEYWORDS",
    "COMPLIANCE_PATTERNS",
    "DETECTORS",
    "METADATA_SCAN_LINES",
    "STOP_WORDS",
    "TERMINOLOGY_VOCABULARY",
    "CompliancePattern",
    "DetectionResult",
    "Detector",
    "categorize_term",
    "detect_appendices",
    "detect_compliance_markers",
    "detect_headings",
    "detect_lists",
    "detect_metadata",
    "detect_sections",
    "detect_tables",
    "detect_terminology",
    "extract_keywords",
    "heading_level",
    "heading_title",
    "is_heading_line",
]
