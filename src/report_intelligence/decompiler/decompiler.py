"""
report-intelligence — decompilation orchestrator

File: src/report_intelligence/decompiler/decompiler.py

Purpose
- Turn raw report text into a frozen ``DecompiledReport``: normalize, run every
  detector, detect the report type, link the section hierarchy, build the
  structure map and aggregate confidence.

Functional requirements
- Input that is not text, or an unknown input format, is rejected with
  ``DecompilationError`` before any detector runs.
- A detector that raises becomes the warning ``Detector error: <message>``; its
  summary has no confidence and the remaining detectors still run.
- Registry failures during type detection leave the report untyped with a warning.
- Lifecycle events are published on the injected ``EventBus`` when one is given;
  the finished report is saved through the injected repository when one is given.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from report_intelligence.decompiler.classification import detect_report_type
from report_intelligence.decompiler.detectors import DETECTORS, Detector
from report_intelligence.decompiler.structure import (
    aggregate_confidence,
    build_structure_map,
    link_hierarchy,
)
from report_intelligence.decompiler.text import count_words, normalize_text, split_lines
from report_intelligence.domain import ids
from report_intelligence.domain._coerce import JSONValue, utc_now
from report_intelligence.domain.events import EventType
from report_intelligence.domain.report import (
    ComplianceMarker,
    DecompiledReport,
    DetectedSection,
    DetectorKind,
    DetectorResults,
    DetectorSummary,
    ExtractedMetadata,
    InputFormat,
    TerminologyEntry,
)
from report_intelligence.errors import DecompilationError
from report_intelligence.observability.logging import correlation_scope
from report_intelligence.utils.hashing import sha256_text

if TYPE_CHECKING:
    from report_intelligence.observability.events import EventBus
    from report_intelligence.persistence.repositories import DecompiledReportRepo
    from report_intelligence.registry.report_types import ReportTypeRegistry


@dataclass(slots=True)
class _ReportDraft:
    """Mutable accumulator for one decompilation pass."""

    sections: list[DetectedSection] = field(default_factory=list)
    summaries: dict[DetectorKind, DetectorSummary] = field(default_factory=dict)
    metadata: ExtractedMetadata = field(default_factory=ExtractedMetadata)
    terminology: tuple[TerminologyEntry, ...] = ()
    compliance_markers: tuple[ComplianceMarker, ...] = ()
    detected_report_type: str | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def detector_results(self) -> DetectorResults:
        return DetectorResults(
            **{kind.value: summary for kind, summary in self.summaries.items()}
        )


class ReportDecompiler:
    """Runs the detector battery over one document at a time."""

    def __init__(
        self,
        *,
        registry: ReportTypeRegistry | None = None,
        event_bus: EventBus | None = None,
        repository: DecompiledReportRepo | None = None,
        detectors: Sequence[tuple[DetectorKind, Detector]] = DETECTORS,
        logger: Any | None = None,
    ) -> None:
        self._registry = registry
        self._event_bus = event_bus
        self._repository = repository
        self._detectors = tuple(detectors)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def registry(self) -> ReportTypeRegistry | None:
        return self._registry

    def decompile(
        self, raw_text: str, input_format: InputFormat | str = InputFormat.TEXT
    ) -> DecompiledReport:
        started = time.perf_counter()
        resolved_format = self._check_input(raw_text, input_format)

        report_id = ids.generate_report_id()
        created_at = utc_now()
        with correlation_scope(report_id=report_id):
            try:
                report = self._run(report_id, raw_text, resolved_format, created_at, started)
            except Exception as exc:
                self._emit(
                    EventType.DECOMPILER_ERROR,
                    {
                        "report_id": report_id,
                        "error": str(exc),
                        "input_format": resolved_format.value,
                        "text_length": len(raw_text),
                    },
                )
                self._logger.exception("report_decompilation_failed", error=str(exc))
                raise

            if self._repository is not None:
                self._repository.save(report)
            self._logger.info(
                "report_decompiled",
                section_count=len(report.sections),
                confidence_score=report.confidence_score,
                detected_report_type=report.detected_report_type,
                warning_count=len(report.warnings),
                processing_time_ms=report.processing_time_ms,
            )
        return report

    def _check_input(self, raw_text: object, input_format: object) -> InputFormat:
        text_length = len(raw_text) if isinstance(raw_text, str) else None
        failure: str | None = None
        resolved: InputFormat | None = None
        if not isinstance(raw_text, str):
            failure = f"raw_text must be a string, got {type(raw_text).__name__}"
        else:
            try:
                resolved = InputFormat(input_format)
            except (TypeError, ValueError):
                allowed = ", ".join(item.value for item in InputFormat)
                failure = f"unsupported input_format {input_format!r}; expected one of: {allowed}"

        if failure is not None or resolved is None:
            error = DecompilationError(
                failure or "invalid input", input_format=input_format, text_length=text_length
            )
            self._emit(
                EventType.DECOMPILER_ERROR,
                {
                    "error": str(error),
                    "input_format": str(input_format),
                    "text_length": text_length,
                },
            )
            self._logger.warning("decompilation_input_rejected", error=str(error))
            raise error
        return resolved

    def _run(
        self,
        report_id: str,
        raw_text: str,
        input_format: InputFormat,
        created_at: datetime,
        started: float,
    ) -> DecompiledReport:
        self._emit(
            EventType.DECOMPILER_INGESTED,
            {
                "report_id": report_id,
                "input_format": input_format.value,
                "text_length": len(raw_text),
                "word_count": count_words(raw_text),
            },
        )

        normalized = normalize_text(raw_text)
        lines = split_lines(normalized)
        draft = _ReportDraft()
        self._run_detectors(draft, normalized, lines)

        headings = draft.summaries.get(DetectorKind.HEADINGS, DetectorSummary()).count
        self._emit(
            EventType.DECOMPILER_SECTIONS_DETECTED,
            {
                "report_id": report_id,
                "heading_count": headings,
                "section_count": len(draft.sections),
            },
        )
        self._emit(
            EventType.DECOMPILER_METADATA_EXTRACTED,
            {"report_id": report_id, "metadata": draft.metadata.to_dict()},
        )
        self._emit(
            EventType.DECOMPILER_TERMINOLOGY_EXTRACTED,
            {"report_id": report_id, "terminology_count": len(draft.terminology)},
        )
        self._emit(
            EventType.DECOMPILER_COMPLIANCE_MARKERS_EXTRACTED,
            {"report_id": report_id, "compliance_count": len(draft.compliance_markers)},
        )

        self._detect_type(draft, normalized)

        sections = link_hierarchy(draft.sections)
        structure_map = build_structure_map(sections)
        self._emit(
            EventType.DECOMPILER_STRUCTURE_BUILT,
            {"report_id": report_id, "structure_map": structure_map.to_dict()},
        )

        detector_results = draft.detector_results()
        report = DecompiledReport(
            id=report_id,
            source_hash=sha256_text(raw_text),
            raw_text=raw_text,
            normalized_text=normalized,
            input_format=input_format,
            sections=sections,
            metadata=draft.metadata,
            terminology=draft.terminology,
            compliance_markers=draft.compliance_markers,
            structure_map=structure_map,
            detector_results=detector_results,
            confidence_score=aggregate_confidence(detector_results),
            detected_report_type=draft.detected_report_type,
            warnings=tuple(draft.warnings),
            errors=tuple(draft.errors),
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            created_at=created_at,
            processed_at=utc_now(),
        )
        self._emit(
            EventType.DECOMPILER_COMPLETED,
            {
                "report_id": report_id,
                "section_count": len(report.sections),
                "processing_time_ms": report.processing_time_ms,
                "confidence_score": report.confidence_score,
            },
        )
        return report

    def _run_detectors(
        self, draft: _ReportDraft, text: str, lines: Sequence[str]
    ) -> None:
        for kind, detector in self._detectors:
            try:
                result = detector(text, lines)
            except Exception as exc:  # noqa: BLE001
                draft.warnings.append(f"Detector error: {exc}")
                draft.summaries[kind] = DetectorSummary()
                self._logger.warning("detector_failed", detector=kind.value, error=str(exc))
                continue

            draft.sections.extend(result.sections)
            draft.summaries[kind] = DetectorSummary(
                count=result.count, confidence=result.confidence
            )
            if result.metadata is not None:
                draft.metadata = result.metadata
            if result.terminology:
                draft.terminology = result.terminology
            if result.compliance_markers:
                draft.compliance_markers = result.compliance_markers

    def _detect_type(self, draft: _ReportDraft, text: str) -> None:
        if self._registry is None:
            return
        try:
            best = detect_report_type(
                self._registry.list_all(),
                text=text,
                sections=draft.sections,
                markers=draft.compliance_markers,
            )
        except Exception as exc:  # noqa: BLE001
            draft.warnings.append(f"Report type detection failed: {exc}")
            self._logger.warning("report_type_detection_failed", error=str(exc))
            return

        if best is not None:
            draft.detected_report_type = best.report_type_id
            self._logger.info(
                "report_type_detected", report_type_id=best.report_type_id, score=best.score
            )

    def _emit(self, event_type: EventType, payload: dict[str, JSONValue]) -> None:
        if self._event_bus is None:
            return
        _, errors = self._event_bus.emit(event_type, payload)
        for error in errors:
            self._logger.warning(
                "event_subscriber_failed",
                event_type=error.event_type,
                target=error.target,
                error=error.message,
            )


__all__ = ["ReportDecompiler"]
