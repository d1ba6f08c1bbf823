"""Report decompilation: heuristic detectors, hierarchy reconstruction and type detection."""

from report_intelligence.decompiler.classification import (
    ACCEPTANCE_THRESHOLD,
    TypeScore,
    detect_report_type,
    score_report_type,
)
from report_intelligence.decompiler.decompiler import ReportDecompiler
from report_intelligence.decompiler.detectors import DETECTORS, DetectionResult, Detector
from report_intelligence.decompiler.structure import (
    CONFIDENCE_WEIGHTS,
    aggregate_confidence,
    build_structure_map,
    link_hierarchy,
)
from report_intelligence.decompiler.text import normalize_text, split_lines

__all__ = [
    "ACCEPTANCE_THRESHOLD",
    "CONFIDENCE_WEIGHTS",
    "DETECTORS",
    "DetectionResult",
    "Detector",
    "ReportDecompiler",
    "TypeScore",
    "aggregate_confidence",
    "build_structure_map",
    "detect_report_type",
    "link_hierarchy",
    "normalize_text",
    "score_report_type",
    "split_lines",
]
