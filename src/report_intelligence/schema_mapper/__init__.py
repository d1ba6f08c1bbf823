"""Mapping of decompiled reports onto report-type schemas."""

from report_intelligence.schema_mapper.mapper import (
    ReportSchemaMapper,
    infer_field_type,
    infer_purpose,
    match,
    score_report_type_fit,
)

__all__ = [
    "ReportSchemaMapper",
    "infer_field_type",
    "infer_purpose",
    "match",
    "score_report_type_fit",
]
