"""Pipeline event definitions and serialization."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from report_intelligence.domain import ids
from report_intelligence.domain._coerce import (
    JSONValue,
    as_enum,
    as_str,
    as_utc_datetime,
    expect_object,
    iso8601z,
    utc_now,
)

_MAX_PAYLOAD_DEPTH = 16


class EventType(StrEnum):
    """Lifecycle events emitted by the decompiler, schema mapper and validation engine."""

    DECOMPILER_INGESTED = "decompiler.ingested"
    DECOMPILER_SECTIONS_DETECTED = "decompiler.sections_detected"
    DECOMPILER_METADATA_EXTRACTED = "decompiler.metadata_extracted"
    DECOMPILER_TERMINOLOGY_EXTRACTED = "decompiler.terminology_extracted"
    DECOMPILER_COMPLIANCE_MARKERS_EXTRACTED = "decompiler.compliance_markers_extracted"
    DECOMPILER_STRUCTURE_BUILT = "decompiler.structure_built"
    DECOMPILER_COMPLETED = "decompiler.completed"
    DECOMPILER_ERROR = "decompiler.error"

    SCHEMA_MAPPER_STARTED = "schema_mapper.started"
    SCHEMA_MAPPER_REPORT_TYPE_IDENTIFIED = "schema_mapper.report_type_identified"
    SCHEMA_MAPPER_COMPLETED = "schema_mapper.completed"
    SCHEMA_MAPPER_ERROR = "schema_mapper.error"

    VALIDATION_STARTED = "validation.started"
    VALIDATION_RULE_PROCESSED = "validation.rule_processed"
    VALIDATION_COMPLIANCE_CHECKED = "validation.compliance_checked"
    VALIDATION_QUALITY_CHECKED = "validation.quality_checked"
    VALIDATION_COMPLETENESS_CHECKED = "validation.completeness_checked"
    VALIDATION_CONSISTENCY_CHECKED = "validation.consistency_checked"
    VALIDATION_TERMINOLOGY_CHECKED = "validation.terminology_checked"
    VALIDATION_COMPLETED = "validation.completed"
    VALIDATION_ERROR = "validation.error"


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    """Serializable event envelope published on the in-process event bus."""

    event_id: str
    event_type: EventType
    timestamp: datetime
    payload: dict[str, JSONValue]

    def __post_init__(self) -> None:
        ids.validate_prefixed_id(self.event_id, ids.EVENT_ID_PREFIX)
        as_json_object(self.payload, "PipelineEvent.payload")

    @classmethod
    def create(
        cls, event_type: EventType, payload: dict[str, JSONValue] | None = None
    ) -> PipelineEvent:
        return cls(
            event_id=ids.generate_event_id(),
            event_type=event_type,
            timestamp=utc_now(),
            payload={} if payload is None else dict(payload),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": iso8601z(self.timestamp),
            "payload": as_json_object(self.payload, "PipelineEvent.payload"),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: object) -> PipelineEvent:
        parsed = expect_object(
            data,
            "PipelineEvent",
            required={"event_id", "event_type", "timestamp", "payload"},
        )
        return cls(
            event_id=as_str(parsed["event_id"], "PipelineEvent.event_id", allow_empty=False),
            event_type=as_enum(EventType, parsed["event_type"], "PipelineEvent.event_type"),
            timestamp=as_utc_datetime(parsed["timestamp"], "PipelineEvent.timestamp"),
            payload=as_json_object(parsed["payload"], "PipelineEvent.payload"),
        )

    @classmethod
    def from_json(cls, raw: str) -> PipelineEvent:
        if not isinstance(raw, str):
            raise ValueError(f"PipelineEvent: expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"PipelineEvent: invalid JSON: {exc}") from exc
        return cls.from_dict(parsed)


def _as_json_value(value: object, path: str, *, depth: int = 0) -> JSONValue:
    if depth > _MAX_PAYLOAD_DEPTH:
        raise ValueError(f"{path}: JSON nesting too deep")

    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{path}: float value must be finite")
        return value
    if isinstance(value, (list, tuple)):
        return [
            _as_json_value(item, f"{path}[{idx}]", depth=depth + 1)
            for idx, item in enumerate(value)
        ]
    if isinstance(value, dict):
        out: dict[str, JSONValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{path}: object keys must be strings")
            out[key] = _as_json_value(item, f"{path}.{key}", depth=depth + 1)
        return out
    raise ValueError(f"{path}: value is not JSON-serializable ({type(value).__name__})")


def as_json_object(value: object, path: str) -> dict[str, JSONValue]:
    parsed = _as_json_value(value, path)
    if not isinstance(parsed, dict):
        raise ValueError(f"{path}: expected object")
    return parsed


__all__ = ["EventType", "PipelineEvent", "as_json_object"]
