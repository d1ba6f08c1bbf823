"""Unit tests for the in-process event bus."""

from __future__ import annotations

from datetime import timedelta

import pytest

from report_intelligence.domain.events import EventType, PipelineEvent
from report_intelligence.observability import EventBus

pytestmark = pytest.mark.unit


def test_typed_and_wildcard_subscribers_run_in_subscription_order() -> None:
    bus = EventBus()
    calls: list[str] = []
    bus.subscribe(None, lambda event: calls.append(f"all:{event.event_type.value}"))
    bus.subscribe("validation.started", lambda event: calls.append("typed"))

    bus.emit(EventType.VALIDATION_STARTED, {"mapping_id": "map_1"})
    bus.emit(EventType.VALIDATION_COMPLETED)

    assert calls == ["all:validation.started", "typed", "all:validation.completed"]


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    calls: list[PipelineEvent] = []
    token = bus.subscribe(EventType.DECOMPILER_COMPLETED, calls.append)

    assert bus.unsubscribe(token) is True
    assert bus.unsubscribe(token) is False
    bus.emit(EventType.DECOMPILER_COMPLETED)

    assert calls == []
    with pytest.raises(ValueError, match="token must be an integer"):
        bus.unsubscribe(True)  # type: ignore[arg-type]


def test_failing_subscriber_is_recorded_and_others_still_run() -> None:
    bus = EventBus()
    delivered: list[PipelineEvent] = []

    def broken(event: PipelineEvent) -> None:
        raise RuntimeError("subscriber down")

    bus.subscribe(None, broken)
    bus.subscribe(None, delivered.append)

    event, errors = bus.emit(EventType.SCHEMA_MAPPER_STARTED)

    assert delivered == [event]
    (error,) = errors
    assert error.target == "broken"
    assert error.error_type == "RuntimeError"
    assert error.message == "subscriber down"
    assert bus.dispatch_errors() == errors
    assert bus.dispatch_errors(limit=0) == ()


def test_replay_filters_by_type_time_and_limit() -> None:
    bus = EventBus()
    first, _ = bus.emit(EventType.DECOMPILER_INGESTED)
    bus.emit(EventType.DECOMPILER_COMPLETED)
    last, _ = bus.emit(EventType.DECOMPILER_INGESTED)

    assert bus.replay(event_type="decompiler.ingested") == (first, last)
    assert bus.replay(limit=1) == (last,)
    assert bus.replay(limit=0) == ()
    assert bus.replay(since=last.timestamp) == ()
    assert len(bus.replay(since=first.timestamp - timedelta(seconds=1))) == 3


def test_buffer_keeps_only_recent_events() -> None:
    bus = EventBus(buffer_size=2)
    for _ in range(3):
        bus.emit(EventType.VALIDATION_RULE_PROCESSED)

    assert len(bus.replay()) == 2


@pytest.mark.parametrize("size", [0, -1, True, 2.5])
def test_buffer_size_must_be_positive_integer(size: object) -> None:
    with pytest.raises(ValueError, match="buffer_size"):
        EventBus(buffer_size=size)  # type: ignore[arg-type]


def test_invalid_inputs_are_rejected() -> None:
    bus = EventBus()

    with pytest.raises(ValueError, match="invalid event_type 'nope'"):
        bus.subscribe("nope", print)
    with pytest.raises(ValueError, match="callback must be callable"):
        bus.subscribe(None, "not callable")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="event must be PipelineEvent"):
        bus.publish({"event_type": "validation.started"})  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="float value must be finite"):
        bus.emit(EventType.VALIDATION_ERROR, {"score": float("nan")})
