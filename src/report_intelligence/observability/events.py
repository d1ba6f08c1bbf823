"""In-process synchronous event bus with a bounded replay buffer."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from report_intelligence.domain._coerce import as_utc_datetime
from report_intelligence.domain.events import EventType, PipelineEvent, as_json_object

Subscriber = Callable[[PipelineEvent], object]

_DEFAULT_ERROR_BUFFER: Final[int] = 1024


@dataclass(frozen=True, slots=True)
class DispatchError:
    """Subscriber failure captured without interrupting the publisher."""

    event_id: str
    event_type: str
    target: str
    error_type: str
    message: str


@dataclass(frozen=True, slots=True)
class _Subscription:
    token: int
    event_type: EventType | None
    callback: Subscriber


class EventBus:
    """Deliver pipeline events to per-type or wildcard subscribers in subscription order."""

    def __init__(self, *, buffer_size: int = 512) -> None:
        if isinstance(buffer_size, bool) or not isinstance(buffer_size, int):
            raise ValueError(f"buffer_size must be an integer, got {type(buffer_size).__name__}")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be > 0")

        self._buffer = deque[PipelineEvent](maxlen=buffer_size)
        self._subscriptions: dict[int, _Subscription] = {}
        self._dispatch_errors = deque[DispatchError](maxlen=_DEFAULT_ERROR_BUFFER)
        self._next_token = 1
        self._lock = threading.RLock()

    def subscribe(self, event_type: str | EventType | None, callback: Subscriber) -> int:
        """Subscribe ``callback`` to one event type, or to every event when ``None``."""

        if not callable(callback):
            raise ValueError("callback must be callable")
        normalized = None if event_type is None else _as_event_type(event_type)

        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscriptions[token] = _Subscription(
                token=token, event_type=normalized, callback=callback
            )
        return token

    def unsubscribe(self, token: int) -> bool:
        """Returns ``True`` when the token existed."""

        if isinstance(token, bool) or not isinstance(token, int):
            raise ValueError(f"token must be an integer, got {type(token).__name__}")
        with self._lock:
            return self._subscriptions.pop(token, None) is not None

    def publish(self, event: PipelineEvent) -> tuple[DispatchError, ...]:
        if not isinstance(event, PipelineEvent):
            raise ValueError(f"event must be PipelineEvent, got {type(event).__name__}")
        with self._lock:
            self._buffer.append(event)
            subscriptions = tuple(self._subscriptions.values())

        errors: list[DispatchError] = []
        for subscription in subscriptions:
            wanted = subscription.event_type
            if wanted is not None and wanted is not event.event_type:
                continue
            try:
                subscription.callback(event)
            except Exception as exc:  # noqa: BLE001
                errors.append(
                    DispatchError(
                        event_id=event.event_id,
                        event_type=event.event_type.value,
                        target=_callback_name(subscription.callback),
                        error_type=exc.__class__.__name__,
                        message=str(exc),
                    )
                )

        if errors:
            with self._lock:
                self._dispatch_errors.extend(errors)
        return tuple(errors)

    def emit(
        self,
        event_type: str | EventType,
        payload: Mapping[str, object] | None = None,
    ) -> tuple[PipelineEvent, tuple[DispatchError, ...]]:
        """Build an event of ``event_type`` and publish it."""

        event = PipelineEvent.create(
            _as_event_type(event_type),
            None if payload is None else as_json_object(payload, "payload"),
        )
        return event, self.publish(event)

    def replay(
        self,
        *,
        since: datetime | str | None = None,
        event_type: str | EventType | None = None,
        limit: int | None = None,
    ) -> tuple[PipelineEvent, ...]:
        """Buffered events in publish order, optionally filtered."""

        since_dt = None if since is None else as_utc_datetime(since, "since")
        type_filter = None if event_type is None else _as_event_type(event_type)

        with self._lock:
            events = tuple(self._buffer)

        filtered = [
            event
            for event in events
            if not (
                (since_dt is not None and event.timestamp <= since_dt)
                or (type_filter is not None and event.event_type is not type_filter)
            )
        ]
        if limit is not None:
            if limit <= 0:
                return ()
            filtered = filtered[-limit:]
        return tuple(filtered)

    def dispatch_errors(self, *, limit: int | None = None) -> tuple[DispatchError, ...]:
        with self._lock:
            errors = tuple(self._dispatch_errors)
        if limit is None:
            return errors
        if limit <= 0:
            return ()
        return errors[-limit:]


def _as_event_type(value: str | EventType) -> EventType:
    if isinstance(value, EventType):
        return value
    if not isinstance(value, str):
        raise ValueError(f"event_type must be string/EventType, got {type(value).__name__}")
    try:
        return EventType(value.strip())
    except ValueError as exc:
        allowed = ", ".join(item.value for item in EventType)
        raise ValueError(f"invalid event_type {value!r}; allowed: {allowed}") from exc


def _callback_name(callback: object) -> str:
    name = getattr(callback, "__name__", None)
    if isinstance(name, str) and name:
        return name
    return callback.__class__.__name__


__all__ = ["DispatchError", "EventBus", "Subscriber"]
