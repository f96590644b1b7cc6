"""In-process telemetry for backend calls made by the analysis engine."""

from __future__ import annotations

import logging
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any, Callable, Iterator, Mapping, Protocol, Sequence

LOGGER = logging.getLogger(__name__)

BACKEND_CALL_EVENT = "backend.call"

_EVENT_LISTENERS: dict[str, list[Callable[[dict[str, Any]], None]]] = {}


@dataclass(slots=True)
class BackendCallEvent:
    """Span describing one request to the model or search backend."""

    tool: str
    model: str | None = None
    text_length: int = 0
    strict: bool = False
    outcome: str = "ok"
    latency_ms: float = 0.0
    result_count: int | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)
    attributes: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


class TelemetrySink(Protocol):
    """Sink interface used to collect telemetry events."""

    def record(self, event: BackendCallEvent) -> None:  # pragma: no cover - protocol stub
        ...


class InMemoryTelemetrySink:
    """Simple ring-buffer telemetry sink for local inspection and tests."""

    def __init__(self, capacity: int = 200) -> None:
        self._capacity = max(10, capacity)
        self._buffer: deque[BackendCallEvent] = deque(maxlen=self._capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, event: BackendCallEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def tail(self, limit: int | None = None) -> list[BackendCallEvent]:
        with self._lock:
            events = list(self._buffer)
        if limit is None or limit >= len(events):
            return events
        return events[-limit:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


def snapshot_events(sink: TelemetrySink, limit: int | None = None) -> Sequence[BackendCallEvent]:
    """Best-effort helper to retrieve events from arbitrary sinks."""

    if hasattr(sink, "tail"):
        tail = getattr(sink, "tail")
        try:
            return list(tail(limit))  # type: ignore[misc]
        except TypeError:
            return list(tail())  # type: ignore[misc]
    raise NotImplementedError("Telemetry sink does not support snapshotting")


def register_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    """Register a callback invoked whenever :func:`emit` fires *event_name*."""

    if not event_name or callback is None:
        return
    listeners = _EVENT_LISTENERS.setdefault(event_name, [])
    if callback not in listeners:
        listeners.append(callback)


def unregister_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    listeners = _EVENT_LISTENERS.get(event_name)
    if listeners and callback in listeners:
        listeners.remove(callback)


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Broadcast a structured telemetry event to in-process listeners."""

    if not event_name:
        return
    event_payload = {"event": event_name}
    if payload:
        event_payload.update(payload)
    listeners = list(_EVENT_LISTENERS.get(event_name, ()))
    for callback in listeners:
        try:
            callback(dict(event_payload))
        except Exception:  # pragma: no cover - listeners must not break emitters
            LOGGER.debug("Telemetry listener %s failed", callback, exc_info=True)
    LOGGER.debug("Telemetry emit %s: %s", event_name, event_payload)


class BackendCallRecorder:
    """Times backend calls and publishes them to a sink and listeners."""

    def __init__(self, sink: TelemetrySink | None = None) -> None:
        self._sink = sink

    @property
    def sink(self) -> TelemetrySink | None:
        return self._sink

    @contextmanager
    def span(self, tool: str, *, model: str | None = None, text_length: int = 0, strict: bool = False) -> Iterator[BackendCallEvent]:
        """Record the wrapped block as one backend call; errors are noted and re-raised."""

        event = BackendCallEvent(tool=tool, model=model, text_length=text_length, strict=strict)
        started = time.perf_counter()
        try:
            yield event
        except Exception as exc:
            event.outcome = "error"
            event.error = str(exc) or type(exc).__name__
            raise
        except BaseException:
            event.outcome = "cancelled"
            raise
        finally:
            event.latency_ms = round((time.perf_counter() - started) * 1000.0, 3)
            self._publish(event)

    def _publish(self, event: BackendCallEvent) -> None:
        if self._sink is not None:
            try:
                self._sink.record(event)
            except Exception:  # pragma: no cover - sinks must not break callers
                LOGGER.debug("Telemetry sink failed to record %s", event.tool, exc_info=True)
        emit(BACKEND_CALL_EVENT, event.to_payload())


__all__ = [
    "BACKEND_CALL_EVENT",
    "BackendCallEvent",
    "BackendCallRecorder",
    "InMemoryTelemetrySink",
    "TelemetrySink",
    "emit",
    "register_event_listener",
    "snapshot_events",
    "unregister_event_listener",
]
