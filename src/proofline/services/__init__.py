"""Service layer helpers (settings, telemetry)."""

from .telemetry import BackendCallEvent, BackendCallRecorder, InMemoryTelemetrySink, emit

__all__ = [
    "BackendCallEvent",
    "BackendCallRecorder",
    "InMemoryTelemetrySink",
    "emit",
]
