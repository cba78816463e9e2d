"""Trace sinks for run telemetry."""

from .sink import (
    InMemoryTraceSink,
    LoggingTraceSink,
    TraceEvent,
    TraceSink,
    record_safely,
)

__all__ = [
    "InMemoryTraceSink",
    "LoggingTraceSink",
    "TraceEvent",
    "TraceSink",
    "record_safely",
]
