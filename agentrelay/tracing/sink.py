"""Trace events and sinks.

Recording is best-effort: ``record_safely`` logs and drops any exception raised
by a sink so tracing can never fail a run.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

LOGGER = logging.getLogger(__name__)

__all__ = [
    "TraceEvent",
    "TraceSink",
    "InMemoryTraceSink",
    "LoggingTraceSink",
    "record_safely",
]


@dataclass(frozen=True)
class TraceEvent:
    """A structured trace event.

    Args:
        name: Event name, e.g. ``"tool_call.started"``
        run_id: Run the event belongs to
        data: Event payload
        timestamp: Wall-clock time the event was created
    """

    name: str
    run_id: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class TraceSink(Protocol):
    """Receives trace events. Must not block."""

    def record(self, event: TraceEvent) -> None: ...


class InMemoryTraceSink:
    """Keeps events in memory, mostly for tests and debugging."""

    def __init__(self) -> None:
        self._events: list[TraceEvent] = []
        self._lock = threading.Lock()

    def record(self, event: TraceEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[TraceEvent]:
        with self._lock:
            return list(self._events)

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingTraceSink:
    """Writes events to a logger."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        self._logger = logger or logging.getLogger("agentrelay.trace")
        self._level = level

    def record(self, event: TraceEvent) -> None:
        self._logger.log(self._level, "[%s] %s %s", event.run_id, event.name, event.data)


def record_safely(sink: TraceSink | None, event: TraceEvent) -> None:
    """Record ``event``, logging instead of raising if the sink fails."""
    if sink is None:
        return
    try:
        sink.record(event)
    except Exception:
        LOGGER.warning("Trace sink failed to record %s", event.name, exc_info=True)
