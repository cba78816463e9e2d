"""Streaming run events."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Literal

from .result import RunResult

StreamEventType = Literal[
    "response.partial_text",
    "response.completed",
    "tool_call.started",
    "tool_call.finished",
    "handoff.occurred",
    "guardrail.tripped",
    "run.completed",
    "run.failed",
    "run.cancelled",
]


@dataclass(frozen=True)
class StreamEvent:
    """One observable step of a run.

    Args:
        type: Event kind
        run_id: Run the event belongs to
        agent: Name of the agent active when the event was produced
        data: Event payload (items, deltas, outputs or errors)
    """

    type: StreamEventType
    run_id: str
    agent: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class RunResultStreaming:
    """Handle on a run executing in the background.

    Events are consumed with ``stream_events()``, a forward-only iterator that
    ends when the run ends. Consuming events never affects the run.

    Example:
        >>> result = Runner.run_streamed(agent, "Hi")
        >>> async for event in result.stream_events():
        ...     if event.type == "response.partial_text":
        ...         print(event.data["delta"], end="")
        >>> final = await result.result()
    """

    def __init__(self, run_id: str, cancel_event: asyncio.Event):
        self.run_id = run_id
        self._cancel_event = cancel_event
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._result: RunResult | None = None
        self._exception: BaseException | None = None
        self._drained = False

    def _emit(self, event: StreamEvent) -> None:
        self._queue.put_nowait(event)

    def _start(self, run: Awaitable[RunResult]) -> None:
        self._task = asyncio.create_task(self._drive(run))

    async def _drive(self, run: Awaitable[RunResult]) -> None:
        try:
            self._result = await run
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._exception = exc
        finally:
            self._queue.put_nowait(None)

    @property
    def is_complete(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Ask the run to stop at its next cancellation checkpoint."""
        self._cancel_event.set()

    async def stream_events(self) -> AsyncIterator[StreamEvent]:
        """Yield events until the run ends, then re-raise any run error."""
        if not self._drained:
            while True:
                event = await self._queue.get()
                if event is None:
                    self._drained = True
                    break
                yield event
        if self._exception is not None:
            raise self._exception

    async def result(self) -> RunResult:
        """Wait for the run to finish and return its result."""
        if self._task is not None:
            await asyncio.shield(self._task)
        if self._exception is not None:
            raise self._exception
        assert self._result is not None
        return self._result
