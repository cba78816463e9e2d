"""Run state types."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Iterable, TypeVar

if TYPE_CHECKING:
    from .agent import Agent
    from .items import ModelResponse, RunItem

TContext = TypeVar("TContext")


@dataclass
class Usage:
    """Token usage accumulated across model calls."""

    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: Usage) -> None:
        self.requests += other.requests
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens


@dataclass
class RunContext(Generic[TContext]):
    """Per-run context handed to tools, guardrails and dynamic instructions.

    Args:
        context: Arbitrary user object supplied to ``Runner.run``
        usage: Usage accumulated so far in the run
        run_id: Identifier of the run
    """

    context: TContext | None = None
    usage: Usage = field(default_factory=Usage)
    run_id: str = ""


class RunState:
    """Mutable state threaded through the orchestration loop.

    Owned by exactly one run. History is append-only: items can be added but
    never replaced or removed.
    """

    def __init__(
        self,
        agent: Agent,
        items: Iterable[RunItem],
        context: Any = None,
        run_id: str | None = None,
    ):
        self.run_id = run_id or f"run_{uuid.uuid4().hex[:12]}"
        self.current_agent = agent
        self.current_turn = 0
        self.usage = Usage()
        self.raw_responses: list[ModelResponse] = []
        self.run_context: RunContext[Any] = RunContext(
            context=context, usage=self.usage, run_id=self.run_id
        )
        self._history: list[RunItem] = list(items)
        self.input_length = len(self._history)

    @property
    def history(self) -> tuple[RunItem, ...]:
        return tuple(self._history)

    @property
    def new_items(self) -> tuple[RunItem, ...]:
        """Items produced during this run (input items excluded)."""
        return tuple(self._history[self.input_length :])

    def append(self, item: RunItem) -> None:
        self._history.append(item)

    def extend(self, items: Iterable[RunItem]) -> None:
        self._history.extend(items)

    def record_response(self, response: ModelResponse) -> None:
        self.raw_responses.append(response)
        reported = response.usage
        self.usage.add(
            Usage(
                requests=max(reported.requests, 1),
                input_tokens=reported.input_tokens,
                output_tokens=reported.output_tokens,
                total_tokens=reported.total_tokens,
            )
        )

    def __repr__(self) -> str:
        return (
            f"RunState(run_id={self.run_id!r}, agent={self.current_agent.name!r}, "
            f"turn={self.current_turn}, items={len(self._history)})"
        )
