"""Run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .agent import Agent
from .items import ModelResponse, RunItem
from .state import RunState, Usage


@dataclass
class RunResult:
    """Terminal value of a run.

    Args:
        final_output: Output matching the last agent's output type, ``None``
            when the run was cancelled
        history: Full conversation history, input included
        new_items: Items produced during the run
        last_agent: Agent active when the run ended
        turns: Number of model calls made
        usage: Token usage across the run
        status: ``"completed"`` or ``"cancelled"``
        run_id: Identifier of the run
        raw_responses: Provider responses in call order
    """

    final_output: Any
    history: tuple[RunItem, ...]
    new_items: tuple[RunItem, ...]
    last_agent: Agent
    turns: int
    usage: Usage
    status: Literal["completed", "cancelled"] = "completed"
    run_id: str = ""
    raw_responses: list[ModelResponse] = field(default_factory=list)

    @classmethod
    def from_state(
        cls,
        state: RunState,
        final_output: Any,
        status: Literal["completed", "cancelled"] = "completed",
    ) -> RunResult:
        return cls(
            final_output=final_output,
            history=state.history,
            new_items=state.new_items,
            last_agent=state.current_agent,
            turns=state.current_turn,
            usage=state.usage,
            status=status,
            run_id=state.run_id,
            raw_responses=list(state.raw_responses),
        )

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"

    def to_input_list(self) -> list[RunItem]:
        """History to pass as input for the next run of a conversation."""
        return list(self.history)

    def final_output_as(self, cls: type) -> Any:
        """Return ``final_output`` after checking it is an instance of ``cls``."""
        if not isinstance(self.final_output, cls):
            raise TypeError(
                f"Final output is {type(self.final_output).__name__}, not {cls.__name__}"
            )
        return self.final_output
