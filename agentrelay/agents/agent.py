"""Agent definitions."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Union

from ..config import ModelSettings
from ..errors import UserError
from .guardrails import InputGuardrail, OutputGuardrail
from .handoffs import Handoff, as_handoff
from .output import OutputSchema
from .state import RunContext
from .tools import Tool, as_tool

if TYPE_CHECKING:
    from .protocols import ModelProvider

Instructions = Union[
    str, Callable[[RunContext, "Agent"], Union[str, Awaitable[str]]], None
]
ToolUseBehavior = Union[Literal["run_llm_again", "stop_on_first_tool"], tuple[str, ...]]


@dataclass(frozen=True, eq=False)
class Agent:
    """Immutable description of one agent.

    Args:
        name: Unique name within a run
        instructions: System directive, or a callable ``(context, agent)``
            computing it per turn (sync or async)
        tools: Tools the model may call, as ``Tool`` objects or plain functions
        handoffs: Agents control may be transferred to. Entries are agents,
            ``Handoff`` objects, or zero-argument callables returning either,
            which lets two agents refer to each other.
        output_type: Type the final output must validate against. ``None`` or
            ``str`` means plain text.
        model: Model name, or a provider instance used for this agent's turns
        model_settings: Sampling settings for this agent
        input_guardrails: Checks on the run input (starting agent only)
        output_guardrails: Checks on the final output
        tool_use_behavior: ``"run_llm_again"`` feeds tool results back to the
            model; ``"stop_on_first_tool"`` uses the first tool result as the
            final output; a tuple of tool names stops when one of them runs.
        handoff_description: Extra text for hand-off tools targeting this agent

    Example:
        >>> from agentrelay import Agent, Runner
        >>>
        >>> agent = Agent(name="assistant", instructions="Be brief.")
        >>> result = await Runner.run(agent, "Hello")
        >>> print(result.final_output)
    """

    name: str
    instructions: Instructions = None
    tools: tuple[Tool, ...] = ()
    handoffs: tuple[Any, ...] = ()
    output_type: Any = None
    model: str | ModelProvider | None = None
    model_settings: ModelSettings = field(default_factory=ModelSettings)
    input_guardrails: tuple[InputGuardrail, ...] = ()
    output_guardrails: tuple[OutputGuardrail, ...] = ()
    tool_use_behavior: ToolUseBehavior = "run_llm_again"
    handoff_description: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise UserError("Agent name must be a non-empty string")

        # Frozen: normalize sequences in place once, at construction.
        object.__setattr__(self, "tools", tuple(as_tool(t) for t in self.tools))
        object.__setattr__(self, "handoffs", tuple(self.handoffs))
        object.__setattr__(self, "input_guardrails", tuple(self.input_guardrails))
        object.__setattr__(self, "output_guardrails", tuple(self.output_guardrails))
        if isinstance(self.tool_use_behavior, str):
            if self.tool_use_behavior not in ("run_llm_again", "stop_on_first_tool"):
                raise UserError(
                    f"Agent '{self.name}' has invalid tool_use_behavior "
                    f"{self.tool_use_behavior!r}; pass tool names as a list or tuple"
                )
        else:
            object.__setattr__(self, "tool_use_behavior", tuple(self.tool_use_behavior))

        # Lazy hand-off entries are only resolved per turn, in tool_schemas().
        names = [t.name for t in self.tools] + [
            as_handoff(h).tool_name
            for h in self.handoffs
            if isinstance(h, (Agent, Handoff))
        ]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise UserError(f"Agent '{self.name}' has duplicate tool names: {duplicates}")

    def clone(self, **changes: Any) -> Agent:
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    @property
    def handoff_specs(self) -> tuple[Handoff, ...]:
        specs = []
        for entry in self.handoffs:
            if callable(entry) and not isinstance(entry, (Agent, Handoff)):
                entry = entry()
            specs.append(as_handoff(entry))
        return tuple(specs)

    @property
    def output_schema(self) -> OutputSchema | None:
        if self.output_type is None or self.output_type is str:
            return None
        return OutputSchema(self.output_type)

    def tool_map(self) -> dict[str, Tool]:
        return {t.name: t for t in self.tools}

    def tool_schemas(self) -> list[dict[str, Any]]:
        """Schemas of tools and hand-off tools offered to the model.

        Raises:
            UserError: If a hand-off tool name collides with another tool
        """
        schemas = [t.schema() for t in self.tools]
        seen = {t.name for t in self.tools}
        for entry in self.handoff_specs:
            if entry.tool_name in seen:
                raise UserError(
                    f"Agent '{self.name}' has duplicate tool names: ['{entry.tool_name}']"
                )
            seen.add(entry.tool_name)
            schemas.append(entry.schema())
        return schemas

    async def get_instructions(self, context: RunContext) -> str | None:
        if self.instructions is None or isinstance(self.instructions, str):
            return self.instructions
        result = self.instructions(context, self)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r})"
