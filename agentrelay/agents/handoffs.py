"""Hand-off definitions and resolution."""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..errors import HandoffNotFoundError
from .state import RunContext

if TYPE_CHECKING:
    from .agent import Agent


def default_tool_name(agent_name: str) -> str:
    """``"Billing Agent"`` -> ``"transfer_to_billing_agent"``."""
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", agent_name).strip("_").lower()
    return f"transfer_to_{slug}"


@dataclass(frozen=True)
class Handoff:
    """A permitted transfer of control to ``agent``.

    The model requests the hand-off by calling ``tool_name`` or by returning an
    explicit hand-off marker naming the agent.

    Args:
        agent: Target agent
        tool_name: Name of the hand-off tool exposed to the model
        tool_description: Description of the hand-off tool
        on_handoff: Optional callback ``(context, source, target)`` run when the
            hand-off is applied, sync or async
    """

    agent: Agent
    tool_name: str
    tool_description: str
    on_handoff: Callable[[RunContext, Agent, Agent], Awaitable[None] | None] | None = None

    @property
    def agent_name(self) -> str:
        return self.agent.name

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.tool_name,
            "description": self.tool_description,
            "parameters": {
                "type": "object",
                "properties": {},
                "additionalProperties": False,
            },
        }

    async def invoke_callback(
        self, context: RunContext, source: Agent
    ) -> None:
        if self.on_handoff is None:
            return
        result = self.on_handoff(context, source, self.agent)
        if inspect.isawaitable(result):
            await result


def handoff(
    agent: Agent,
    *,
    tool_name_override: str | None = None,
    tool_description_override: str | None = None,
    on_handoff: Callable[[RunContext, Agent, Agent], Awaitable[None] | None] | None = None,
) -> Handoff:
    """Create a customised hand-off to ``agent``."""
    description = tool_description_override or (
        f"Handoff to the {agent.name} agent to handle the request."
        + (f" {agent.handoff_description}" if agent.handoff_description else "")
    )
    return Handoff(
        agent=agent,
        tool_name=tool_name_override or default_tool_name(agent.name),
        tool_description=description,
        on_handoff=on_handoff,
    )


def as_handoff(value: Agent | Handoff) -> Handoff:
    if isinstance(value, Handoff):
        return value
    return handoff(value)


@dataclass(frozen=True)
class HandoffRequest:
    """A parsed hand-off request.

    ``target`` is either a hand-off tool name or an agent name.
    """

    call_id: str
    target: str


def resolve_handoff(agent: Agent, request: HandoffRequest) -> Handoff:
    """Return the hand-off of ``agent`` matching ``request``.

    Raises:
        HandoffNotFoundError: If the target is not one of the agent's hand-offs
    """
    for candidate in agent.handoff_specs:
        if request.target in (candidate.tool_name, candidate.agent_name):
            return candidate
    raise HandoffNotFoundError(
        agent.name,
        request.target,
        [h.agent_name for h in agent.handoff_specs],
    )
