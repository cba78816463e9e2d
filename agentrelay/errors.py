"""Error types for agentrelay."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .agents.state import RunState


class AgentRelayError(Exception):
    """Base exception for all agentrelay errors.

    Attributes:
        run_state: State of the run at the point of failure. Attached by the
            runner before the error propagates, ``None`` when raised outside a
            run.
    """

    run_state: RunState | None = None


class UserError(AgentRelayError):
    """Raised when agents, tools or the run configuration are misconfigured."""

    pass


class MaxTurnsExceededError(AgentRelayError):
    """Raised when the turn limit is reached without a final output."""

    def __init__(self, max_turns: int):
        self.max_turns = max_turns
        super().__init__(f"Max turns ({max_turns}) exceeded without a final output")


class ModelBehaviorError(AgentRelayError):
    """Raised when the provider returns a response the runner cannot interpret."""

    pass


class HandoffNotFoundError(AgentRelayError):
    """Raised when the model requests a hand-off to an unknown agent."""

    def __init__(self, agent_name: str, target: str, available: list[str]):
        self.agent_name = agent_name
        self.target = target
        self.available: tuple[str, ...] = tuple(available)
        available_display = ", ".join(self.available) if self.available else "none"
        super().__init__(
            f"Agent '{agent_name}' cannot hand off to '{target}'. "
            f"Available targets: {available_display}"
        )


class ToolExecutionError(AgentRelayError):
    """Raised for a failed tool call.

    Non-fatal errors are reported back to the model as an error result.
    Tools raise ``ToolExecutionError(..., fatal=True)`` to abort the run.
    """

    def __init__(self, tool_name: str, message: str, *, fatal: bool = False):
        self.tool_name = tool_name
        self.fatal = fatal
        # Results of sibling calls that finished before a fatal error propagated.
        self.completed: tuple[Any, ...] = ()
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class GuardrailTripwireTriggered(AgentRelayError):
    """Raised when a guardrail trips.

    Attributes:
        kind: ``"input"`` or ``"output"``.
        guardrail_name: Name of the first guardrail that tripped.
        reason: Reason reported by the guardrail.
        payload: The value the guardrail was evaluated against.
    """

    kind: str = "input"

    def __init__(self, guardrail_name: str, reason: str | None, payload: Any):
        self.guardrail_name = guardrail_name
        self.reason = reason
        self.payload = payload
        super().__init__(
            f"{self.kind.capitalize()} guardrail '{guardrail_name}' tripped"
            + (f": {reason}" if reason else "")
        )


class InputGuardrailTripwireTriggered(GuardrailTripwireTriggered):
    """Raised when an input guardrail trips."""

    kind = "input"


class OutputGuardrailTripwireTriggered(GuardrailTripwireTriggered):
    """Raised when an output guardrail trips."""

    kind = "output"
