"""agentrelay - Multi-agent orchestration with tools, hand-offs and guardrails."""

from .agents import (
    Agent,
    GuardrailResult,
    Handoff,
    ModelResponse,
    RunContext,
    Runner,
    RunResult,
    RunResultStreaming,
    StreamEvent,
    Tool,
    handoff,
    input_guardrail,
    output_guardrail,
    tool,
)
from .config import ModelSettings, RunConfig, Settings, get_settings
from .errors import (
    AgentRelayError,
    GuardrailTripwireTriggered,
    HandoffNotFoundError,
    InputGuardrailTripwireTriggered,
    MaxTurnsExceededError,
    ModelBehaviorError,
    OutputGuardrailTripwireTriggered,
    ToolExecutionError,
    UserError,
)
from .logging_utils import setup_logging

__version__ = "0.1.0"

__all__ = [
    # Core
    "Agent",
    "Handoff",
    "ModelResponse",
    "RunContext",
    "Runner",
    "RunResult",
    "RunResultStreaming",
    "StreamEvent",
    "Tool",
    "GuardrailResult",
    "handoff",
    "input_guardrail",
    "output_guardrail",
    "tool",
    # Configuration
    "ModelSettings",
    "RunConfig",
    "Settings",
    "get_settings",
    "setup_logging",
    # Errors
    "AgentRelayError",
    "GuardrailTripwireTriggered",
    "HandoffNotFoundError",
    "InputGuardrailTripwireTriggered",
    "MaxTurnsExceededError",
    "ModelBehaviorError",
    "OutputGuardrailTripwireTriggered",
    "ToolExecutionError",
    "UserError",
]
