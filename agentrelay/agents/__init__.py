"""Agent definitions and the orchestration loop."""

from .agent import Agent
from .guardrails import (
    GuardrailResult,
    InputGuardrail,
    OutputGuardrail,
    evaluate_guardrails,
    input_guardrail,
    output_guardrail,
)
from .handoffs import Handoff, HandoffRequest, handoff, resolve_handoff
from .items import (
    AssistantTextItem,
    HandoffCallItem,
    HandoffContent,
    HandoffItem,
    ModelRequest,
    ModelResponse,
    ModelStreamChunk,
    RunItem,
    TextContent,
    ToolCallContent,
    ToolCallItem,
    ToolResultItem,
    UserInputItem,
)
from .output import OutputMatch, OutputSchema, match_final_output
from .protocols import ModelProvider, StreamingModelProvider
from .providers import VLLM, OpenAI
from .result import RunResult
from .runner import Runner
from .state import RunContext, RunState, Usage
from .streaming import RunResultStreaming, StreamEvent
from .tool_executor import execute_tool_call, execute_tool_calls
from .tools import Tool, function_tool, tool

__all__ = [
    # High-level API
    "Agent",
    "Runner",
    "RunResult",
    "RunResultStreaming",
    "StreamEvent",
    # State types
    "RunContext",
    "RunState",
    "Usage",
    # Items
    "AssistantTextItem",
    "HandoffCallItem",
    "HandoffItem",
    "RunItem",
    "ToolCallItem",
    "ToolResultItem",
    "UserInputItem",
    # Provider types
    "HandoffContent",
    "ModelProvider",
    "ModelRequest",
    "ModelResponse",
    "ModelStreamChunk",
    "OpenAI",
    "StreamingModelProvider",
    "TextContent",
    "ToolCallContent",
    "VLLM",
    # Tools
    "Tool",
    "execute_tool_call",
    "execute_tool_calls",
    "function_tool",
    "tool",
    # Guardrails
    "GuardrailResult",
    "InputGuardrail",
    "OutputGuardrail",
    "evaluate_guardrails",
    "input_guardrail",
    "output_guardrail",
    # Hand-offs
    "Handoff",
    "HandoffRequest",
    "handoff",
    "resolve_handoff",
    # Output
    "OutputMatch",
    "OutputSchema",
    "match_final_output",
]
