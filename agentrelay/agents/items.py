"""Conversation items and the model request/response types.

History entries and response content are tagged variants: every type carries a
``kind`` literal so the runner can dispatch on it exhaustively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from ..config import ModelSettings
from .state import Usage


# ---------------------------------------------------------------------------
# History items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserInputItem:
    """Input supplied by the user."""

    content: str
    kind: Literal["user_input"] = "user_input"


@dataclass(frozen=True)
class AssistantTextItem:
    """Text produced by the model on behalf of an agent."""

    content: str
    agent: str
    kind: Literal["assistant_text"] = "assistant_text"


@dataclass(frozen=True)
class ToolCallItem:
    """A tool invocation requested by the model.

    Args:
        call_id: Identifier pairing the call with its result
        name: Name of the tool to invoke
        arguments: Parsed arguments for the tool
        agent: Name of the agent whose turn produced the call
    """

    call_id: str
    name: str
    arguments: dict[str, Any]
    agent: str
    kind: Literal["tool_call"] = "tool_call"


@dataclass(frozen=True)
class ToolResultItem:
    """The outcome of a tool call, fed back to the model."""

    call_id: str
    name: str
    output: Any
    agent: str
    is_error: bool = False
    kind: Literal["tool_result"] = "tool_result"


@dataclass(frozen=True)
class HandoffCallItem:
    """The model's request to transfer control to another agent."""

    call_id: str
    target: str
    agent: str
    kind: Literal["handoff_call"] = "handoff_call"


@dataclass(frozen=True)
class HandoffItem:
    """Marker recording that control moved from ``source`` to ``target``."""

    call_id: str
    source: str
    target: str
    kind: Literal["handoff"] = "handoff"


RunItem = Union[
    UserInputItem,
    AssistantTextItem,
    ToolCallItem,
    ToolResultItem,
    HandoffCallItem,
    HandoffItem,
]


def coerce_input(value: str | list[RunItem]) -> list[RunItem]:
    """Normalize run input into a list of history items."""
    if isinstance(value, str):
        return [UserInputItem(content=value)]
    return list(value)


# ---------------------------------------------------------------------------
# Model response content
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextContent:
    text: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class ToolCallContent:
    """Tool call as returned by a provider.

    ``arguments`` may be a dict or a JSON-encoded string; the runner decodes it.
    """

    call_id: str
    name: str
    arguments: dict[str, Any] | str
    kind: Literal["tool_call"] = "tool_call"


@dataclass(frozen=True)
class HandoffContent:
    """Explicit hand-off marker naming the target agent."""

    call_id: str
    target: str
    kind: Literal["handoff"] = "handoff"


ResponseContent = Union[TextContent, ToolCallContent, HandoffContent]


@dataclass
class ModelResponse:
    """Ordered content items returned by a provider for one model call."""

    output: list[ResponseContent] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    response_id: str | None = None

    @property
    def text(self) -> str | None:
        """Concatenated text segments, or ``None`` when there are none."""
        parts = [c.text for c in self.output if c.kind == "text"]
        if not parts:
            return None
        return "".join(parts)


@dataclass
class ModelRequest:
    """Everything a provider needs to produce the next response.

    Args:
        instructions: System directive of the active agent
        history: Ordered conversation history
        tools: Tool schemas (name, description, parameters), hand-off tools included
        output_schema: JSON schema of the structured output, if any
        model_settings: Sampling settings
        model: Model name, if the agent or run configuration set one
    """

    instructions: str | None
    history: list[RunItem]
    tools: list[dict[str, Any]] = field(default_factory=list)
    output_schema: dict[str, Any] | None = None
    model_settings: ModelSettings = field(default_factory=ModelSettings)
    model: str | None = None


@dataclass(frozen=True)
class ModelStreamChunk:
    """Incremental provider output.

    ``text_delta`` chunks carry ``delta``; the final ``completed`` chunk carries
    the full ``response``.
    """

    kind: Literal["text_delta", "completed"]
    delta: str = ""
    response: ModelResponse | None = None
