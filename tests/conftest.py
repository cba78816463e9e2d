"""Shared test fixtures."""

import asyncio
import itertools
from typing import Callable, Union

import pytest

from agentrelay.agents.items import (
    HandoffContent,
    ModelRequest,
    ModelResponse,
    ModelStreamChunk,
    TextContent,
    ToolCallContent,
)
from agentrelay.agents.state import Usage
from agentrelay.config import get_settings

_call_ids = itertools.count(1)


def text(value: str) -> TextContent:
    return TextContent(text=value)


def call(name: str, call_id: str | None = None, **arguments) -> ToolCallContent:
    return ToolCallContent(
        call_id=call_id or f"call_{next(_call_ids)}", name=name, arguments=arguments
    )


def handoff_to(target: str, call_id: str | None = None) -> HandoffContent:
    return HandoffContent(call_id=call_id or f"call_{next(_call_ids)}", target=target)


def response(*output, input_tokens: int = 0, output_tokens: int = 0) -> ModelResponse:
    return ModelResponse(
        output=list(output),
        usage=Usage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
        ),
    )


Step = Union[ModelResponse, Callable[[ModelRequest], ModelResponse]]


class ScriptedProvider:
    """Returns scripted responses in order and records every request.

    When the script runs out the last step repeats.
    """

    def __init__(self, *steps: Step):
        self._steps = list(steps)
        self.requests: list[ModelRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def _next(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)
        index = min(len(self.requests), len(self._steps)) - 1
        step = self._steps[index]
        return step(request) if callable(step) else step

    async def complete(self, request: ModelRequest) -> ModelResponse:
        await asyncio.sleep(0)
        return self._next(request)


class StreamingScriptedProvider(ScriptedProvider):
    """Scripted provider that streams text word by word."""

    async def stream(self, request: ModelRequest):
        result = self._next(request)
        for content in result.output:
            if content.kind == "text":
                for word in content.text.split(" "):
                    await asyncio.sleep(0)
                    yield ModelStreamChunk(kind="text_delta", delta=word)
        yield ModelStreamChunk(kind="completed", response=result)


@pytest.fixture(autouse=True)
def clean_settings():
    """Ensure cached environment settings do not leak between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
