"""LLM provider implementations."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from openai import AsyncOpenAI

from ..config import Settings, get_settings
from .items import (
    ModelRequest,
    ModelResponse,
    ModelStreamChunk,
    ResponseContent,
    RunItem,
    TextContent,
    ToolCallContent,
)
from .state import Usage


def _openai_format_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert tool schemas to OpenAI format."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool["name"],
                "description": tool["description"],
                "parameters": tool["parameters"],
            },
        }
        for tool in tools
    ]


def _stringify(output: Any) -> str:
    if isinstance(output, str):
        return output
    if hasattr(output, "model_dump_json"):
        return output.model_dump_json()
    try:
        return json.dumps(output)
    except (TypeError, ValueError):
        return str(output)


def history_to_messages(
    instructions: str | None, history: list[RunItem]
) -> list[dict[str, Any]]:
    """Convert run history into chat-completions messages.

    Consecutive assistant items of one turn are merged into a single assistant
    message. Tool calls that never received a result (calls skipped because a
    hand-off took precedence) are left out, since the API rejects unanswered
    calls.
    """
    answered = {
        item.call_id for item in history if item.kind in ("tool_result", "handoff")
    }
    messages: list[dict[str, Any]] = []
    if instructions:
        messages.append({"role": "system", "content": instructions})

    assistant: dict[str, Any] | None = None

    def flush() -> None:
        nonlocal assistant
        if assistant is not None:
            if not assistant["tool_calls"]:
                del assistant["tool_calls"]
            messages.append(assistant)
            assistant = None

    def pending_assistant() -> dict[str, Any]:
        nonlocal assistant
        if assistant is None:
            assistant = {"role": "assistant", "content": None, "tool_calls": []}
        return assistant

    for item in history:
        if item.kind == "user_input":
            flush()
            messages.append({"role": "user", "content": item.content})
        elif item.kind == "assistant_text":
            msg = pending_assistant()
            msg["content"] = (msg["content"] or "") + item.content
        elif item.kind in ("tool_call", "handoff_call"):
            if item.call_id not in answered:
                continue
            name = item.name if item.kind == "tool_call" else item.target
            arguments = item.arguments if item.kind == "tool_call" else {}
            pending_assistant()["tool_calls"].append(
                {
                    "id": item.call_id,
                    "type": "function",
                    "function": {"name": name, "arguments": json.dumps(arguments)},
                }
            )
        elif item.kind == "tool_result":
            flush()
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": item.call_id,
                    "content": _stringify(item.output),
                }
            )
        elif item.kind == "handoff":
            flush()
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": item.call_id,
                    "content": json.dumps({"assistant": item.target}),
                }
            )
    flush()
    return messages


def _usage_from(raw: Any) -> Usage:
    if raw is None:
        return Usage()
    return Usage(
        requests=1,
        input_tokens=raw.prompt_tokens or 0,
        output_tokens=raw.completion_tokens or 0,
        total_tokens=raw.total_tokens or 0,
    )


@dataclass
class OpenAI:
    """OpenAI chat-completions provider.

    Works with any OpenAI-compatible endpoint through ``base_url``. Transient
    failures are retried by the SDK (``max_retries``).
    """

    model: str = "gpt-4o-mini"
    api_key: str | None = None
    base_url: str | None = None
    max_retries: int = 2
    _client: AsyncOpenAI | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> OpenAI:
        settings = settings or get_settings()
        return cls(
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
            max_retries=settings.max_retries,
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=self.max_retries,
            )
        return self._client

    def _request_params(self, request: ModelRequest) -> dict[str, Any]:
        request_params: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": history_to_messages(request.instructions, request.history),
            **request.model_settings.to_request_kwargs(),
        }

        if request.tools:
            request_params["tools"] = _openai_format_tools(request.tools)
        else:
            request_params.pop("tool_choice", None)
            request_params.pop("parallel_tool_calls", None)

        if request.output_schema is not None:
            request_params["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "final_output",
                    "schema": request.output_schema,
                    "strict": False,
                },
            }
        return request_params

    async def complete(self, request: ModelRequest) -> ModelResponse:
        """Generate a completion using the chat-completions API."""
        response = await self.client.chat.completions.create(
            **self._request_params(request)
        )
        message = response.choices[0].message

        output: list[ResponseContent] = []
        if message.content:
            output.append(TextContent(text=message.content))
        for tc in message.tool_calls or []:
            output.append(
                ToolCallContent(
                    call_id=tc.id,
                    name=tc.function.name,
                    arguments=tc.function.arguments,
                )
            )

        return ModelResponse(
            output=output, usage=_usage_from(response.usage), response_id=response.id
        )

    async def stream(self, request: ModelRequest) -> AsyncIterator[ModelStreamChunk]:
        """Stream a completion, yielding text deltas then the full response."""
        stream = await self.client.chat.completions.create(
            **self._request_params(request),
            stream=True,
            stream_options={"include_usage": True},
        )

        text_parts: list[str] = []
        calls: dict[int, dict[str, str]] = {}
        usage = Usage()
        response_id = None

        async for chunk in stream:
            response_id = chunk.id
            if chunk.usage is not None:
                usage = _usage_from(chunk.usage)
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                text_parts.append(delta.content)
                yield ModelStreamChunk(kind="text_delta", delta=delta.content)
            for tc in delta.tool_calls or []:
                entry = calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                if tc.id:
                    entry["id"] = tc.id
                if tc.function is not None:
                    entry["name"] += tc.function.name or ""
                    entry["arguments"] += tc.function.arguments or ""

        output: list[ResponseContent] = []
        if text_parts:
            output.append(TextContent(text="".join(text_parts)))
        for index in sorted(calls):
            entry = calls[index]
            output.append(
                ToolCallContent(
                    call_id=entry["id"], name=entry["name"], arguments=entry["arguments"]
                )
            )

        yield ModelStreamChunk(
            kind="completed",
            response=ModelResponse(output=output, usage=usage, response_id=response_id),
        )


@dataclass
class VLLM(OpenAI):
    """vLLM local model provider (OpenAI-compatible API)."""

    model: str = "meta-llama/Llama-3.1-8B-Instruct"
    api_key: str | None = "EMPTY"
    base_url: str | None = "http://localhost:8000/v1"


__all__ = ["OpenAI", "VLLM", "history_to_messages"]
