"""
OpenAI-Compatible API Server for agentrelay
===========================================

This module provides reusable components to create an OpenAI-compatible API
server that runs agentrelay agents. Each registered agent is exposed as a
"model"; a chat completion runs the agent on the conversation.

Usage:
    1. Import create_app and AgentRegistry
    2. Register your agents
    3. Run the server

Example:
    from agentrelay import Agent, RunConfig
    from agentrelay.serve import create_app, AgentRegistry

    agent = Agent(name="assistant", instructions="Be helpful.")

    registry = AgentRegistry()
    registry.register("assistant", agent, set_default=True)

    app = create_app(registry, run_config=RunConfig(max_turns=8))

    # Run with: uvicorn my_module:app
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import replace
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from agentrelay import Agent, RunConfig, Runner
from agentrelay.config import ModelSettings
from agentrelay.agents.items import AssistantTextItem, RunItem, UserInputItem
from agentrelay.errors import (
    AgentRelayError,
    GuardrailTripwireTriggered,
    MaxTurnsExceededError,
)

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Pydantic Models for OpenAI API Compatibility
# -----------------------------------------------------------------------------


class Message(BaseModel):
    role: str
    content: str


class ChatCompletionRequest(BaseModel):
    model: Optional[str] = None
    messages: List[Message]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: bool = False
    top_p: Optional[float] = None


class ChatCompletionChoice(BaseModel):
    index: int
    message: Message
    finish_reason: str


class Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletionResponse(BaseModel):
    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: List[ChatCompletionChoice]
    usage: Usage


class DeltaMessage(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class ChatCompletionStreamChoice(BaseModel):
    index: int
    delta: DeltaMessage
    finish_reason: Optional[str] = None


class ChatCompletionChunk(BaseModel):
    id: str
    object: str = "chat.completion.chunk"
    created: int
    model: str
    choices: List[ChatCompletionStreamChoice]


# -----------------------------------------------------------------------------
# Agent Registry
# -----------------------------------------------------------------------------


class AgentRegistry:
    """Registry for agents served as models."""

    def __init__(self):
        self._agents: Dict[str, Agent] = {}
        self._default_name: Optional[str] = None

    def register(self, name: str, agent: Agent, set_default: bool = False):
        """Register an agent under a model name."""
        self._agents[name] = agent
        if set_default or not self._default_name:
            self._default_name = name

    def get_default(self) -> tuple[str, Agent]:
        """
        Get the default agent and its model name.

        Raises:
            KeyError: If no agent has been registered.
        """
        if self._default_name is None:
            raise KeyError("No default agent set in registry")
        return self._default_name, self._agents[self._default_name]

    def get_required(self, name: str) -> Agent:
        """
        Get an agent by model name.

        Raises:
            KeyError: If the name does not exist.
        """
        if name not in self._agents:
            raise KeyError(f"Agent '{name}' not found in registry")
        return self._agents[name]

    def list_agents(self) -> List[str]:
        """List all registered model names."""
        return list(self._agents.keys())


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def messages_to_input(messages: List[Message], agent_name: str) -> List[RunItem]:
    """Convert chat messages into run input.

    System messages are dropped; the agent's own instructions apply.
    """
    items: List[RunItem] = []
    for msg in messages:
        if msg.role == "user":
            items.append(UserInputItem(content=msg.content))
        elif msg.role == "assistant":
            items.append(AssistantTextItem(content=msg.content, agent=agent_name))
    return items


def render_output(output: Any) -> str:
    """Render a final output as message content."""
    if isinstance(output, str):
        return output
    if hasattr(output, "model_dump_json"):
        return output.model_dump_json()
    return json.dumps(output, default=str)


def _chunk(
    request_id: str, created: int, model: str, delta: DeltaMessage, finish: Optional[str] = None
) -> str:
    chunk = ChatCompletionChunk(
        id=request_id,
        created=created,
        model=model,
        choices=[ChatCompletionStreamChoice(index=0, delta=delta, finish_reason=finish)],
    )
    return f"data: {chunk.model_dump_json()}\n\n"


async def execute_agent_streaming(
    agent: Agent,
    items: List[RunItem],
    config: RunConfig,
    request_id: str,
    model: str,
) -> AsyncIterator[str]:
    """Run an agent and stream its text deltas as SSE chunks."""
    created = int(time.time())

    # Send initial chunk with role
    yield _chunk(request_id, created, model, DeltaMessage(role="assistant", content=""))

    result = Runner.run_streamed(agent, items, config=config)
    finish_reason = "stop"
    try:
        async for event in result.stream_events():
            if event.type == "response.partial_text":
                yield _chunk(
                    request_id, created, model, DeltaMessage(content=event.data["delta"])
                )
            elif event.type == "run.cancelled":
                finish_reason = "cancelled"
    except GuardrailTripwireTriggered as exc:
        LOGGER.info("Streaming request %s stopped by guardrail: %s", request_id, exc)
        finish_reason = "content_filter"
    except AgentRelayError as exc:
        LOGGER.warning("Streaming request %s failed: %s", request_id, exc)
        error = {"error": {"message": str(exc), "type": exc.__class__.__name__}}
        yield f"data: {json.dumps(error)}\n\n"
        finish_reason = "error"
    finally:
        # Stops the run if the client disconnected mid-stream.
        result.cancel()

    # Send final chunk with finish_reason
    yield _chunk(request_id, created, model, DeltaMessage(), finish=finish_reason)
    yield "data: [DONE]\n\n"


# -----------------------------------------------------------------------------
# Error helpers (OpenAI-style shape)
# -----------------------------------------------------------------------------


def _openai_error(
    message: str,
    *,
    type_: str = "server_error",
    param: Optional[str] = None,
    code: Optional[str] = None,
    status_code: int = 500,
) -> HTTPException:
    """
    Return an HTTPException with an OpenAI-compatible error body.

    This keeps client behavior predictable for users of official SDKs.
    """
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "message": message,
                "type": type_,
                "param": param,
                "code": code,
            }
        },
    )


# -----------------------------------------------------------------------------
# FastAPI Application Factory
# -----------------------------------------------------------------------------


def create_app(registry: AgentRegistry, run_config: RunConfig | None = None) -> FastAPI:
    """
    Create a FastAPI application serving the agents in ``registry``.

    Args:
        registry: AgentRegistry with your agents already registered
        run_config: Base configuration for every run (provider, limits,
            guardrails). Request sampling parameters are layered on top.

    Returns:
        FastAPI application ready to run
    """
    base_config = run_config or RunConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info("agentrelay server started, agents: %s", registry.list_agents())
        yield

    app = FastAPI(
        title="agentrelay OpenAI API",
        description="OpenAI-compatible API for agentrelay agents",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "agentrelay OpenAI-Compatible API Server",
            "endpoints": {
                "chat_completions": "/v1/chat/completions",
                "models": "/v1/models",
                "health": "/health",
            },
            "agents": registry.list_agents(),
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/v1/models")
    async def list_models():
        """List available models (agents)."""
        return {
            "object": "list",
            "data": [
                {
                    "id": name,
                    "object": "model",
                    "created": int(time.time()),
                    "owned_by": "agentrelay",
                }
                for name in registry.list_agents()
            ],
        }

    @app.post("/v1/chat/completions")
    async def chat_completions(request: ChatCompletionRequest):
        """
        OpenAI-compatible chat completions endpoint.

        Runs the selected agent on the conversation and returns its final
        output as the assistant message.
        """
        try:
            if request.model:
                model_name, agent = request.model, registry.get_required(request.model)
            else:
                model_name, agent = registry.get_default()
        except KeyError as exc:
            raise _openai_error(
                str(exc),
                type_="invalid_request_error",
                param="model",
                status_code=404,
            )

        items = messages_to_input(request.messages, agent.name)
        if not any(isinstance(item, UserInputItem) for item in items):
            raise _openai_error(
                "No user message found",
                type_="invalid_request_error",
                param="messages",
                status_code=400,
            )

        overrides = ModelSettings(
            temperature=request.temperature,
            top_p=request.top_p,
            max_tokens=request.max_tokens,
        )
        base_settings = base_config.model_settings or ModelSettings()
        config = replace(base_config, model_settings=base_settings.resolve(overrides))

        request_id = f"chatcmpl-{uuid.uuid4().hex[:8]}"

        if request.stream:
            return StreamingResponse(
                execute_agent_streaming(agent, items, config, request_id, model_name),
                media_type="text/event-stream",
            )

        try:
            result = await Runner.run(agent, items, config=config)
        except GuardrailTripwireTriggered as exc:
            raise _openai_error(
                str(exc),
                type_="invalid_request_error",
                code="guardrail_tripped",
                status_code=400,
            )
        except MaxTurnsExceededError as exc:
            raise _openai_error(str(exc), code="max_turns_exceeded", status_code=500)
        except AgentRelayError as exc:
            raise _openai_error(
                f"Agent run failed: {exc}", code=exc.__class__.__name__, status_code=500
            )

        content = render_output(result.final_output)
        return ChatCompletionResponse(
            id=request_id,
            created=int(time.time()),
            model=model_name,
            choices=[
                ChatCompletionChoice(
                    index=0,
                    message=Message(role="assistant", content=content),
                    finish_reason="stop",
                )
            ],
            usage=Usage(
                prompt_tokens=result.usage.input_tokens,
                completion_tokens=result.usage.output_tokens,
                total_tokens=result.usage.total_tokens,
            ),
        )

    return app
