"""The orchestration loop.

Each iteration of a run:

1. stop if cancelled, fail if the turn limit is reached
2. input guardrails (first turn, or every turn if configured)
3. one model call for the active agent
4. parse the response into text, tool calls and hand-off requests
5. hand-off > tool calls > final output, in that order of precedence
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ..config import RunConfig
from ..errors import (
    AgentRelayError,
    GuardrailTripwireTriggered,
    MaxTurnsExceededError,
    ModelBehaviorError,
    ToolExecutionError,
    UserError,
)
from ..tracing import TraceEvent, TraceSink, record_safely
from .agent import Agent
from .guardrails import evaluate_guardrails
from .handoffs import HandoffRequest, resolve_handoff
from .items import (
    AssistantTextItem,
    HandoffCallItem,
    HandoffItem,
    ModelRequest,
    ModelResponse,
    RunItem,
    ToolCallContent,
    ToolCallItem,
    ToolResultItem,
    coerce_input,
)
from .output import OutputMatch, match_final_output
from .protocols import ModelProvider
from .result import RunResult
from .state import RunState
from .streaming import RunResultStreaming, StreamEvent, StreamEventType
from .tool_executor import execute_tool_calls

LOGGER = logging.getLogger(__name__)


@dataclass
class ParsedResponse:
    """A model response split by signal."""

    items: list[RunItem] = field(default_factory=list)
    tool_calls: list[ToolCallItem] = field(default_factory=list)
    handoffs: list[HandoffRequest] = field(default_factory=list)


def _decode_arguments(content: ToolCallContent) -> dict[str, Any]:
    arguments = content.arguments
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as exc:
            raise ModelBehaviorError(
                f"Invalid JSON arguments for tool call '{content.name}': {exc}"
            ) from exc
    if not isinstance(arguments, dict):
        raise ModelBehaviorError(
            f"Arguments for tool call '{content.name}' must be an object, "
            f"got {type(arguments).__name__}"
        )
    return arguments


def parse_response(agent: Agent, response: ModelResponse) -> ParsedResponse:
    """Split a response into history items, tool calls and hand-off requests.

    Tool calls naming one of the agent's hand-off tools become hand-off
    requests.

    Raises:
        ModelBehaviorError: On unknown content kinds or malformed arguments
    """
    parsed = ParsedResponse()
    handoff_tools = {h.tool_name for h in agent.handoff_specs}

    for content in response.output:
        kind = getattr(content, "kind", None)
        if kind == "text":
            parsed.items.append(AssistantTextItem(content=content.text, agent=agent.name))
        elif kind == "tool_call":
            arguments = _decode_arguments(content)
            if content.name in handoff_tools:
                parsed.items.append(
                    HandoffCallItem(
                        call_id=content.call_id, target=content.name, agent=agent.name
                    )
                )
                parsed.handoffs.append(
                    HandoffRequest(call_id=content.call_id, target=content.name)
                )
                continue
            item = ToolCallItem(
                call_id=content.call_id,
                name=content.name,
                arguments=arguments,
                agent=agent.name,
            )
            parsed.items.append(item)
            parsed.tool_calls.append(item)
        elif kind == "handoff":
            parsed.items.append(
                HandoffCallItem(
                    call_id=content.call_id, target=content.target, agent=agent.name
                )
            )
            parsed.handoffs.append(
                HandoffRequest(call_id=content.call_id, target=content.target)
            )
        else:
            raise ModelBehaviorError(f"Unexpected response content: {content!r}")

    return parsed


def tool_use_final_output(agent: Agent, results: list[ToolResultItem]) -> OutputMatch:
    """Apply the agent's ``tool_use_behavior`` to a batch of tool results."""
    behavior = agent.tool_use_behavior
    if behavior == "run_llm_again" or not results:
        return OutputMatch(matched=False)
    if behavior == "stop_on_first_tool":
        return OutputMatch(matched=True, value=results[0].output)
    for result in results:
        if result.name in behavior and not result.is_error:
            return OutputMatch(matched=True, value=result.output)
    return OutputMatch(matched=False)


class _RunLoop:
    """Drives one run. Never shared between runs."""

    def __init__(
        self,
        state: RunState,
        config: RunConfig,
        *,
        max_turns: int | None,
        cancel: asyncio.Event | None,
        emit: Callable[[StreamEvent], None] | None = None,
        input_payload: Any = None,
    ):
        self.state = state
        self.config = config
        self.max_turns = max_turns if max_turns is not None else config.resolved_max_turns()
        if self.max_turns < 1:
            raise UserError(f"max_turns must be at least 1, got {self.max_turns}")
        self.cancel = cancel
        self.emit = emit
        self.input_payload = input_payload
        self.sink: TraceSink | None = None if config.tracing_disabled else config.trace_sink
        self._default_provider: ModelProvider | None = None

    # ------------------------------------------------------------------ #
    # Observation
    # ------------------------------------------------------------------ #

    def _trace(self, name: str, **data: Any) -> None:
        record_safely(self.sink, TraceEvent(name=name, run_id=self.state.run_id, data=data))

    def _event(self, type_: StreamEventType, **data: Any) -> None:
        if self.emit is None:
            return
        self.emit(
            StreamEvent(
                type=type_,
                run_id=self.state.run_id,
                agent=self.state.current_agent.name,
                data=data,
            )
        )

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    async def run(self) -> RunResult:
        state = self.state
        LOGGER.info(
            "Run %s started (agent=%s, max_turns=%d)",
            state.run_id,
            state.current_agent.name,
            self.max_turns,
        )
        self._trace("run.started", agent=state.current_agent.name, max_turns=self.max_turns)

        try:
            result = await self._loop()
        except Exception as exc:
            if isinstance(exc, AgentRelayError):
                exc.run_state = state
            LOGGER.info(
                "Run %s failed on turn %d: %s: %s",
                state.run_id,
                state.current_turn,
                exc.__class__.__name__,
                exc,
            )
            self._event("run.failed", error=exc)
            self._trace(
                "run.finished",
                status="failed",
                turns=state.current_turn,
                error=exc.__class__.__name__,
            )
            raise

        LOGGER.info(
            "Run %s %s after %d turn(s)", state.run_id, result.status, state.current_turn
        )
        self._trace("run.finished", status=result.status, turns=state.current_turn)
        return result

    def _cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def _finish_cancelled(self) -> RunResult:
        LOGGER.info("Run %s cancelled on turn %d", self.state.run_id, self.state.current_turn)
        self._event("run.cancelled", turns=self.state.current_turn)
        return RunResult.from_state(self.state, None, status="cancelled")

    # ------------------------------------------------------------------ #
    # The loop
    # ------------------------------------------------------------------ #

    async def _loop(self) -> RunResult:
        state = self.state

        while True:
            if self._cancelled():
                return self._finish_cancelled()
            if state.current_turn >= self.max_turns:
                raise MaxTurnsExceededError(self.max_turns)

            state.current_turn += 1
            agent = state.current_agent
            LOGGER.debug("Run %s turn %d (agent=%s)", state.run_id, state.current_turn, agent.name)

            if state.current_turn == 1 or self.config.input_guardrails_every_turn:
                await self._run_input_guardrails(agent)

            response = await self._call_model(agent)
            parsed = parse_response(agent, response)
            state.extend(parsed.items)

            if parsed.handoffs:
                await self._apply_handoff(agent, parsed)
                continue

            if parsed.tool_calls:
                if self._cancelled():
                    return self._finish_cancelled()
                results = await self._execute_tools(agent, parsed.tool_calls)
                state.extend(results)

                match = tool_use_final_output(agent, results)
                if match.matched:
                    return await self._complete(agent, match.value)
                if self._cancelled():
                    return self._finish_cancelled()
                continue

            match = match_final_output(response, agent.output_schema)
            if match.matched:
                return await self._complete(agent, match.value)

            LOGGER.debug(
                "Run %s turn %d produced no final output, continuing",
                state.run_id,
                state.current_turn,
            )

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    async def _guarded(self, kind: str, guardrails: list, payload: Any, agent: Agent) -> None:
        try:
            await evaluate_guardrails(
                kind, guardrails, payload, self.state.run_context, agent
            )
        except GuardrailTripwireTriggered as exc:
            LOGGER.warning(
                "Run %s: %s guardrail '%s' tripped: %s",
                self.state.run_id,
                kind,
                exc.guardrail_name,
                exc.reason,
            )
            self._trace(
                "guardrail.tripped",
                kind=kind,
                guardrail=exc.guardrail_name,
                reason=exc.reason,
            )
            self._event(
                "guardrail.tripped",
                kind=kind,
                guardrail=exc.guardrail_name,
                reason=exc.reason,
                payload=payload,
            )
            raise

    async def _run_input_guardrails(self, agent: Agent) -> None:
        guardrails = [*agent.input_guardrails, *self.config.input_guardrails]
        if not guardrails:
            return
        if self.state.current_turn == 1:
            payload = self.input_payload
        else:
            payload = list(self.state.history)
        await self._guarded("input", guardrails, payload, agent)

    def _resolve_provider(self, agent: Agent) -> tuple[ModelProvider, str | None]:
        if agent.model is not None and not isinstance(agent.model, str):
            return agent.model, self.config.model
        model_name = self.config.model or agent.model
        if self.config.provider is not None:
            return self.config.provider, model_name
        if self._default_provider is None:
            from .providers import OpenAI

            self._default_provider = OpenAI.from_settings()
        return self._default_provider, model_name

    async def _call_model(self, agent: Agent) -> ModelResponse:
        state = self.state
        schema = agent.output_schema
        provider, model_name = self._resolve_provider(agent)
        request = ModelRequest(
            instructions=await agent.get_instructions(state.run_context),
            history=list(state.history),
            tools=agent.tool_schemas(),
            output_schema=schema.json_schema if schema is not None else None,
            model_settings=agent.model_settings.resolve(self.config.model_settings),
            model=model_name,
        )

        self._trace(
            "model_call.started",
            agent=agent.name,
            turn=state.current_turn,
            model=model_name,
            history_length=len(request.history),
        )
        if self.emit is not None and hasattr(provider, "stream"):
            response = await self._stream_model(provider, request)
        else:
            response = await provider.complete(request)

        if not isinstance(response, ModelResponse):
            raise ModelBehaviorError(
                f"Provider returned {type(response).__name__}, expected ModelResponse"
            )
        if self.emit is not None and not hasattr(provider, "stream") and response.text:
            self._event("response.partial_text", delta=response.text)
        state.record_response(response)
        self._trace(
            "model_call.finished",
            agent=agent.name,
            turn=state.current_turn,
            items=len(response.output),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        self._event("response.completed", output=list(response.output))
        return response

    async def _stream_model(self, provider: Any, request: ModelRequest) -> ModelResponse:
        response: ModelResponse | None = None
        async for chunk in provider.stream(request):
            if chunk.kind == "text_delta":
                if chunk.delta:
                    self._event("response.partial_text", delta=chunk.delta)
            elif chunk.kind == "completed":
                response = chunk.response
        if response is None:
            raise ModelBehaviorError("Model stream ended without a completed response")
        return response

    async def _apply_handoff(self, agent: Agent, parsed: ParsedResponse) -> None:
        state = self.state
        request = parsed.handoffs[0]
        chosen = resolve_handoff(agent, request)

        skipped = len(parsed.handoffs) - 1 + len(parsed.tool_calls)
        if skipped:
            LOGGER.debug(
                "Run %s: hand-off to %s takes precedence, %d other call(s) not executed",
                state.run_id,
                chosen.agent_name,
                skipped,
            )

        marker = HandoffItem(
            call_id=request.call_id, source=agent.name, target=chosen.agent_name
        )
        state.append(marker)
        await chosen.invoke_callback(state.run_context, agent)
        state.current_agent = chosen.agent

        LOGGER.info("Run %s: hand-off %s -> %s", state.run_id, agent.name, chosen.agent_name)
        self._trace("handoff", source=agent.name, target=chosen.agent_name, turn=state.current_turn)
        self._event("handoff.occurred", source=agent.name, target=chosen.agent_name, item=marker)

    async def _execute_tools(
        self, agent: Agent, calls: list[ToolCallItem]
    ) -> list[ToolResultItem]:
        def on_start(call: ToolCallItem) -> None:
            self._trace("tool_call.started", tool=call.name, call_id=call.call_id)
            self._event("tool_call.started", item=call)

        def on_finish(result: ToolResultItem) -> None:
            self._trace(
                "tool_call.finished",
                tool=result.name,
                call_id=result.call_id,
                is_error=result.is_error,
            )
            self._event("tool_call.finished", item=result)

        try:
            return await execute_tool_calls(
                agent,
                calls,
                self.state.run_context,
                max_concurrency=self.config.max_tool_concurrency,
                raise_on_unknown_tool=self.config.raise_on_unknown_tool,
                on_start=on_start,
                on_finish=on_finish,
            )
        except ToolExecutionError as exc:
            # Keep results that were already reported as finished.
            self.state.extend(exc.completed)
            raise

    async def _complete(self, agent: Agent, final_output: Any) -> RunResult:
        guardrails = [*agent.output_guardrails, *self.config.output_guardrails]
        if guardrails:
            await self._guarded("output", guardrails, final_output, agent)
        self._event("run.completed", final_output=final_output, turns=self.state.current_turn)
        return RunResult.from_state(self.state, final_output)


class Runner:
    """Entry points for running agents.

    Example:
        >>> result = await Runner.run(agent, "What is 15 * 234?")
        >>> print(result.final_output)
    """

    @classmethod
    async def run(
        cls,
        agent: Agent,
        input: str | list[RunItem],
        *,
        config: RunConfig | None = None,
        context: Any = None,
        max_turns: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RunResult:
        """Run ``agent`` on ``input`` until a final output is produced.

        Args:
            agent: Starting agent
            input: User message, or history from ``RunResult.to_input_list()``
            config: Run configuration
            context: User object exposed to tools and guardrails
            max_turns: Overrides ``config.max_turns``
            cancel: Event that stops the run at its next checkpoint when set

        Returns:
            The run result; ``status`` is ``"cancelled"`` if ``cancel`` was set

        Raises:
            MaxTurnsExceededError: No final output within the turn limit
            GuardrailTripwireTriggered: A guardrail tripped
            ModelBehaviorError: The provider returned an unusable response
            HandoffNotFoundError: The model handed off to an unknown agent
            ToolExecutionError: A tool failed fatally
        """
        loop = cls._build_loop(agent, input, config, context, max_turns, cancel)
        return await loop.run()

    @classmethod
    def run_sync(
        cls,
        agent: Agent,
        input: str | list[RunItem],
        **kwargs: Any,
    ) -> RunResult:
        """Blocking wrapper around ``run``. Not usable inside an event loop."""
        return asyncio.run(cls.run(agent, input, **kwargs))

    @classmethod
    def run_streamed(
        cls,
        agent: Agent,
        input: str | list[RunItem],
        *,
        config: RunConfig | None = None,
        context: Any = None,
        max_turns: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RunResultStreaming:
        """Start a run in the background and return a handle streaming its events.

        Must be called from within a running event loop.
        """
        cancel_event = cancel if cancel is not None else asyncio.Event()
        loop = cls._build_loop(agent, input, config, context, max_turns, cancel_event)
        streaming = RunResultStreaming(loop.state.run_id, cancel_event)
        loop.emit = streaming._emit
        streaming._start(loop.run())
        return streaming

    @staticmethod
    def _build_loop(
        agent: Agent,
        input: str | list[RunItem],
        config: RunConfig | None,
        context: Any,
        max_turns: int | None,
        cancel: asyncio.Event | None,
    ) -> _RunLoop:
        config = config or RunConfig()
        state = RunState(agent, coerce_input(input), context=context)
        return _RunLoop(
            state,
            config,
            max_turns=max_turns,
            cancel=cancel,
            input_payload=input,
        )
