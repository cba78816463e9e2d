"""Concurrent tool execution for a single model response."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..errors import ToolExecutionError
from .agent import Agent
from .items import ToolCallItem, ToolResultItem
from .state import RunContext
from .tools import Tool

LOGGER = logging.getLogger(__name__)


def _error_result(call: ToolCallItem, message: str) -> ToolResultItem:
    return ToolResultItem(
        call_id=call.call_id,
        name=call.name,
        output=f"Error: {message}",
        agent=call.agent,
        is_error=True,
    )


async def execute_tool_call(
    call: ToolCallItem,
    tool_obj: Tool,
    context: RunContext,
) -> ToolResultItem:
    """Execute a single tool call and wrap the outcome in a result item.

    Errors become error results the model can react to. A
    ``ToolExecutionError`` marked ``fatal`` propagates.
    """
    try:
        output = await tool_obj.execute(call.arguments, context)
    except ToolExecutionError as exc:
        if exc.fatal:
            raise
        LOGGER.warning("Tool call %s (%s) failed: %s", call.call_id, call.name, exc)
        return _error_result(call, str(exc))
    except Exception as exc:
        LOGGER.warning(
            "Tool call %s (%s) raised %s: %s",
            call.call_id,
            call.name,
            exc.__class__.__name__,
            exc,
        )
        return _error_result(
            call, f"tool '{call.name}' raised {exc.__class__.__name__}: {exc}"
        )

    return ToolResultItem(
        call_id=call.call_id, name=call.name, output=output, agent=call.agent
    )


async def execute_tool_calls(
    agent: Agent,
    calls: list[ToolCallItem],
    context: RunContext,
    *,
    max_concurrency: int | None = None,
    raise_on_unknown_tool: bool = False,
    on_start: Callable[[ToolCallItem], None] | None = None,
    on_finish: Callable[[ToolResultItem], None] | None = None,
) -> list[ToolResultItem]:
    """Execute all tool calls of one response concurrently.

    Args:
        agent: Active agent whose tools are called
        calls: Tool calls in the order the model requested them
        context: Run context passed to tools
        max_concurrency: Upper bound on calls running at once
        raise_on_unknown_tool: Raise instead of reporting unknown tools
        on_start: Called when a call starts
        on_finish: Called when a call finishes, in completion order

    Returns:
        Result items in request order, regardless of completion order

    Raises:
        ToolExecutionError: For unknown tools when ``raise_on_unknown_tool`` is
            set, or when a tool raises a fatal error. Sibling calls are allowed
            to finish first; their results are kept on the error as
            ``completed``, in request order.
    """
    tool_map = agent.tool_map()
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    for call in calls:
        if call.name not in tool_map and raise_on_unknown_tool:
            raise ToolExecutionError(
                call.name, f"agent '{agent.name}' has no such tool", fatal=True
            )

    async def run_one(call: ToolCallItem) -> ToolResultItem:
        if on_start is not None:
            on_start(call)

        tool_obj = tool_map.get(call.name)
        if tool_obj is None:
            result = _error_result(
                call,
                f"Tool '{call.name}' not found. Available tools: {list(tool_map)}",
            )
        elif semaphore is not None:
            async with semaphore:
                result = await execute_tool_call(call, tool_obj, context)
        else:
            result = await execute_tool_call(call, tool_obj, context)

        if on_finish is not None:
            on_finish(result)
        return result

    outcomes: list[Any] = await asyncio.gather(
        *(run_one(call) for call in calls), return_exceptions=True
    )

    failures = [o for o in outcomes if isinstance(o, BaseException)]
    if failures:
        error = failures[0]
        if isinstance(error, ToolExecutionError):
            error.completed = tuple(
                o for o in outcomes if not isinstance(o, BaseException)
            )
        raise error
    return outcomes
