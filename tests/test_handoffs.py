"""Tests for hand-offs between agents."""

import pytest

from agentrelay import (
    Agent,
    HandoffNotFoundError,
    MaxTurnsExceededError,
    RunConfig,
    Runner,
    handoff,
    tool,
)
from agentrelay.agents.handoffs import HandoffRequest, default_tool_name, resolve_handoff
from agentrelay.agents.items import HandoffCallItem, HandoffItem
from conftest import ScriptedProvider, call, handoff_to, response, text


def test_default_tool_name():
    assert default_tool_name("Billing Agent") == "transfer_to_billing_agent"
    assert default_tool_name("faq") == "transfer_to_faq"


def test_resolve_by_tool_name_and_agent_name():
    billing = Agent(name="billing")
    triage = Agent(name="triage", handoffs=[billing])

    by_tool = resolve_handoff(triage, HandoffRequest(call_id="1", target="transfer_to_billing"))
    by_name = resolve_handoff(triage, HandoffRequest(call_id="2", target="billing"))

    assert by_tool.agent is billing
    assert by_name.agent is billing


def test_resolve_unknown_target():
    triage = Agent(name="triage", handoffs=[Agent(name="billing")])
    with pytest.raises(HandoffNotFoundError) as exc_info:
        resolve_handoff(triage, HandoffRequest(call_id="1", target="refunds"))
    assert exc_info.value.available == ("billing",)


@pytest.mark.asyncio
async def test_handoff_preserves_history():
    """B's first model call sees A's turns and the hand-off marker."""
    billing = Agent(name="billing", instructions="You handle billing.")
    triage = Agent(name="triage", instructions="Route requests.", handoffs=[billing])

    provider = ScriptedProvider(
        response(text("Let me transfer you."), call("transfer_to_billing", call_id="h1")),
        response(text("Your invoice is paid.")),
    )

    result = await Runner.run(
        triage, "Is my invoice paid?", config=RunConfig(provider=provider)
    )

    assert result.final_output == "Your invoice is paid."
    assert result.last_agent is billing
    assert result.turns == 2

    second = provider.requests[1]
    assert second.instructions == "You handle billing."
    kinds = [item.kind for item in second.history]
    assert kinds == ["user_input", "assistant_text", "handoff_call", "handoff"]
    assert second.history[-1] == HandoffItem(call_id="h1", source="triage", target="billing")
    # Tools offered follow the new agent.
    assert second.tools == []


@pytest.mark.asyncio
async def test_handoff_takes_precedence_over_tool_calls():
    executed = []

    @tool
    def lookup() -> str:
        """Look something up."""
        executed.append("lookup")
        return "data"

    billing = Agent(name="billing")
    triage = Agent(name="triage", tools=[lookup], handoffs=[billing])

    provider = ScriptedProvider(
        response(call("lookup", call_id="t1"), call("transfer_to_billing", call_id="h1")),
        response(text("done")),
    )

    result = await Runner.run(triage, "help", config=RunConfig(provider=provider))

    assert executed == []
    assert not any(item.kind == "tool_result" for item in result.history)
    assert result.last_agent is billing


@pytest.mark.asyncio
async def test_explicit_handoff_marker():
    billing = Agent(name="billing")
    triage = Agent(name="triage", handoffs=[billing])

    provider = ScriptedProvider(response(handoff_to("billing", call_id="h")), response(text("hi")))

    result = await Runner.run(triage, "help", config=RunConfig(provider=provider))

    assert result.history[1] == HandoffCallItem(call_id="h", target="billing", agent="triage")
    assert result.last_agent is billing


@pytest.mark.asyncio
async def test_handoff_to_unknown_agent_is_fatal():
    triage = Agent(name="triage", handoffs=[Agent(name="billing")])
    provider = ScriptedProvider(response(handoff_to("refunds")))

    with pytest.raises(HandoffNotFoundError) as exc_info:
        await Runner.run(triage, "help", config=RunConfig(provider=provider))

    state = exc_info.value.run_state
    assert state.current_agent is triage
    assert state.current_turn == 1


@pytest.mark.asyncio
async def test_first_handoff_wins():
    billing = Agent(name="billing")
    refunds = Agent(name="refunds")
    triage = Agent(name="triage", handoffs=[billing, refunds])

    provider = ScriptedProvider(
        response(call("transfer_to_refunds"), call("transfer_to_billing")),
        response(text("ok")),
    )

    result = await Runner.run(triage, "help", config=RunConfig(provider=provider))
    assert result.last_agent is refunds


@pytest.mark.asyncio
async def test_on_handoff_callback():
    seen = []

    async def record(ctx, source, target):
        seen.append((ctx.context, source.name, target.name))

    billing = Agent(name="billing")
    triage = Agent(
        name="triage",
        handoffs=[handoff(billing, tool_name_override="escalate", on_handoff=record)],
    )
    provider = ScriptedProvider(response(call("escalate")), response(text("ok")))

    await Runner.run(triage, "help", config=RunConfig(provider=provider), context="ctx")

    assert seen == [("ctx", "triage", "billing")]
    assert provider.requests[0].tools[0]["name"] == "escalate"


@pytest.mark.asyncio
async def test_ping_pong_handoffs_bounded_by_max_turns():
    agents = {}
    agents["a"] = Agent(name="a", handoffs=[lambda: agents["b"]])
    agents["b"] = Agent(name="b", handoffs=[lambda: agents["a"]])

    # Always take the only hand-off offered.
    provider = ScriptedProvider(lambda request: response(call(request.tools[0]["name"])))

    with pytest.raises(MaxTurnsExceededError) as exc_info:
        await Runner.run(agents["a"], "go", config=RunConfig(provider=provider, max_turns=4))

    markers = [i for i in exc_info.value.run_state.history if i.kind == "handoff"]
    assert [(m.source, m.target) for m in markers] == [
        ("a", "b"),
        ("b", "a"),
        ("a", "b"),
        ("b", "a"),
    ]
