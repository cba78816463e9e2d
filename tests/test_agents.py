"""Tests for agent definitions."""

import dataclasses

import pytest
from pydantic import BaseModel

from agentrelay import Agent, RunContext, UserError, handoff, tool
from agentrelay.agents.items import AssistantTextItem, UserInputItem, coerce_input


@tool
async def search(query: str) -> str:
    """Search for information."""
    return f"Results for {query}"


def test_agent_creation():
    """Test creating an agent with defaults."""
    agent = Agent(name="assistant")
    assert agent.name == "assistant"
    assert agent.instructions is None
    assert agent.tools == ()
    assert agent.handoffs == ()
    assert agent.output_type is None
    assert agent.output_schema is None
    assert agent.tool_use_behavior == "run_llm_again"


def test_agent_is_immutable():
    agent = Agent(name="assistant")
    with pytest.raises(dataclasses.FrozenInstanceError):
        agent.name = "other"


def test_agent_requires_name():
    with pytest.raises(UserError):
        Agent(name="")


def test_agent_normalizes_sequences():
    """Lists become tuples and plain functions become tools."""

    async def lookup(key: str) -> str:
        """Look up a key."""
        return key

    agent = Agent(name="a", tools=[search, lookup])
    assert isinstance(agent.tools, tuple)
    assert [t.name for t in agent.tools] == ["search", "lookup"]


def test_duplicate_tool_names_rejected():
    with pytest.raises(UserError, match="duplicate tool names"):
        Agent(name="a", tools=[search, search])


def test_handoff_tool_name_collision_rejected():
    target = Agent(name="search")
    with pytest.raises(UserError, match="duplicate tool names"):
        Agent(
            name="a",
            tools=[search],
            handoffs=[handoff(target, tool_name_override="search")],
        )


def test_lazy_handoff_collision_rejected_when_resolved():
    target = Agent(name="search")
    agent = Agent(
        name="a",
        tools=[search],
        handoffs=[lambda: handoff(target, tool_name_override="search")],
    )
    with pytest.raises(UserError, match="duplicate tool names"):
        agent.tool_schemas()


def test_tool_use_behavior_validation():
    with pytest.raises(UserError, match="tool_use_behavior"):
        Agent(name="a", tool_use_behavior="finish")

    agent = Agent(name="a", tool_use_behavior=["finish"])
    assert agent.tool_use_behavior == ("finish",)


def test_clone():
    agent = Agent(name="a", instructions="one")
    clone = agent.clone(instructions="two")
    assert clone.instructions == "two"
    assert agent.instructions == "one"
    assert clone.name == "a"


def test_tool_schemas_include_handoffs():
    billing = Agent(name="Billing Agent", handoff_description="Handles invoices.")
    agent = Agent(name="triage", tools=[search], handoffs=[billing])

    schemas = agent.tool_schemas()

    assert [s["name"] for s in schemas] == ["search", "transfer_to_billing_agent"]
    assert "Handles invoices." in schemas[1]["description"]


def test_lazy_handoffs_allow_cycles():
    """Zero-argument callables let two agents reference each other."""
    agents = {}
    agents["a"] = Agent(name="a", handoffs=[lambda: agents["b"]])
    agents["b"] = Agent(name="b", handoffs=[lambda: agents["a"]])

    assert agents["a"].handoff_specs[0].agent is agents["b"]
    assert agents["b"].handoff_specs[0].agent is agents["a"]


class Answer(BaseModel):
    value: int


def test_output_schema():
    assert Agent(name="a", output_type=str).output_schema is None

    schema = Agent(name="a", output_type=Answer).output_schema
    assert schema is not None
    assert schema.name == "Answer"
    assert schema.json_schema["properties"]["value"]["type"] == "integer"
    assert schema.validate_json('{"value": 3}') == Answer(value=3)


@pytest.mark.asyncio
async def test_static_and_dynamic_instructions():
    ctx = RunContext(context="ada")

    static = Agent(name="a", instructions="Be brief.")
    assert await static.get_instructions(ctx) == "Be brief."

    sync_dynamic = Agent(name="a", instructions=lambda c, agent: f"Hi {c.context}")
    assert await sync_dynamic.get_instructions(ctx) == "Hi ada"

    async def build(c, agent):
        return f"{agent.name} serves {c.context}"

    async_dynamic = Agent(name="b", instructions=build)
    assert await async_dynamic.get_instructions(ctx) == "b serves ada"


def test_coerce_input():
    assert coerce_input("hi") == [UserInputItem(content="hi")]
    items = [UserInputItem(content="hi"), AssistantTextItem(content="hello", agent="a")]
    coerced = coerce_input(items)
    assert coerced == items
    assert coerced is not items
