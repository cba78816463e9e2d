"""Tests for input and output guardrails."""

import pytest

from agentrelay import (
    Agent,
    GuardrailResult,
    InputGuardrailTripwireTriggered,
    OutputGuardrailTripwireTriggered,
    RunConfig,
    Runner,
    UserError,
    input_guardrail,
    output_guardrail,
    tool,
)
from conftest import ScriptedProvider, call, response, text


@input_guardrail
def no_secrets(ctx, agent, payload):
    if "password" in str(payload):
        return GuardrailResult.trip("input mentions a password")
    return GuardrailResult.passed()


@input_guardrail(name="always_ok")
async def allow_all(ctx, agent, payload):
    return True


@pytest.mark.asyncio
async def test_input_tripwire_prevents_model_call():
    provider = ScriptedProvider(response(text("never")))
    agent = Agent(name="a", input_guardrails=[no_secrets])

    with pytest.raises(InputGuardrailTripwireTriggered) as exc_info:
        await Runner.run(agent, "my password is hunter2", config=RunConfig(provider=provider))

    assert provider.calls == 0
    error = exc_info.value
    assert error.guardrail_name == "no_secrets"
    assert error.reason == "input mentions a password"
    assert error.payload == "my password is hunter2"
    assert error.run_state.current_turn == 1


@pytest.mark.asyncio
async def test_passing_input_guardrails():
    provider = ScriptedProvider(response(text("hello")))
    agent = Agent(name="a", input_guardrails=[allow_all, no_secrets])

    result = await Runner.run(agent, "hi", config=RunConfig(provider=provider))

    assert result.final_output == "hello"
    assert allow_all.name == "always_ok"


@pytest.mark.asyncio
async def test_first_failing_guardrail_is_reported():
    evaluated = []

    @input_guardrail
    def first(ctx, agent, payload):
        evaluated.append("first")
        return GuardrailResult.trip("first failed")

    @input_guardrail
    def second(ctx, agent, payload):
        evaluated.append("second")
        return GuardrailResult.trip("second failed")

    provider = ScriptedProvider(response(text("never")))

    with pytest.raises(InputGuardrailTripwireTriggered) as exc_info:
        await Runner.run(
            Agent(name="a", input_guardrails=[first]),
            "hi",
            config=RunConfig(provider=provider, input_guardrails=[second]),
        )

    assert exc_info.value.reason == "first failed"
    assert evaluated == ["first"]


@pytest.mark.asyncio
async def test_bool_false_trips():
    @input_guardrail
    def reject(ctx, agent, payload):
        return False

    provider = ScriptedProvider(response(text("never")))

    with pytest.raises(InputGuardrailTripwireTriggered) as exc_info:
        await Runner.run(Agent(name="a", input_guardrails=[reject]), "hi", config=RunConfig(provider=provider))

    assert exc_info.value.reason is None


@pytest.mark.asyncio
async def test_invalid_guardrail_return_value():
    @input_guardrail
    def broken(ctx, agent, payload):
        return "yes"

    provider = ScriptedProvider(response(text("never")))

    with pytest.raises(UserError):
        await Runner.run(Agent(name="a", input_guardrails=[broken]), "hi", config=RunConfig(provider=provider))


@pytest.mark.asyncio
async def test_input_guardrails_run_once_by_default():
    payloads = []

    @input_guardrail
    def record(ctx, agent, payload):
        payloads.append(payload)
        return True

    @tool
    def ping() -> str:
        """Ping."""
        return "pong"

    provider = ScriptedProvider(response(call("ping")), response(text("done")))
    agent = Agent(name="a", tools=[ping], input_guardrails=[record])

    await Runner.run(agent, "hi", config=RunConfig(provider=provider))

    assert payloads == ["hi"]


@pytest.mark.asyncio
async def test_input_guardrails_every_turn():
    payloads = []

    @input_guardrail
    def record(ctx, agent, payload):
        payloads.append(payload)
        return True

    @tool
    def ping() -> str:
        """Ping."""
        return "pong"

    provider = ScriptedProvider(response(call("ping")), response(text("done")))
    agent = Agent(name="a", tools=[ping])
    config = RunConfig(
        provider=provider, input_guardrails=[record], input_guardrails_every_turn=True
    )

    await Runner.run(agent, "hi", config=config)

    assert len(payloads) == 2
    assert payloads[0] == "hi"
    assert [item.kind for item in payloads[1]] == ["user_input", "tool_call", "tool_result"]


@pytest.mark.asyncio
async def test_output_tripwire():
    @output_guardrail
    def no_apologies(ctx, agent, output):
        if "sorry" in output.lower():
            return GuardrailResult.trip("apology")
        return GuardrailResult.passed()

    provider = ScriptedProvider(response(text("Sorry, I cannot help.")))
    agent = Agent(name="a", output_guardrails=[no_apologies])

    with pytest.raises(OutputGuardrailTripwireTriggered) as exc_info:
        await Runner.run(agent, "hi", config=RunConfig(provider=provider))

    error = exc_info.value
    assert error.kind == "output"
    assert error.payload == "Sorry, I cannot help."
    assert error.run_state.history[-1].content == "Sorry, I cannot help."


@pytest.mark.asyncio
async def test_output_guardrail_receives_context_and_agent():
    seen = []

    @output_guardrail
    async def inspect_output(ctx, agent, output):
        seen.append((ctx.context, agent.name, output))
        return GuardrailResult.passed(info={"checked": True})

    provider = ScriptedProvider(response(text("fine")))
    agent = Agent(name="a", output_guardrails=[inspect_output])

    result = await Runner.run(
        agent, "hi", config=RunConfig(provider=provider), context={"user": 1}
    )

    assert result.final_output == "fine"
    assert seen == [({"user": 1}, "a", "fine")]
