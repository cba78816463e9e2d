"""Hand-offs, guardrails and structured output.

A triage agent routes each request to a specialist. The math specialist
returns a typed answer; an input guardrail rejects requests mentioning
passwords before any model call is made.
"""

import asyncio

from pydantic import BaseModel

from agentrelay import (
    Agent,
    GuardrailResult,
    InputGuardrailTripwireTriggered,
    RunConfig,
    Runner,
    handoff,
    input_guardrail,
    setup_logging,
    tool,
)
from agentrelay.agents import OpenAI
from agentrelay.tracing import LoggingTraceSink


class MathAnswer(BaseModel):
    expression: str
    value: float


@tool
def multiply(a: float, b: float) -> float:
    """Multiply two numbers.

    Args:
        a: First factor
        b: Second factor
    """
    return a * b


@input_guardrail
def no_passwords(ctx, agent, payload):
    if "password" in str(payload).lower():
        return GuardrailResult.trip("requests must not contain passwords")
    return GuardrailResult.passed()


def log_handoff(ctx, source, target):
    print(f"[handoff] {source.name} -> {target.name}")


math_agent = Agent(
    name="math",
    instructions="Solve the arithmetic problem using your tools.",
    tools=[multiply],
    output_type=MathAnswer,
    handoff_description="Arithmetic and unit conversions.",
)

writer_agent = Agent(
    name="writer",
    instructions="Help the user write short texts.",
    handoff_description="Drafting and editing prose.",
)

triage_agent = Agent(
    name="triage",
    instructions="Decide which specialist handles the request and hand off to it.",
    handoffs=[handoff(math_agent, on_handoff=log_handoff), writer_agent],
    input_guardrails=[no_passwords],
)


async def main():
    setup_logging("INFO")
    config = RunConfig(
        provider=OpenAI.from_settings(),
        max_turns=8,
        trace_sink=LoggingTraceSink(),
    )

    result = await Runner.run(triage_agent, "What is 12.5 times 8?", config=config)
    answer = result.final_output_as(MathAnswer)
    print(f"{answer.expression} = {answer.value} (answered by {result.last_agent.name})")

    try:
        await Runner.run(triage_agent, "My password is hunter2, store it", config=config)
    except InputGuardrailTripwireTriggered as exc:
        print(f"Rejected: {exc.reason}")


if __name__ == "__main__":
    asyncio.run(main())
