"""Simple agent example using the Runner API.

This example demonstrates the easiest way to use agentrelay agents:
- Agent definition with tools
- One-shot execution with Runner.run()
- Multi-turn conversations by passing the previous history back in
- Streaming text deltas with Runner.run_streamed()
"""

import asyncio

from agentrelay import Agent, RunConfig, Runner, setup_logging, tool
from agentrelay.agents import VLLM
from agentrelay.agents.items import UserInputItem


@tool
async def calculate(expression: str) -> str:
    """Evaluate a mathematical expression.

    Args:
        expression: A Python expression to evaluate (e.g., "15 * 234")

    Returns:
        The result of the calculation
    """
    # No builtins available to the expression
    return str(eval(expression, {"__builtins__": {}}, {}))


@tool
async def get_weather(city: str, units: str = "celsius") -> str:
    """Get current weather for a city.

    Args:
        city: Name of the city to get weather for
        units: Temperature units - either 'celsius' or 'fahrenheit'

    Returns:
        Current weather information including temperature and conditions
    """
    temp = 72 if units == "fahrenheit" else 22
    return f"Weather in {city}: Sunny, {temp}°{'F' if units == 'fahrenheit' else 'C'}"


CONFIG = RunConfig(
    provider=VLLM(model="meta-llama/Llama-3.1-8B-Instruct"),
    max_turns=10,
)

assistant = Agent(
    name="assistant",
    instructions="You are a helpful assistant. Be concise and friendly.",
    tools=[calculate, get_weather],
)


async def example_one_shot():
    """Example: One-shot execution"""
    print("=" * 60)
    print("Example 1: One-shot execution")
    print("=" * 60)

    result = await Runner.run(
        assistant, "What is 15 * 234? Also, what's the weather in Paris?", config=CONFIG
    )

    print(f"\nFinal response: {result.final_output}")
    print(f"Turns: {result.turns}")
    print(f"New items: {len(result.new_items)}")
    print(f"Tokens: {result.usage.total_tokens}")


async def example_multi_turn():
    """Example: Multi-turn conversation by reusing the history"""
    print("\n" + "=" * 60)
    print("Example 2: Multi-turn conversation")
    print("=" * 60)

    history = []
    for question in [
        "What is 100 * 50?",
        "What's the weather in Tokyo?",
        "What was my first question?",
    ]:
        print(f"\nUser: {question}")
        items = history + [UserInputItem(content=question)]
        result = await Runner.run(assistant, items, config=CONFIG)
        print(f"Assistant: {result.final_output}")
        history = result.to_input_list()


async def example_streaming():
    """Example: Stream text as it is generated"""
    print("\n" + "=" * 60)
    print("Example 3: Streaming")
    print("=" * 60)

    streaming = Runner.run_streamed(assistant, "Calculate 789 * 456", config=CONFIG)
    async for event in streaming.stream_events():
        if event.type == "response.partial_text":
            print(event.data["delta"], end="", flush=True)
        elif event.type == "tool_call.finished":
            print(f"\n[tool {event.data['item'].name} -> {event.data['item'].output}]")
    print()


async def main():
    """Run all examples."""
    setup_logging("WARNING")

    await example_one_shot()
    await example_multi_turn()
    await example_streaming()

    print("\n" + "=" * 60)
    print("All examples completed!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
