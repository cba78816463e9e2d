"""
Example: Basic OpenAI Server Setup
==================================

Serves a triage agent and its specialist behind an OpenAI-compatible API.

Run with:
    python examples/serve_openai_demo.py
    # or
    uvicorn examples.serve_openai_demo:app --reload

Then:
    curl http://localhost:8000/v1/chat/completions \
        -H "Content-Type: application/json" \
        -d '{"model": "triage", "messages": [{"role": "user", "content": "Hi"}]}'
"""

from agentrelay import Agent, RunConfig
from agentrelay.serve import AgentRegistry, create_app

billing = Agent(
    name="billing",
    instructions="You answer billing questions.",
    handoff_description="Invoices, payments and refunds.",
)
triage = Agent(
    name="triage",
    instructions="Answer general questions. Hand billing questions to the billing agent.",
    handoffs=[billing],
)

# Create app
registry = AgentRegistry()
registry.register("triage", triage, set_default=True)
registry.register("billing", billing)
app = create_app(registry, run_config=RunConfig(max_turns=6))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
