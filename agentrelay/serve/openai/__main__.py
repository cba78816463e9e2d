"""Entry point for running: python -m agentrelay.serve.openai"""

import logging
import os

import uvicorn

from agentrelay import Agent, RunConfig, get_settings, setup_logging

from .serve_completion import AgentRegistry, create_app

LOGGER = logging.getLogger("agentrelay.serve")


def build_demo_agent() -> Agent:
    return Agent(
        name="assistant",
        instructions="You are a helpful assistant. Answer concisely.",
    )


if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.log_level)

    registry = AgentRegistry()
    registry.register("assistant", build_demo_agent(), set_default=True)
    app = create_app(registry, run_config=RunConfig(max_turns=settings.max_turns))

    host = os.getenv("HOST", "0.0.0.0")
    port_str = os.getenv("PORT", "8000")
    try:
        port = int(port_str)
    except ValueError:
        port = 8000
        LOGGER.warning("Invalid PORT '%s', using default 8000.", port_str)
    display_host = "localhost" if host in {"0.0.0.0", "::"} else host

    LOGGER.info("Endpoint: http://%s:%d/v1/chat/completions", display_host, port)
    uvicorn.run(app, host=host, port=port)
