"""
agentrelay OpenAI-Compatible Server
===================================

Reusable components for serving agents behind an OpenAI-compatible
chat-completions API, with optional SSE streaming.

Usage:
    from agentrelay import Agent
    from agentrelay.serve import create_app, AgentRegistry

    registry = AgentRegistry()
    registry.register("assistant", Agent(name="assistant"), set_default=True)
    app = create_app(registry)
"""

from .openai.serve_completion import AgentRegistry, create_app

__all__ = ["create_app", "AgentRegistry"]
