"""Tests for the OpenAI-compatible server."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from agentrelay import Agent, GuardrailResult, RunConfig, input_guardrail, tool
from agentrelay.serve import AgentRegistry, create_app
from agentrelay.serve.openai.serve_completion import (
    Message,
    execute_agent_streaming,
    messages_to_input,
    render_output,
)
from conftest import ScriptedProvider, StreamingScriptedProvider, call, response, text


@input_guardrail
def block_spam(ctx, agent, payload):
    last = payload[-1].content if isinstance(payload, list) else payload
    if "spam" in last:
        return GuardrailResult.trip("spam")
    return GuardrailResult.passed()


@pytest.fixture
def provider():
    return ScriptedProvider(response(text("Hello from the agent."), input_tokens=7, output_tokens=4))


@pytest.fixture
def client(provider):
    registry = AgentRegistry()
    registry.register("assistant", Agent(name="assistant", input_guardrails=[block_spam]))
    registry.register("other", Agent(name="other"))
    app = create_app(registry, run_config=RunConfig(provider=provider))
    with TestClient(app) as test_client:
        yield test_client


def test_registry_default_is_first_registered():
    registry = AgentRegistry()
    first, second = Agent(name="first"), Agent(name="second")
    registry.register("first", first)
    registry.register("second", second)
    assert registry.get_default() == ("first", first)

    registry.register("second", second, set_default=True)
    assert registry.get_default() == ("second", second)
    with pytest.raises(KeyError):
        registry.get_required("missing")


def test_empty_registry_has_no_default():
    with pytest.raises(KeyError):
        AgentRegistry().get_default()


def test_messages_to_input():
    messages = [
        Message(role="system", content="ignored"),
        Message(role="user", content="hi"),
        Message(role="assistant", content="hello"),
    ]
    items = messages_to_input(messages, "assistant")
    assert [item.kind for item in items] == ["user_input", "assistant_text"]
    assert items[1].agent == "assistant"


class Answer(BaseModel):
    value: int


def test_render_output():
    assert render_output("text") == "text"
    assert render_output(Answer(value=1)) == '{"value":1}'
    assert render_output({"a": 1}) == '{"a": 1}'


def test_health_and_models(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["agents"] == ["assistant", "other"]

    models = client.get("/v1/models").json()
    assert [m["id"] for m in models["data"]] == ["assistant", "other"]


def test_chat_completion(client, provider):
    resp = client.post(
        "/v1/chat/completions",
        json={
            "model": "assistant",
            "messages": [{"role": "user", "content": "hi"}],
            "temperature": 0.3,
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["model"] == "assistant"
    assert body["choices"][0]["message"] == {
        "role": "assistant",
        "content": "Hello from the agent.",
    }
    assert body["usage"] == {"prompt_tokens": 7, "completion_tokens": 4, "total_tokens": 11}
    assert provider.requests[0].model_settings.temperature == 0.3


def test_chat_completion_uses_default_agent(client):
    resp = client.post(
        "/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]}
    )
    assert resp.status_code == 200
    assert resp.json()["model"] == "assistant"


def test_unknown_model(client):
    resp = client.post(
        "/v1/chat/completions",
        json={"model": "nope", "messages": [{"role": "user", "content": "hi"}]},
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"]["param"] == "model"


def test_missing_user_message(client):
    resp = client.post(
        "/v1/chat/completions",
        json={"messages": [{"role": "system", "content": "be nice"}]},
    )
    assert resp.status_code == 400


def test_guardrail_trip_is_client_error(client, provider):
    resp = client.post(
        "/v1/chat/completions",
        json={"model": "assistant", "messages": [{"role": "user", "content": "buy spam"}]},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"]["code"] == "guardrail_tripped"
    assert provider.calls == 0


def test_max_turns_is_server_error():
    registry = AgentRegistry()
    registry.register("assistant", Agent(name="assistant"))
    app = create_app(
        registry, run_config=RunConfig(provider=ScriptedProvider(response()), max_turns=1)
    )

    with TestClient(app) as client:
        resp = client.post(
            "/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]}
        )

    assert resp.status_code == 500
    assert resp.json()["detail"]["error"]["code"] == "max_turns_exceeded"


def _sse_payloads(body: str) -> list:
    payloads = []
    for line in body.splitlines():
        if line.startswith("data: ") and line != "data: [DONE]":
            payloads.append(json.loads(line[len("data: "):]))
    return payloads


def test_streaming_completion():
    registry = AgentRegistry()
    registry.register("assistant", Agent(name="assistant"))
    provider = StreamingScriptedProvider(response(text("one two")))
    app = create_app(registry, run_config=RunConfig(provider=provider))

    with TestClient(app) as client:
        resp = client.post(
            "/v1/chat/completions",
            json={"stream": True, "messages": [{"role": "user", "content": "hi"}]},
        )

    assert resp.status_code == 200
    assert resp.text.rstrip().endswith("data: [DONE]")
    chunks = _sse_payloads(resp.text)
    assert chunks[0]["choices"][0]["delta"]["role"] == "assistant"
    deltas = [c["choices"][0]["delta"].get("content") for c in chunks[1:-1]]
    assert deltas == ["one", "two"]
    assert chunks[-1]["choices"][0]["finish_reason"] == "stop"


def test_streaming_guardrail_trip(client):
    resp = client.post(
        "/v1/chat/completions",
        json={"stream": True, "messages": [{"role": "user", "content": "spam"}]},
    )

    chunks = _sse_payloads(resp.text)
    assert chunks[-1]["choices"][0]["finish_reason"] == "content_filter"


@pytest.mark.asyncio
async def test_closed_stream_cancels_run():
    @tool
    def ping() -> str:
        """Ping."""
        return "pong"

    # Every turn calls a tool, so the run only stops at max_turns or on cancel.
    provider = StreamingScriptedProvider(response(text("still going"), call("ping")))
    agent = Agent(name="assistant", tools=[ping])
    stream = execute_agent_streaming(
        agent,
        messages_to_input([Message(role="user", content="hi")], "assistant"),
        RunConfig(provider=provider, max_turns=50),
        "chatcmpl-test",
        "assistant",
    )

    first = _sse_payloads(await stream.__anext__())[0]
    assert first["choices"][0]["delta"]["role"] == "assistant"
    delta = _sse_payloads(await stream.__anext__())[0]
    assert delta["choices"][0]["delta"]["content"] == "still"

    # The client goes away mid-stream.
    await stream.aclose()
    for _ in range(50):
        await asyncio.sleep(0)

    assert provider.calls == 1
