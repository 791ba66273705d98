import asyncio

import pytest

from project_agent.agents.config_builder import AgentConfiguration
from project_agent.agents.engine import (
    OrchestrationEngine,
    collect_tool_outputs,
    compose_input,
)
from project_agent.domain.exceptions import ProviderTimeoutError
from project_agent.domain.models import ChatResult, ConversationRequest, ToolInvocationRecord
from project_agent.guardrails import GuardrailPolicy
from project_agent.tools.catalog import search_assets_tool, web_search_tool
from project_agent.tools.definitions import HostedToolCall, ToolCall


class FakeProvider:
    name = "fake"

    def __init__(self, script, delay=0.0):
        self.script = list(script)
        self.requests = []
        self.delay = delay

    async def chat(self, req):
        self.requests.append(req)
        if self.delay:
            await asyncio.sleep(self.delay)
        idx = min(len(self.requests), len(self.script)) - 1
        return self.script[idx]


class FakeVectorSearch:
    def __init__(self, assets):
        self.assets = assets
        self.calls = []

    async def search_assets(self, query, owner_id, *, limit, threshold):
        self.calls.append((query, owner_id, limit))
        return self.assets

    async def search_document_chunks(self, query, owner_id, *, limit, threshold):
        return []


def _configuration(tools, max_tool_rounds=8, provider_timeout=5.0):
    return AgentConfiguration(
        name="Project Assistant",
        instructions="sys",
        model="project-assistant",
        tools=tuple(tools),
        guardrail=GuardrailPolicy(),
        max_tool_rounds=max_tool_rounds,
        provider_timeout=provider_timeout,
        tool_timeout=1.0,
    )


def _calls(*names):
    return [ToolCall(id=f"call_{i}", name=n, arguments={"query": "nature", "limit": 3}) for i, n in enumerate(names)]


ASSETS = [
    {"id": "a1", "filename": "forest.png", "score": 0.93},
    {"id": "a2", "filename": "lake.jpg", "score": 0.88},
    {"id": "a3", "filename": "meadow.png", "score": 0.71},
]


def test_nature_photos_turn():
    vs = FakeVectorSearch(ASSETS)
    provider = FakeProvider([
        ChatResult(provider="fake", model="m", response_id="r1", tool_calls=_calls("search_assets")),
        ChatResult(provider="fake", model="m", response_id="r2", text="I found 3 nature photos."),
    ])
    engine = OrchestrationEngine(provider, _configuration([search_assets_tool(vs)]))
    res = asyncio.run(engine.run_turn(ConversationRequest(text="Find me some nature photos in my assets", user_id="u1")))

    assert res.assistant_text == "I found 3 nature photos."
    assert res.tool_outputs == {"search_assets": ASSETS}
    assert len(res.tool_outputs["search_assets"]) == 3
    assert res.trace_id.startswith("tr-")
    assert vs.calls == [("nature", "u1", 3)]

    first, second = provider.requests
    assert "Find me some nature photos" in first.message
    assert first.context["trace_id"] == res.trace_id
    assert second.message is None
    assert second.previous_response_id == "r1"
    assert second.tool_outputs == [{"call_id": "call_0", "output": ASSETS}]


def test_no_tool_calls_means_empty_outputs():
    provider = FakeProvider([ChatResult(provider="fake", model="m", response_id="r1", text="Hello!")])
    engine = OrchestrationEngine(provider, _configuration([]))
    res = asyncio.run(engine.run_turn(ConversationRequest(text="Hi")))
    assert res.assistant_text == "Hello!"
    assert res.tool_outputs == {}
    assert provider.requests[0].tools is None


def test_outputs_follow_invocation_order_and_count():
    vs = FakeVectorSearch(ASSETS[:1])
    provider = FakeProvider([
        ChatResult(provider="fake", model="m", response_id="r1", tool_calls=_calls("search_assets", "missing_tool")),
        ChatResult(provider="fake", model="m", response_id="r2", tool_calls=_calls("search_assets")),
        ChatResult(provider="fake", model="m", response_id="r3", text="done"),
    ])
    engine = OrchestrationEngine(provider, _configuration([search_assets_tool(vs)]))
    res = asyncio.run(engine.run_turn(ConversationRequest(text="search twice")))

    assert list(res.tool_outputs) == ["search_assets", "missing_tool", "search_assets#2"]
    assert res.tool_outputs["missing_tool"] == {"error": "Tool not registered: missing_tool"}
    assert res.tool_outputs["search_assets#2"] == ASSETS[:1]


def test_round_limit_forces_final_answer():
    vs = FakeVectorSearch([])
    looping = ChatResult(provider="fake", model="m", response_id="r", tool_calls=_calls("search_assets"))
    final = ChatResult(provider="fake", model="m", response_id="rf", text="")
    provider = FakeProvider([looping, looping, final])
    engine = OrchestrationEngine(provider, _configuration([search_assets_tool(vs)], max_tool_rounds=2))
    res = asyncio.run(engine.run_turn(ConversationRequest(text="loop forever")))

    assert len(provider.requests) == 3
    assert provider.requests[-1].tool_choice == "none"
    assert res.assistant_text == "(stopped after 2 tool rounds)"
    assert list(res.tool_outputs) == ["search_assets", "search_assets#2"]


def test_hosted_web_search_is_recorded():
    provider = FakeProvider([
        ChatResult(
            provider="fake",
            model="m",
            response_id="r1",
            text="Trending now: pastel gradients.",
            hosted_calls=[HostedToolCall(id="ws_1", name="web_search", status="completed", output={"status": "completed"})],
        )
    ])
    engine = OrchestrationEngine(provider, _configuration([web_search_tool("Toronto", "CA")]))
    res = asyncio.run(engine.run_turn(ConversationRequest(text="What design trends are hot?")))
    assert res.tool_outputs == {"web_search": {"status": "completed"}}
    assert engine.executor.tool_names == []


def test_provider_timeout_propagates():
    provider = FakeProvider([ChatResult(provider="fake", model="m", text="late")], delay=1.0)
    engine = OrchestrationEngine(provider, _configuration([], provider_timeout=0.05))
    with pytest.raises(ProviderTimeoutError):
        asyncio.run(engine.run_turn(ConversationRequest(text="hi")))


def test_compose_input_with_history():
    text = compose_input(ConversationRequest(
        text="and a flyer?",
        user_id="u7",
        history=[{"role": "user", "content": "make a logo"}, {"role": "assistant", "content": "Sure"}],
    ))
    assert text.startswith("User ID for this session: u7")
    assert "Previous conversation:\nUser: make a logo\nAssistant: Sure" in text
    assert text.endswith("Current User: and a flyer?")
    assert compose_input(ConversationRequest(text="hi")).endswith("\n\nUser: hi")


def test_collect_tool_outputs_keys():
    records = [
        ToolInvocationRecord(name="a", call_id="1", arguments={}, output=1),
        ToolInvocationRecord(name="b", call_id="2", arguments={}, output=2),
        ToolInvocationRecord(name="a", call_id="3", arguments={}, output=3),
        ToolInvocationRecord(name="a", call_id="4", arguments={}, output=4),
    ]
    assert collect_tool_outputs(records) == {"a": 1, "b": 2, "a#2": 3, "a#3": 4}
